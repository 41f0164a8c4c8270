from fastapi import APIRouter, Depends, HTTPException

from app.api.v1.schemas import (
    AvailabilityResponseSchema, AvailableDateSchema,
    BookingSchema, CancelBookingRequestSchema,
    CreateBookingRequestSchema, CreateBookingResponseSchema,
    UserBookingsResponseSchema,
)
from app.application.exceptions import BookingError, BookingErrorCode, BookingNotFoundError
from app.application.use_cases.booking_lifecycle import BookingLifecycleManager
from app.wiring.dependencies import get_lifecycle_manager

router = APIRouter()

_STATUS_BY_CODE = {
    BookingErrorCode.SLOT_UNAVAILABLE: 409,
    BookingErrorCode.INVALID_TRANSITION: 409,
    BookingErrorCode.BOOKING_NOT_FOUND: 404,
    BookingErrorCode.VALIDATION_ERROR: 422,
    BookingErrorCode.PAYMENT_LINK_ERROR: 502,
    BookingErrorCode.STORAGE_ERROR: 503,
}


def _http_error(code: str | None, message: str | None, missing_fields: list[str] | None = None) -> HTTPException:
    detail: dict = {"error": code, "message": message}
    if missing_fields:
        detail["missingFields"] = missing_fields
    return HTTPException(status_code=_STATUS_BY_CODE.get(code, 400), detail=detail)


@router.get("/availability", response_model=AvailabilityResponseSchema)
def availability(lifecycle: BookingLifecycleManager = Depends(get_lifecycle_manager)):
    try:
        dates = lifecycle.get_available_dates()
    except BookingError as e:
        raise _http_error(e.code, str(e))
    return AvailabilityResponseSchema(
        available_dates=[AvailableDateSchema(date=d.date, times=list(d.times)) for d in dates]
    )


@router.post("/bookings", response_model=CreateBookingResponseSchema, status_code=201)
def create_booking(
    req: CreateBookingRequestSchema,
    lifecycle: BookingLifecycleManager = Depends(get_lifecycle_manager),
):
    result = lifecycle.reserve_and_book(
        date=req.date,
        time=req.time,
        user_name=req.user_name,
        user_email=req.user_email,
        user_number=req.user_number,
    )
    if not result.success:
        raise _http_error(result.error, result.message, result.missing_fields)

    return CreateBookingResponseSchema(
        booking=BookingSchema.from_entity(result.booking),
        payment_url=result.payment_url,
        session_id=result.session_id,
    )


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
def get_booking(booking_id: str, lifecycle: BookingLifecycleManager = Depends(get_lifecycle_manager)):
    booking = lifecycle.get_booking(booking_id)
    if booking is None:
        raise _http_error(BookingErrorCode.BOOKING_NOT_FOUND, str(BookingNotFoundError(booking_id)))
    return BookingSchema.from_entity(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: str,
    req: CancelBookingRequestSchema | None = None,
    lifecycle: BookingLifecycleManager = Depends(get_lifecycle_manager),
):
    try:
        booking = lifecycle.cancel_booking(booking_id, user_number=req.user_number if req else None)
    except BookingError as e:
        raise _http_error(e.code, str(e))
    return BookingSchema.from_entity(booking)


@router.get("/users/{user_number}/bookings", response_model=UserBookingsResponseSchema)
def list_user_bookings(user_number: str, lifecycle: BookingLifecycleManager = Depends(get_lifecycle_manager)):
    try:
        bookings = lifecycle.list_bookings_by_user(user_number)
    except BookingError as e:
        raise _http_error(e.code, str(e))
    return UserBookingsResponseSchema(bookings=[BookingSchema.from_entity(b) for b in bookings])
