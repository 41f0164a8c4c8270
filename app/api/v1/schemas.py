from pydantic import BaseModel, Field

from app.domain.entities.booking import Booking


class AvailableDateSchema(BaseModel):
    date: str
    times: list[str]


class AvailabilityResponseSchema(BaseModel):
    available_dates: list[AvailableDateSchema]


class CreateBookingRequestSchema(BaseModel):
    date: str
    time: str
    user_name: str = Field(min_length=1)
    user_email: str = Field(min_length=3)
    user_number: str = Field(min_length=1)


class UserDetailsSchema(BaseModel):
    user_name: str
    user_email: str
    user_number: str


class PaymentDetailsSchema(BaseModel):
    amount: float
    currency: str
    payment_id: str | None = None
    payment_status: str
    paid_at: str
    session_id: str | None = None


class BookingSchema(BaseModel):
    id: str
    slot_id: str
    date: str
    time: str
    status: str
    user_details: UserDetailsSchema
    payment_details: PaymentDetailsSchema | None = None
    created_at: str | None = None
    confirmed_at: str | None = None
    cancelled_at: str | None = None

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingSchema":
        payment = booking.payment_details
        return cls(
            id=booking.id,
            slot_id=booking.slot_id,
            date=booking.date,
            time=booking.time,
            status=booking.status.value,
            user_details=UserDetailsSchema(
                user_name=booking.user_details.user_name,
                user_email=booking.user_details.user_email,
                user_number=booking.user_details.user_number,
            ),
            payment_details=(
                PaymentDetailsSchema(
                    amount=payment.amount,
                    currency=payment.currency,
                    payment_id=payment.payment_id,
                    payment_status=payment.payment_status,
                    paid_at=payment.paid_at,
                    session_id=payment.session_id,
                )
                if payment else None
            ),
            created_at=booking.created_at,
            confirmed_at=booking.confirmed_at,
            cancelled_at=booking.cancelled_at,
        )


class CreateBookingResponseSchema(BaseModel):
    booking: BookingSchema
    payment_url: str
    session_id: str | None = None


class CancelBookingRequestSchema(BaseModel):
    user_number: str | None = None


class UserBookingsResponseSchema(BaseModel):
    bookings: list[BookingSchema]
