from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from app.application.exceptions import (
    BookingErrorCode,
    BookingNotFoundError,
    BookingValidationError,
    SlotUnavailableError,
    StorageError,
)
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.field_store import FieldStorePort
from app.application.ports.payment_provider import PaymentProviderPort
from app.application.ports.slot_store import SlotStorePort
from app.application.utils.date_parser import normalize_date, normalize_time
from app.domain.entities.booking import Booking, BookingStatus, PaymentDetails, UserDetails
from app.domain.entities.conversation_fields import BookingField
from app.domain.entities.slot import AvailableDate


@dataclass(frozen=True)
class ReservationResult:
    success: bool
    booking: Booking | None = None
    payment_url: str | None = None
    session_id: str | None = None
    error: str | None = None  # BookingErrorCode value
    message: str | None = None
    missing_fields: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, message: str, missing_fields: list[str] | None = None) -> ReservationResult:
        return cls(success=False, error=error, message=message, missing_fields=list(missing_fields or []))


class BookingLifecycleManager:
    """
    Owns the link between slot availability and booking status.

    A slot is unavailable exactly while a non-cancelled booking holds it. Reservation
    (check availability, flip the slot, create the booking) runs under a per-slot lock,
    and every later failure is undone by cancelling the booking and releasing the slot.
    """

    def __init__(
        self,
        slots: SlotStorePort,
        bookings: BookingStorePort,
        payments: PaymentProviderPort,
        fields: FieldStorePort,
        price: int,
        currency: str,
    ) -> None:
        self._slots = slots
        self._bookings = bookings
        self._payments = payments
        self._fields = fields
        self._price = price
        self._currency = currency
        self._slot_locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, slot_id: str) -> threading.Lock:
        """Get or create the lock guarding a slot id."""
        with self._lock_lock:
            if slot_id not in self._slot_locks:
                self._slot_locks[slot_id] = threading.Lock()
            return self._slot_locks[slot_id]

    def get_available_dates(self) -> list[AvailableDate]:
        return self._slots.list_available_grouped_by_date()

    def get_booking(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def list_bookings_by_user(self, user_number: str) -> list[Booking]:
        return self._bookings.list_by_user(user_number)

    def reserve_and_book(
        self,
        date: str,
        time: str,
        user_name: str,
        user_email: str,
        user_number: str,
    ) -> ReservationResult:
        try:
            date_iso, time_hhmm, user_details = _validate_request(date, time, user_name, user_email, user_number)
            booking = self._reserve(date_iso, time_hhmm, user_details)
        except BookingValidationError as e:
            return ReservationResult.failure(e.code, str(e), e.missing_fields)
        except SlotUnavailableError as e:
            self._logger.info(
                "Slot unavailable",
                extra={"user_number": user_number, "reason": f"{date} {time}"},
            )
            return ReservationResult.failure(e.code, str(e))
        except StorageError as e:
            self._logger.error("Reservation failed on storage", extra={"user_number": user_number, "error": str(e)})
            return ReservationResult.failure(e.code, "We could not save your booking. Please try again.")

        metadata = {
            "bookingId": booking.id,
            "userNumber": user_details.user_number,
            "userName": user_details.user_name,
            "bookingDate": booking.date,
            "bookingTime": booking.time,
        }
        try:
            link = self._payments.create_payment_link(
                booking=booking,
                amount=self._price,
                currency=self._currency,
                customer_email=user_details.user_email,
                metadata=metadata,
            )
        except Exception as e:
            # No checkout session exists, so no expiry event will ever free this slot.
            self._logger.exception(
                "Payment link creation failed, releasing reservation",
                extra={"booking_id": booking.id, "slot_id": booking.slot_id, "error": str(e)},
            )
            try:
                self._release(booking)
            except StorageError:
                self._logger.exception(
                    "Compensating cancellation failed",
                    extra={"booking_id": booking.id, "slot_id": booking.slot_id, "reason": "orphaned_slot"},
                )
            return ReservationResult.failure(
                BookingErrorCode.PAYMENT_LINK_ERROR,
                "Failed to create payment link. Please try again.",
            )

        self._logger.info(
            "Booking reserved",
            extra={"booking_id": booking.id, "slot_id": booking.slot_id, "user_number": user_details.user_number},
        )
        return ReservationResult(
            success=True,
            booking=booking,
            payment_url=link.url,
            session_id=link.session_id,
        )

    def create_booking_from_fields(self, user_number: str) -> ReservationResult:
        """Book using the fields collected for this user over previous turns."""
        snapshot = self._fields.get_fields(user_number)
        if not snapshot.ready_to_book:
            return ReservationResult.failure(
                BookingErrorCode.VALIDATION_ERROR,
                "Cannot create booking: missing required information "
                f"({', '.join(snapshot.missing_fields)})",
                snapshot.missing_fields,
            )

        values = snapshot.fields
        result = self.reserve_and_book(
            date=values[BookingField.DATE.value],
            time=values[BookingField.TIME.value],
            user_name=values[BookingField.USER_NAME.value],
            user_email=values[BookingField.USER_EMAIL.value],
            user_number=user_number,
        )
        if result.success:
            self._fields.clear(user_number)
        return result

    def confirm_from_payment(self, booking_id: str, payment_details: PaymentDetails) -> Booking:
        """
        Confirm a booking after the caller verified the payment.
        Raises BookingNotFoundError, InvalidBookingTransitionError.
        """
        slot_id = self._require(booking_id).slot_id
        with self._get_lock(slot_id):
            booking = self._bookings.confirm(booking_id, payment_details)
        self._logger.info("Booking confirmed", extra={"booking_id": booking_id, "slot_id": booking.slot_id})
        return booking

    def cancel_from_expiry(self, booking_id: str) -> Booking:
        """Release a booking whose checkout session expired. Paid bookings are kept."""
        return self._release(self._require(booking_id), keep_confirmed=True)

    def cancel_booking(self, booking_id: str, user_number: str | None = None) -> Booking:
        """Cancel a booking and free its slot. With user_number, only that user's bookings match."""
        booking = self._require(booking_id)
        if user_number is not None and booking.user_details.user_number != user_number:
            raise BookingNotFoundError(booking_id)
        return self._release(booking)

    def _require(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def _reserve(self, date_iso: str, time_hhmm: str, user_details: UserDetails) -> Booking:
        unavailable = SlotUnavailableError("This slot is no longer available. Please choose another time.")

        slot = self._slots.find(date_iso, time_hhmm)
        if slot is None or not slot.available:
            raise unavailable

        with self._get_lock(slot.id):
            current = self._slots.get(slot.id)
            if current is None or not current.available:
                raise unavailable

            self._slots.set_availability(current.id, False)
            try:
                return self._bookings.create(current, user_details)
            except StorageError:
                self._slots.set_availability(current.id, True)
                raise

    def _release(self, booking: Booking, keep_confirmed: bool = False) -> Booking:
        # Cancel first: a released slot must never still be held by an active booking.
        # Confirmation takes the same lock, so the status read here is current.
        with self._get_lock(booking.slot_id):
            current = self._require(booking.id)
            if keep_confirmed and current.status == BookingStatus.CONFIRMED:
                self._logger.warning(
                    "Expiry received for a confirmed booking, ignoring",
                    extra={"booking_id": booking.id},
                )
                return current
            was_active = current.is_active
            cancelled = self._bookings.cancel(booking.id)
            if was_active:
                self._slots.set_availability(booking.slot_id, True)
                self._logger.info(
                    "Booking cancelled, slot released",
                    extra={"booking_id": booking.id, "slot_id": booking.slot_id},
                )
            return cancelled


def _validate_request(
    date: str,
    time: str,
    user_name: str,
    user_email: str,
    user_number: str,
) -> tuple[str, str, UserDetails]:
    provided = {
        BookingField.DATE.value: (date or "").strip(),
        BookingField.TIME.value: (time or "").strip(),
        BookingField.USER_NAME.value: (user_name or "").strip(),
        BookingField.USER_EMAIL.value: (user_email or "").strip(),
    }
    missing = [name for name, value in provided.items() if not value]
    if missing:
        raise BookingValidationError(
            f"Cannot create booking: missing required information ({', '.join(missing)})",
            missing,
        )
    if not (user_number or "").strip():
        raise BookingValidationError("Cannot create booking: unknown user number", ["userNumber"])

    date_iso = normalize_date(provided[BookingField.DATE.value])
    if date_iso is None:
        raise BookingValidationError("Date must be in YYYY-MM-DD format", [BookingField.DATE.value])
    time_hhmm = normalize_time(provided[BookingField.TIME.value])
    if time_hhmm is None:
        raise BookingValidationError("Time must be in HH:MM format", [BookingField.TIME.value])
    if "@" not in provided[BookingField.USER_EMAIL.value]:
        raise BookingValidationError("Email address looks invalid", [BookingField.USER_EMAIL.value])

    return (
        date_iso,
        time_hhmm,
        UserDetails(
            user_name=provided[BookingField.USER_NAME.value],
            user_email=provided[BookingField.USER_EMAIL.value],
            user_number=user_number.strip(),
        ),
    )
