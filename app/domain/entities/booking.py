from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Allowed status transitions; nothing leaves "cancelled".
_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class UserDetails:
    user_name: str
    user_email: str
    user_number: str


@dataclass(frozen=True)
class PaymentDetails:
    amount: float
    currency: str
    payment_id: str | None
    payment_status: str
    paid_at: str
    session_id: str | None = None


@dataclass(frozen=True)
class Booking:
    id: str
    slot_id: str
    date: str
    time: str
    user_details: UserDetails
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    payment_details: PaymentDetails | None = None
    created_at: str | None = None
    confirmed_at: str | None = None
    cancelled_at: str | None = None

    @property
    def is_active(self) -> bool:
        """True while the booking still holds its slot."""
        return self.status != BookingStatus.CANCELLED

    def confirmed(self, payment_details: PaymentDetails, at: str) -> Booking:
        return replace(
            self,
            status=BookingStatus.CONFIRMED,
            payment_details=payment_details,
            confirmed_at=at,
        )

    def cancelled(self, at: str) -> Booking:
        return replace(self, status=BookingStatus.CANCELLED, cancelled_at=at)
