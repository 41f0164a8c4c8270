from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.booking import Booking, PaymentDetails, UserDetails
from app.domain.entities.slot import Slot


class BookingStorePort(ABC):
    @abstractmethod
    def create(self, slot: Slot, user_details: UserDetails) -> Booking:
        """
        Create a pending_payment booking for a slot the caller already reserved.
        Raises StorageError if the record cannot be persisted.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def confirm(self, booking_id: str, payment_details: PaymentDetails) -> Booking:
        """
        Mark a booking confirmed and attach payment details.
        Confirming an already confirmed booking returns it unchanged.
        Raises BookingNotFoundError, InvalidBookingTransitionError.
        """
        raise NotImplementedError

    @abstractmethod
    def cancel(self, booking_id: str) -> Booking:
        """
        Mark a booking cancelled. Cancelling twice returns the booking unchanged.
        Raises BookingNotFoundError.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_number: str) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def all(self) -> list[Booking]:
        raise NotImplementedError
