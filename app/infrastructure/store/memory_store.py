from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from app.application.exceptions import (
    BookingNotFoundError,
    InvalidBookingTransitionError,
    StorageError,
)
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.conversation_store import ConversationStorePort
from app.application.ports.field_store import FieldStorePort
from app.application.ports.slot_store import SlotStorePort
from app.application.utils.field_values import normalize_field_value
from app.domain.entities.booking import (
    Booking,
    BookingStatus,
    PaymentDetails,
    UserDetails,
    can_transition,
)
from app.domain.entities.conversation_fields import BookingField, FieldSnapshot
from app.domain.entities.slot import AvailableDate, Slot


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_booking_id(now: datetime) -> str:
    return f"booking_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"


class MemoryConversationStore(ConversationStorePort):
    def __init__(self, history_limit: int = 30) -> None:
        self._threads: dict[str, list[dict[str, Any]]] = {}
        self._processed: set[str] = set()
        self._history_limit = history_limit
        self._lock = threading.Lock()

    def get_history(self, thread_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._threads.get(thread_id, []))

    def append_message(self, thread_id: str, role: str, text: str, meta: dict[str, Any] | None = None) -> None:
        with self._lock:
            self._threads.setdefault(thread_id, [])
            self._threads[thread_id].append(
                {
                    "role": role,
                    "content": text,
                    "meta": dict(meta or {}),
                }
            )
            if len(self._threads[thread_id]) > self._history_limit:
                self._threads[thread_id] = self._threads[thread_id][-self._history_limit :]

    def has_processed(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._processed

    def mark_processed(self, message_id: str) -> None:
        with self._lock:
            self._processed.add(message_id)

    def get_recent_messages(self, thread_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Get recent messages for context."""
        messages = self.get_history(thread_id)
        return messages[-limit:] if messages else []


class MemoryFieldStore(FieldStorePort):
    """
    Per-user booking fields collected across dialogue turns.

    Entries live for the life of the process.
    TODO: evict entries idle for longer than a configurable TTL.
    """

    def __init__(self) -> None:
        self._fields: dict[str, dict[BookingField, str]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()

    def _get_lock(self, user_number: str) -> threading.Lock:
        with self._lock_lock:
            if user_number not in self._locks:
                self._locks[user_number] = threading.Lock()
            return self._locks[user_number]

    def save_field(self, user_number: str, field: BookingField, value: str) -> FieldSnapshot:
        value = normalize_field_value(field, value)
        with self._get_lock(user_number):
            values = self._fields.setdefault(user_number, {})
            values[field] = value
            return FieldSnapshot.from_values(dict(values))

    def get_fields(self, user_number: str) -> FieldSnapshot:
        with self._get_lock(user_number):
            values = self._fields.get(user_number)
            if values is None:
                return FieldSnapshot()
            return FieldSnapshot.from_values(dict(values))

    def clear(self, user_number: str) -> None:
        with self._get_lock(user_number):
            self._fields.pop(user_number, None)


class MemorySlotStore(SlotStorePort):
    """
    In-memory slot collection. Subclasses persist it by overriding _load/_persist;
    every mutation calls _persist before returning and is rolled back if it raises.
    """

    def __init__(self, slot_factory: Callable[[], list[Slot]] | None = None) -> None:
        self._slot_factory = slot_factory or (lambda: [])
        self._slots: list[Slot] | None = None
        self._positions: dict[str, int] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def _load(self) -> list[Slot]:
        return self._slot_factory()

    def _persist(self, slots: list[Slot]) -> None:
        pass

    def _ensure_loaded(self) -> list[Slot]:
        if self._slots is None:
            slots = self._load()
            self._slots = list(slots)
            self._positions = {slot.id: i for i, slot in enumerate(self._slots)}
        return self._slots

    def all(self) -> list[Slot]:
        with self._lock:
            return list(self._ensure_loaded())

    def list_available(self) -> list[Slot]:
        with self._lock:
            return [slot for slot in self._ensure_loaded() if slot.available]

    def list_available_grouped_by_date(self) -> list[AvailableDate]:
        grouped: dict[str, list[str]] = {}
        for slot in self.list_available():
            grouped.setdefault(slot.date, []).append(slot.time)
        return [AvailableDate(date=d, times=times) for d, times in grouped.items()]

    def get(self, slot_id: str) -> Slot | None:
        with self._lock:
            slots = self._ensure_loaded()
            position = self._positions.get(slot_id)
            return slots[position] if position is not None else None

    def find(self, date: str, time: str) -> Slot | None:
        with self._lock:
            for slot in self._ensure_loaded():
                if slot.date == date and slot.time == time:
                    return slot
            return None

    def set_availability(self, slot_id: str, available: bool) -> None:
        with self._lock:
            slots = self._ensure_loaded()
            position = self._positions.get(slot_id)
            if position is None:
                return

            previous = slots[position]
            if previous.available == available:
                return

            slots[position] = replace(previous, available=available)
            try:
                self._persist(slots)
            except StorageError:
                slots[position] = previous
                raise
            self._logger.info(
                "Slot availability changed",
                extra={"slot_id": slot_id, "available": available},
            )


class MemoryBookingStore(BookingStorePort):
    """In-memory booking records keyed by id. Same persistence hooks as MemorySlotStore."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now
        self._bookings: dict[str, Booking] | None = None
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def _load(self) -> dict[str, Booking]:
        return {}

    def _persist(self, bookings: dict[str, Booking]) -> None:
        pass

    def _ensure_loaded(self) -> dict[str, Booking]:
        if self._bookings is None:
            self._bookings = dict(self._load())
        return self._bookings

    def _put(self, booking: Booking, previous: Booking | None) -> None:
        bookings = self._ensure_loaded()
        bookings[booking.id] = booking
        try:
            self._persist(bookings)
        except StorageError:
            if previous is None:
                bookings.pop(booking.id, None)
            else:
                bookings[booking.id] = previous
            raise

    def _require(self, booking_id: str) -> Booking:
        booking = self._ensure_loaded().get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def create(self, slot: Slot, user_details: UserDetails) -> Booking:
        with self._lock:
            now = self._clock()
            booking = Booking(
                id=new_booking_id(now),
                slot_id=slot.id,
                date=slot.date,
                time=slot.time,
                user_details=user_details,
                status=BookingStatus.PENDING_PAYMENT,
                created_at=now.isoformat(),
            )
            self._put(booking, previous=None)
            self._logger.info("Booking record created", extra={"booking_id": booking.id, "slot_id": slot.id})
            return booking

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._ensure_loaded().get(booking_id)

    def confirm(self, booking_id: str, payment_details: PaymentDetails) -> Booking:
        with self._lock:
            booking = self._require(booking_id)
            if booking.status == BookingStatus.CONFIRMED:
                return booking
            if not can_transition(booking.status, BookingStatus.CONFIRMED):
                raise InvalidBookingTransitionError(
                    booking_id, booking.status.value, BookingStatus.CONFIRMED.value
                )

            confirmed = booking.confirmed(payment_details, self._clock().isoformat())
            self._put(confirmed, previous=booking)
            self._logger.info("Booking record confirmed", extra={"booking_id": booking_id})
            return confirmed

    def cancel(self, booking_id: str) -> Booking:
        with self._lock:
            booking = self._require(booking_id)
            if booking.status == BookingStatus.CANCELLED:
                return booking

            cancelled = booking.cancelled(self._clock().isoformat())
            self._put(cancelled, previous=booking)
            self._logger.info("Booking record cancelled", extra={"booking_id": booking_id})
            return cancelled

    def list_by_user(self, user_number: str) -> list[Booking]:
        with self._lock:
            return [
                b for b in self._ensure_loaded().values()
                if b.user_details.user_number == user_number
            ]

    def all(self) -> list[Booking]:
        with self._lock:
            return list(self._ensure_loaded().values())
