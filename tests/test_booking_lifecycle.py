from __future__ import annotations

import logging
import threading
from datetime import datetime

import pytest

from app.application.exceptions import (
    BookingErrorCode,
    BookingNotFoundError,
    InvalidBookingTransitionError,
    StorageError,
)
from app.application.use_cases.booking_lifecycle import BookingLifecycleManager
from app.application.utils.slot_generator import generate_default_slots
from app.domain.entities.booking import BookingStatus, PaymentDetails
from app.domain.entities.conversation_fields import BookingField
from app.infrastructure.payments.mock_payments import MockPayments
from app.infrastructure.store.memory_store import MemoryBookingStore, MemorySlotStore

PAYMENT = PaymentDetails(amount=50.0, currency="usd", payment_id="pi_1", payment_status="paid", paid_at="now")


def _book(lifecycle, number="15551234567", date="2024-01-10", time="09:00"):
    return lifecycle.reserve_and_book(
        date=date,
        time=time,
        user_name="Jane Doe",
        user_email="jane@example.com",
        user_number=number,
    )


def test_reserve_marks_slot_and_returns_payment_link(lifecycle, slots, payments):
    result = _book(lifecycle, time="9:00")

    assert result.success
    assert result.booking.status == BookingStatus.PENDING_PAYMENT
    assert result.booking.slot_id == "2024-01-10T09:00"
    assert result.booking.time == "09:00"
    assert result.payment_url.startswith("http://test/mock-checkout/")
    assert result.session_id == payments.session_for(result.booking.id)
    assert slots.get("2024-01-10T09:00").available is False
    dates = lifecycle.get_available_dates()
    assert "09:00" not in dates[0].times


def test_second_reservation_for_same_slot_fails(lifecycle, bookings):
    assert _book(lifecycle, number="1").success

    result = _book(lifecycle, number="2")

    assert not result.success
    assert result.error == BookingErrorCode.SLOT_UNAVAILABLE
    assert len(bookings.all()) == 1


def test_unknown_slot_is_unavailable(lifecycle):
    result = _book(lifecycle, date="2030-01-01")

    assert result.error == BookingErrorCode.SLOT_UNAVAILABLE


def test_concurrent_reservations_yield_one_booking(lifecycle, bookings):
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def worker(n):
        barrier.wait()
        result = _book(lifecycle, number=str(n))
        with results_lock:
            results.append(result)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.success for r in results) == 1
    assert {r.error for r in results if not r.success} == {BookingErrorCode.SLOT_UNAVAILABLE}
    assert len([b for b in bookings.all() if b.is_active]) == 1


def test_payment_link_failure_releases_slot(slots, bookings, fields):
    lifecycle = BookingLifecycleManager(
        slots=slots,
        bookings=bookings,
        payments=MockPayments(base_url="http://test", fail=True),
        fields=fields,
        price=50,
        currency="usd",
    )

    result = _book(lifecycle)

    assert not result.success
    assert result.error == BookingErrorCode.PAYMENT_LINK_ERROR
    assert slots.get("2024-01-10T09:00").available is True
    [booking] = bookings.all()
    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancelled_at is not None


class _UnreachableProvider(MockPayments):
    def create_payment_link(self, **kwargs):
        raise ConnectionError("provider unreachable")


def test_unexpected_provider_error_releases_slot(slots, bookings, fields):
    lifecycle = BookingLifecycleManager(
        slots, bookings, _UnreachableProvider(base_url="http://test"), fields, price=50, currency="usd"
    )

    result = _book(lifecycle)

    assert not result.success
    assert result.error == BookingErrorCode.PAYMENT_LINK_ERROR
    assert slots.get("2024-01-10T09:00").available is True
    [booking] = bookings.all()
    assert booking.status == BookingStatus.CANCELLED


class _NoReleaseSlotStore(MemorySlotStore):
    def set_availability(self, slot_id, available):
        if available:
            raise StorageError("disk full")
        super().set_availability(slot_id, available)


def test_failed_compensation_logs_orphaned_slot(bookings, fields, caplog):
    slots = _NoReleaseSlotStore(
        slot_factory=lambda: generate_default_slots(now=datetime(2024, 1, 9, 18, 0), days_ahead=3)
    )
    lifecycle = BookingLifecycleManager(
        slots, bookings, MockPayments(base_url="http://test", fail=True), fields, price=50, currency="usd"
    )

    with caplog.at_level(logging.ERROR):
        result = _book(lifecycle)

    assert result.error == BookingErrorCode.PAYMENT_LINK_ERROR
    assert slots.get("2024-01-10T09:00").available is False
    [record] = [r for r in caplog.records if getattr(r, "reason", None) == "orphaned_slot"]
    assert record.slot_id == "2024-01-10T09:00"


class _FailingBookingStore(MemoryBookingStore):
    def _persist(self, bookings):
        raise StorageError("disk full")


def test_booking_write_failure_restores_slot(slots, payments, fields):
    bookings = _FailingBookingStore()
    lifecycle = BookingLifecycleManager(slots, bookings, payments, fields, price=50, currency="usd")

    result = _book(lifecycle)

    assert result.error == BookingErrorCode.STORAGE_ERROR
    assert slots.get("2024-01-10T09:00").available is True
    assert bookings.all() == []


def test_validation_reports_missing_fields(lifecycle):
    result = lifecycle.reserve_and_book(date="2024-01-10", time="", user_name="", user_email="a@b.c", user_number="1")

    assert result.error == BookingErrorCode.VALIDATION_ERROR
    assert result.missing_fields == ["time", "userName"]


@pytest.mark.parametrize(
    "date,time,email",
    [("10/01/2024", "09:00", "a@b.c"), ("2024-01-10", "later", "a@b.c"), ("2024-01-10", "09:00", "nope")],
)
def test_validation_rejects_malformed_input(lifecycle, slots, date, time, email):
    result = lifecycle.reserve_and_book(date=date, time=time, user_name="Jane", user_email=email, user_number="1")

    assert result.error == BookingErrorCode.VALIDATION_ERROR
    assert all(s.available for s in slots.all())


def test_confirm_is_idempotent(lifecycle, slots):
    booking = _book(lifecycle).booking

    first = lifecycle.confirm_from_payment(booking.id, PAYMENT)
    second = lifecycle.confirm_from_payment(booking.id, PAYMENT)

    assert first.status == BookingStatus.CONFIRMED
    assert second.confirmed_at == first.confirmed_at
    assert slots.get(booking.slot_id).available is False


def test_expiry_releases_pending_booking(lifecycle, slots):
    booking = _book(lifecycle).booking

    cancelled = lifecycle.cancel_from_expiry(booking.id)

    assert cancelled.status == BookingStatus.CANCELLED
    assert slots.get(booking.slot_id).available is True
    assert _book(lifecycle, number="other").success


def test_expiry_after_payment_keeps_booking(lifecycle, slots):
    booking = _book(lifecycle).booking
    lifecycle.confirm_from_payment(booking.id, PAYMENT)

    result = lifecycle.cancel_from_expiry(booking.id)

    assert result.status == BookingStatus.CONFIRMED
    assert slots.get(booking.slot_id).available is False


class _ConfirmingBookingStore(MemoryBookingStore):
    """Lets a payment confirmation land right after the next read."""

    def __init__(self):
        super().__init__()
        self.confirm_after_read = None

    def get(self, booking_id):
        seen = super().get(booking_id)
        confirm, self.confirm_after_read = self.confirm_after_read, None
        if confirm is not None:
            confirm(booking_id, PAYMENT)
        return seen


def test_expiry_racing_payment_keeps_booking(slots, payments, fields):
    bookings = _ConfirmingBookingStore()
    lifecycle = BookingLifecycleManager(slots, bookings, payments, fields, price=50, currency="usd")
    booking = _book(lifecycle).booking
    bookings.confirm_after_read = lifecycle.confirm_from_payment

    result = lifecycle.cancel_from_expiry(booking.id)

    assert result.status == BookingStatus.CONFIRMED
    assert bookings.get(booking.id).status == BookingStatus.CONFIRMED
    assert slots.get(booking.slot_id).available is False


def test_cancelled_booking_stays_cancelled(lifecycle):
    booking = _book(lifecycle).booking
    lifecycle.cancel_booking(booking.id)

    with pytest.raises(InvalidBookingTransitionError):
        lifecycle.confirm_from_payment(booking.id, PAYMENT)
    assert lifecycle.cancel_booking(booking.id).status == BookingStatus.CANCELLED


def test_cancel_twice_does_not_free_a_rebooked_slot(lifecycle, slots):
    first = _book(lifecycle, number="1").booking
    lifecycle.cancel_booking(first.id)
    second = _book(lifecycle, number="2").booking

    lifecycle.cancel_booking(first.id)

    assert second.slot_id == first.slot_id
    assert slots.get(first.slot_id).available is False


def test_cancel_checks_ownership(lifecycle):
    booking = _book(lifecycle, number="1").booking

    with pytest.raises(BookingNotFoundError):
        lifecycle.cancel_booking(booking.id, user_number="2")
    with pytest.raises(BookingNotFoundError):
        lifecycle.cancel_booking("booking_missing")

    assert lifecycle.cancel_booking(booking.id, user_number="1").status == BookingStatus.CANCELLED


def test_create_from_fields_books_and_clears(lifecycle, fields):
    fields.save_field("1", BookingField.DATE, "2024-01-11")
    fields.save_field("1", BookingField.TIME, "2pm")
    fields.save_field("1", BookingField.USER_NAME, "Jane Doe")
    fields.save_field("1", BookingField.USER_EMAIL, "jane@example.com")

    result = lifecycle.create_booking_from_fields("1")

    assert result.success
    assert result.booking.slot_id == "2024-01-11T14:00"
    assert fields.get_fields("1").fields == {}
    assert lifecycle.list_bookings_by_user("1") == [result.booking]


def test_create_from_fields_reports_missing(lifecycle, fields):
    fields.save_field("1", BookingField.DATE, "2024-01-11")

    result = lifecycle.create_booking_from_fields("1")

    assert result.error == BookingErrorCode.VALIDATION_ERROR
    assert result.missing_fields == ["time", "userName", "userEmail"]
    assert fields.get_fields("1").fields == {"date": "2024-01-11"}


def test_failed_create_from_fields_keeps_fields(lifecycle, fields):
    _book(lifecycle, number="other")
    for field, value in (
        (BookingField.DATE, "2024-01-10"),
        (BookingField.TIME, "09:00"),
        (BookingField.USER_NAME, "Jane"),
        (BookingField.USER_EMAIL, "jane@example.com"),
    ):
        fields.save_field("1", field, value)

    result = lifecycle.create_booking_from_fields("1")

    assert result.error == BookingErrorCode.SLOT_UNAVAILABLE
    assert fields.get_fields("1").ready_to_book
