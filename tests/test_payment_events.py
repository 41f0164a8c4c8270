from __future__ import annotations

import pytest

from app.application.use_cases.handle_payment_event import (
    CHECKOUT_COMPLETED,
    CHECKOUT_EXPIRED,
    HandlePaymentEventUseCase,
)
from app.application.use_cases.send_reply import SendReplyUseCase
from app.domain.entities.booking import BookingStatus
from app.domain.entities.payment_event import PaymentEvent
from app.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform

USER = "15551234567"


class _BrokenPlatform(MockWhatsAppPlatform):
    def send_text(self, recipient_id: str, text: str) -> None:
        raise RuntimeError("WhatsApp down")


@pytest.fixture
def platform():
    return MockWhatsAppPlatform()


@pytest.fixture
def handler(lifecycle, payments, platform):
    return HandlePaymentEventUseCase(lifecycle, payments, SendReplyUseCase(platform))


@pytest.fixture
def reservation(lifecycle):
    return lifecycle.reserve_and_book("2024-01-10", "09:00", "Jane Doe", "jane@example.com", USER)


def _event(event_type, reservation, user_number=USER):
    return PaymentEvent(
        type=event_type,
        session_id=reservation.session_id,
        booking_id=reservation.booking.id,
        user_number=user_number,
        metadata={"bookingId": reservation.booking.id},
    )


def test_completed_checkout_confirms_and_notifies(handler, lifecycle, payments, platform, reservation):
    payments.mark_paid(reservation.session_id)

    handler.handle(_event(CHECKOUT_COMPLETED, reservation))

    booking = lifecycle.get_booking(reservation.booking.id)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_details.session_id == reservation.session_id
    assert booking.payment_details.amount == 50.0
    [(recipient, text)] = platform.sent
    assert recipient == USER
    assert text.startswith("🎉 Your booking is confirmed!")
    assert "Wednesday, January 10, 2024 at 9:00 AM" in text
    assert reservation.booking.id in text


def test_duplicate_completion_is_ignored(handler, lifecycle, payments, platform, reservation):
    payments.mark_paid(reservation.session_id)
    handler.handle(_event(CHECKOUT_COMPLETED, reservation))
    confirmed_at = lifecycle.get_booking(reservation.booking.id).confirmed_at

    handler.handle(_event(CHECKOUT_COMPLETED, reservation))

    assert lifecycle.get_booking(reservation.booking.id).confirmed_at == confirmed_at
    assert len(platform.sent) == 1


def test_unpaid_session_leaves_booking_pending(handler, lifecycle, platform, reservation):
    handler.handle(_event(CHECKOUT_COMPLETED, reservation))

    assert lifecycle.get_booking(reservation.booking.id).status == BookingStatus.PENDING_PAYMENT
    assert platform.sent == []


def test_expired_checkout_releases_slot(handler, lifecycle, slots, platform, reservation):
    handler.handle(_event(CHECKOUT_EXPIRED, reservation, user_number=None))

    assert lifecycle.get_booking(reservation.booking.id).status == BookingStatus.CANCELLED
    assert slots.get(reservation.booking.slot_id).available is True
    [(recipient, text)] = platform.sent
    assert recipient == USER
    assert f"booking ID {reservation.booking.id} has expired" in text


def test_expiry_after_payment_is_ignored(handler, lifecycle, payments, slots, platform, reservation):
    payments.mark_paid(reservation.session_id)
    handler.handle(_event(CHECKOUT_COMPLETED, reservation))

    handler.handle(_event(CHECKOUT_EXPIRED, reservation))

    assert lifecycle.get_booking(reservation.booking.id).status == BookingStatus.CONFIRMED
    assert slots.get(reservation.booking.slot_id).available is False
    assert len(platform.sent) == 1


def test_unknown_booking_and_event_types_do_not_raise(handler, platform):
    handler.handle(PaymentEvent(type=CHECKOUT_COMPLETED, session_id="cs_x", booking_id="booking_missing", user_number=USER))
    handler.handle(PaymentEvent(type=CHECKOUT_EXPIRED, session_id="cs_x", booking_id=None, user_number=USER))
    handler.handle(PaymentEvent(type="charge.refunded", session_id=None, booking_id=None, user_number=None))

    assert platform.sent == []


def test_notification_failure_keeps_confirmation(lifecycle, payments, reservation):
    handler = HandlePaymentEventUseCase(lifecycle, payments, SendReplyUseCase(_BrokenPlatform()))
    payments.mark_paid(reservation.session_id)

    handler.handle(_event(CHECKOUT_COMPLETED, reservation))

    assert lifecycle.get_booking(reservation.booking.id).status == BookingStatus.CONFIRMED
