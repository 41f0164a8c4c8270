from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
import stripe

from app.application.exceptions import PaymentLinkError, WebhookVerificationError
from app.domain.entities.booking import Booking, UserDetails
from app.infrastructure.payments.mock_payments import MockPayments
from app.infrastructure.payments.stripe_payments import StripePayments, event_from_payload

BOOKING = Booking(
    id="booking_1",
    slot_id="2024-01-10T09:00",
    date="2024-01-10",
    time="09:00",
    user_details=UserDetails("Jane Doe", "jane@example.com", "15551234567"),
)
METADATA = {"bookingId": "booking_1", "userNumber": "15551234567"}


def _stripe():
    return StripePayments(secret_key="sk_test", webhook_secret="whsec_test", base_url="https://example.com/", expiry_minutes=30)


def test_checkout_session_parameters(monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    link = _stripe().create_payment_link(BOOKING, 50, "usd", "jane@example.com", METADATA)

    assert link.url == "https://checkout.stripe.com/c/pay/cs_test_1"
    assert link.session_id == "cs_test_1"
    item = captured["line_items"][0]
    assert item["price_data"]["unit_amount"] == 5000
    assert item["price_data"]["product_data"]["name"] == "Appointment Booking"
    assert captured["mode"] == "payment"
    assert captured["client_reference_id"] == "booking_1"
    assert captured["metadata"] == METADATA
    assert captured["success_url"] == (
        "https://example.com/booking/success?session_id={CHECKOUT_SESSION_ID}&booking_id=booking_1"
    )
    assert captured["cancel_url"] == "https://example.com/booking/cancel?booking_id=booking_1"


def test_stripe_errors_become_payment_link_errors(monkeypatch):
    def fake_create(**kwargs):
        raise stripe.StripeError("card processing unavailable")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(PaymentLinkError):
        _stripe().create_payment_link(BOOKING, 50, "usd", "jane@example.com", METADATA)


def test_verify_payment_only_when_paid(monkeypatch):
    sessions = {
        "cs_paid": SimpleNamespace(
            id="cs_paid", payment_status="paid", amount_total=5000, currency="usd", payment_intent="pi_1"
        ),
        "cs_open": SimpleNamespace(
            id="cs_open", payment_status="unpaid", amount_total=5000, currency="usd", payment_intent=None
        ),
    }
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda session_id, **kwargs: sessions[session_id])

    details = _stripe().verify_payment("cs_paid")

    assert (details.amount, details.currency, details.payment_id) == (50.0, "usd", "pi_1")
    assert details.session_id == "cs_paid"
    assert _stripe().verify_payment("cs_open") is None


def test_webhook_signature_is_required():
    payments = _stripe()

    with pytest.raises(WebhookVerificationError):
        payments.parse_webhook_event(b"{}", None)
    with pytest.raises(WebhookVerificationError):
        payments.parse_webhook_event(b"{}", "t=1,v1=bad")


def test_event_from_payload_prefers_metadata():
    event = event_from_payload(
        "checkout.session.completed",
        {"id": "cs_1", "client_reference_id": "booking_ref", "metadata": METADATA},
    )
    fallback = event_from_payload("checkout.session.expired", {"id": "cs_2", "client_reference_id": "booking_ref"})

    assert (event.booking_id, event.user_number, event.session_id) == ("booking_1", "15551234567", "cs_1")
    assert (fallback.booking_id, fallback.user_number) == ("booking_ref", None)


def test_mock_payments_round_trip():
    payments = MockPayments(base_url="http://test/")
    link = payments.create_payment_link(BOOKING, 50, "usd", "jane@example.com", METADATA)

    assert link.url == f"http://test/mock-checkout/booking_1?session_id={link.session_id}"
    assert payments.verify_payment(link.session_id) is None
    payments.mark_paid(link.session_id)
    assert payments.verify_payment(link.session_id).amount == 50.0

    body = json.dumps({"type": "checkout.session.completed", "data": {"object": {"id": link.session_id, "metadata": METADATA}}})
    assert payments.parse_webhook_event(body.encode(), None).booking_id == "booking_1"
    with pytest.raises(WebhookVerificationError):
        payments.parse_webhook_event(b"not json", None)
