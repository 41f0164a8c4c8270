from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

import stripe

from app.application.exceptions import PaymentLinkError, WebhookVerificationError
from app.application.ports.payment_provider import PaymentProviderPort
from app.application.utils.date_parser import format_slot_datetime
from app.domain.entities.booking import Booking, PaymentDetails
from app.domain.entities.payment_event import PaymentEvent, PaymentLink


class StripePayments(PaymentProviderPort):
    """Stripe Checkout sessions as hosted payment links."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str | None,
        base_url: str,
        expiry_minutes: int = 30,
    ) -> None:
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required for Stripe payments")
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._base_url = base_url.rstrip("/")
        self._expiry_minutes = expiry_minutes
        self._logger = logging.getLogger(__name__)

    def create_payment_link(
        self,
        booking: Booking,
        amount: int,
        currency: str,
        customer_email: str,
        metadata: dict[str, str],
    ) -> PaymentLink:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": "Appointment Booking",
                                "description": f"Booking for {format_slot_datetime(booking.date, booking.time)}",
                            },
                            "unit_amount": amount * 100,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=(
                    f"{self._base_url}/booking/success"
                    f"?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}"
                ),
                cancel_url=f"{self._base_url}/booking/cancel?booking_id={booking.id}",
                client_reference_id=booking.id,
                customer_email=customer_email,
                metadata=metadata,
                expires_at=int(time.time()) + self._expiry_minutes * 60,
            )
        except stripe.StripeError as e:
            self._logger.error("Error creating payment link", extra={"booking_id": booking.id, "error": str(e)})
            raise PaymentLinkError(str(e)) from e

        if not session.url:
            raise PaymentLinkError("Stripe returned a checkout session without a URL")

        self._logger.info("Payment link created", extra={"booking_id": booking.id, "reason": session.id})
        return PaymentLink(url=session.url, session_id=session.id)

    def verify_payment(self, session_id: str) -> PaymentDetails | None:
        session = stripe.checkout.Session.retrieve(session_id, api_key=self._secret_key)
        if session.payment_status != "paid":
            self._logger.info(
                "Payment not completed",
                extra={"reason": f"status={session.payment_status}"},
            )
            return None

        payment_intent = session.payment_intent
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id

        return PaymentDetails(
            amount=(session.amount_total or 0) / 100,
            currency=session.currency or "",
            payment_id=payment_intent,
            payment_status=session.payment_status,
            paid_at=datetime.now(timezone.utc).isoformat(),
            session_id=session.id,
        )

    def parse_webhook_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        if not self._webhook_secret:
            raise WebhookVerificationError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(str(e)) from e

        return event_from_payload(event["type"], event["data"]["object"])


def event_from_payload(event_type: str, session: Any) -> PaymentEvent:
    metadata = {str(k): str(v) for k, v in dict(session.get("metadata") or {}).items()}
    return PaymentEvent(
        type=event_type,
        session_id=session.get("id"),
        booking_id=metadata.get("bookingId") or session.get("client_reference_id"),
        user_number=metadata.get("userNumber"),
        metadata=metadata,
    )
