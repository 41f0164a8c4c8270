from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from app.application.exceptions import PaymentLinkError, WebhookVerificationError
from app.application.ports.payment_provider import PaymentProviderPort
from app.domain.entities.booking import Booking, PaymentDetails
from app.domain.entities.payment_event import PaymentEvent, PaymentLink
from app.infrastructure.payments.stripe_payments import event_from_payload


class MockPayments(PaymentProviderPort):
    """
    Local stand-in for the payment provider.

    Sessions are kept in memory and count as paid once mark_paid() is called.
    Webhook payloads are accepted unsigned, in the Stripe event shape.
    """

    def __init__(self, base_url: str, fail: bool = False) -> None:
        self._base_url = base_url.rstrip("/")
        self.fail = fail
        self._sessions: dict[str, dict] = {}
        self._logger = logging.getLogger(__name__)

    def create_payment_link(
        self,
        booking: Booking,
        amount: int,
        currency: str,
        customer_email: str,
        metadata: dict[str, str],
    ) -> PaymentLink:
        if self.fail:
            raise PaymentLinkError("Mock payment provider configured to fail")

        session_id = f"cs_mock_{uuid.uuid4().hex[:12]}"
        self._sessions[session_id] = {
            "amount": amount,
            "currency": currency,
            "booking_id": booking.id,
            "paid": False,
        }
        url = f"{self._base_url}/mock-checkout/{booking.id}?session_id={session_id}"
        self._logger.info("Mock payment link created", extra={"booking_id": booking.id})
        return PaymentLink(url=url, session_id=session_id)

    def mark_paid(self, session_id: str) -> None:
        self._sessions[session_id]["paid"] = True

    def session_for(self, booking_id: str) -> str | None:
        """Latest checkout session created for a booking."""
        matches = [sid for sid, s in self._sessions.items() if s["booking_id"] == booking_id]
        return matches[-1] if matches else None

    def verify_payment(self, session_id: str) -> PaymentDetails | None:
        session = self._sessions.get(session_id)
        if session is None or not session["paid"]:
            return None
        return PaymentDetails(
            amount=float(session["amount"]),
            currency=session["currency"],
            payment_id=f"pi_mock_{session_id[-8:]}",
            payment_status="paid",
            paid_at=datetime.now(timezone.utc).isoformat(),
            session_id=session_id,
        )

    def parse_webhook_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        try:
            event = json.loads(payload.decode("utf-8"))
            return event_from_payload(event["type"], event["data"]["object"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise WebhookVerificationError(f"Invalid webhook payload: {e}") from e
