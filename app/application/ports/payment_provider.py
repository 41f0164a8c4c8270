from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.booking import Booking, PaymentDetails
from app.domain.entities.payment_event import PaymentEvent, PaymentLink


class PaymentProviderPort(ABC):
    @abstractmethod
    def create_payment_link(
        self,
        booking: Booking,
        amount: int,
        currency: str,
        customer_email: str,
        metadata: dict[str, str],
    ) -> PaymentLink:
        """Create a hosted checkout for a booking. Raises PaymentLinkError."""
        raise NotImplementedError

    @abstractmethod
    def verify_payment(self, session_id: str) -> PaymentDetails | None:
        """Return payment details if the session is paid, None otherwise."""
        raise NotImplementedError

    @abstractmethod
    def parse_webhook_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        """Verify and decode a webhook delivery. Raises WebhookVerificationError."""
        raise NotImplementedError
