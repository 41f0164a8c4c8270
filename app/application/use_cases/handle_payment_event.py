from __future__ import annotations

import logging

from app.application.exceptions import BookingNotFoundError
from app.application.ports.payment_provider import PaymentProviderPort
from app.application.use_cases.booking_lifecycle import BookingLifecycleManager
from app.application.use_cases.send_reply import SendReplyUseCase
from app.application.utils.date_parser import format_slot_datetime
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.payment_event import PaymentEvent

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"


def confirmation_text(booking: Booking) -> str:
    return (
        "🎉 Your booking is confirmed! \n\n"
        f"Date and time: {format_slot_datetime(booking.date, booking.time)}\n\n"
        f"Booking ID: {booking.id}\n\n"
        "Thank you for your payment. We look forward to seeing you!"
    )


def expiry_text(booking_id: str) -> str:
    return (
        f"Your payment session for booking ID {booking_id} has expired. "
        "The time slot has been released. "
        "Please make a new booking if you still wish to schedule an appointment."
    )


class HandlePaymentEventUseCase:
    """
    Reconciles bookings with payment provider webhooks.

    Deliveries may be duplicated or arrive for unknown bookings, so every failure is
    logged and swallowed here rather than propagated to the webhook endpoint.
    """

    def __init__(
        self,
        lifecycle: BookingLifecycleManager,
        payments: PaymentProviderPort,
        send_reply: SendReplyUseCase,
    ) -> None:
        self._lifecycle = lifecycle
        self._payments = payments
        self._send_reply = send_reply
        self._logger = logging.getLogger(__name__)

    def handle(self, event: PaymentEvent) -> None:
        try:
            if event.type == CHECKOUT_COMPLETED:
                self._on_completed(event)
            elif event.type == CHECKOUT_EXPIRED:
                self._on_expired(event)
            else:
                self._logger.info("Unhandled payment event type", extra={"event_type": event.type})
        except Exception as e:
            self._logger.exception(
                "Error handling payment event",
                extra={"event_type": event.type, "booking_id": event.booking_id, "error": str(e)},
            )

    def _on_completed(self, event: PaymentEvent) -> None:
        if not event.booking_id or not event.session_id:
            self._logger.warning("Completed checkout without booking reference", extra={"event_type": event.type})
            return

        existing = self._lifecycle.get_booking(event.booking_id)
        if existing is None:
            raise BookingNotFoundError(event.booking_id)
        if existing.status == BookingStatus.CONFIRMED:
            self._logger.info("Duplicate payment confirmation ignored", extra={"booking_id": existing.id})
            return

        payment_details = self._payments.verify_payment(event.session_id)
        if payment_details is None:
            self._logger.warning("Payment not completed", extra={"booking_id": event.booking_id})
            return

        booking = self._lifecycle.confirm_from_payment(event.booking_id, payment_details)
        recipient = event.user_number or booking.user_details.user_number
        self._send_reply.notify(recipient_id=recipient, text=confirmation_text(booking))

    def _on_expired(self, event: PaymentEvent) -> None:
        if not event.booking_id:
            self._logger.warning("Expired checkout without booking reference", extra={"event_type": event.type})
            return

        existing = self._lifecycle.get_booking(event.booking_id)
        if existing is None:
            raise BookingNotFoundError(event.booking_id)
        if existing.status != BookingStatus.PENDING_PAYMENT:
            self._logger.info(
                "Expiry ignored for settled booking",
                extra={"booking_id": existing.id, "reason": existing.status.value},
            )
            return

        booking = self._lifecycle.cancel_from_expiry(event.booking_id)
        recipient = event.user_number or booking.user_details.user_number
        self._send_reply.notify(recipient_id=recipient, text=expiry_text(booking.id))
