from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from app.application.exceptions import WebhookVerificationError
from app.application.ports.payment_provider import PaymentProviderPort
from app.application.use_cases.handle_payment_event import CHECKOUT_COMPLETED, HandlePaymentEventUseCase
from app.domain.entities.payment_event import PaymentEvent
from app.infrastructure.payments.mock_payments import MockPayments
from app.wiring.dependencies import get_handle_payment_event_use_case, get_payment_provider


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    payments: PaymentProviderPort = Depends(get_payment_provider),
    use_case: HandlePaymentEventUseCase = Depends(get_handle_payment_event_use_case),
) -> Response:
    body = await request.body()
    signature = request.headers.get("Stripe-Signature")

    try:
        event = payments.parse_webhook_event(body, signature)
    except WebhookVerificationError as e:
        logger.warning("Stripe webhook rejected", extra={"error": str(e)})
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    logger.info("Payment event received", extra={"event_type": event.type, "booking_id": event.booking_id})
    background_tasks.add_task(use_case.handle, event)
    return JSONResponse({"received": True})


@router.get("/booking/success")
def booking_success(booking_id: str | None = None) -> PlainTextResponse:
    return PlainTextResponse(
        "Thank you! Your payment was received. "
        "You will get a WhatsApp confirmation for your booking shortly."
    )


@router.get("/booking/cancel")
def booking_cancel(booking_id: str | None = None) -> PlainTextResponse:
    return PlainTextResponse(
        "Payment was not completed. Your time slot stays reserved until the payment link expires."
    )


@router.get("/mock-checkout/{booking_id}")
def mock_checkout(
    booking_id: str,
    session_id: str = Query(...),
    payments: PaymentProviderPort = Depends(get_payment_provider),
    use_case: HandlePaymentEventUseCase = Depends(get_handle_payment_event_use_case),
) -> PlainTextResponse:
    """Local checkout page for MockPayments: pays the session and delivers the completion event."""
    if not isinstance(payments, MockPayments):
        raise HTTPException(status_code=404, detail="Not found")
    if payments.session_for(booking_id) != session_id:
        raise HTTPException(status_code=404, detail="Unknown checkout session")
    try:
        payments.mark_paid(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Unknown checkout session")

    use_case.handle(
        PaymentEvent(type=CHECKOUT_COMPLETED, session_id=session_id, booking_id=booking_id, user_number=None)
    )
    return booking_success(booking_id)
