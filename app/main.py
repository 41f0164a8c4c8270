import logging

from fastapi import FastAPI

from app.api.payments import router as payments_router
from app.api.v1.bookings import router as bookings_router
from app.api.webhooks import router as webhooks_router
from app.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in (
            "message_id", "user_number", "booking_id", "slot_id", "available",
            "tool", "event_type", "reply_text", "reason", "error",
        ):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="WhatsApp Booking Assistant", version="1.0.0")

app.include_router(webhooks_router, tags=["webhooks"])
app.include_router(payments_router, tags=["payments"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
