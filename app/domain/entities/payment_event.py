from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PaymentEvent:
    type: str  # e.g. "checkout.session.completed", "checkout.session.expired"
    session_id: str | None
    booking_id: str | None
    user_number: str | None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentLink:
    url: str
    session_id: str
