from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Slot:
    id: str  # local start timestamp, "YYYY-MM-DDTHH:MM"
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    available: bool = True


@dataclass(frozen=True)
class AvailableDate:
    date: str
    times: list[str] = field(default_factory=list)
