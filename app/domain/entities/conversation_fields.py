from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BookingField(str, Enum):
    DATE = "date"
    TIME = "time"
    USER_NAME = "userName"
    USER_EMAIL = "userEmail"


# Order in which missing fields are reported back to the agent.
REQUIRED_FIELDS: tuple[BookingField, ...] = (
    BookingField.DATE,
    BookingField.TIME,
    BookingField.USER_NAME,
    BookingField.USER_EMAIL,
)


@dataclass(frozen=True)
class FieldSnapshot:
    fields: dict[str, str] = field(default_factory=dict)
    missing_fields: list[str] = field(default_factory=lambda: [f.value for f in REQUIRED_FIELDS])
    ready_to_book: bool = False

    @classmethod
    def from_values(cls, values: dict[BookingField, str]) -> FieldSnapshot:
        missing = [f.value for f in REQUIRED_FIELDS if not values.get(f)]
        return cls(
            fields={f.value: v for f, v in values.items()},
            missing_fields=missing,
            ready_to_book=not missing,
        )
