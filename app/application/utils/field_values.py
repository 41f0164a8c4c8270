from __future__ import annotations

from app.application.exceptions import BookingValidationError
from app.application.utils.date_parser import normalize_date, normalize_time
from app.domain.entities.conversation_fields import BookingField


def parse_field_name(name: str) -> BookingField:
    try:
        return BookingField((name or "").strip())
    except ValueError:
        allowed = ", ".join(f.value for f in BookingField)
        raise BookingValidationError(f"Unknown field '{name}'. Expected one of: {allowed}")


def normalize_field_value(field: BookingField, value: str) -> str:
    """Clean a field value before storing it; date and time get canonical formats."""
    cleaned = (value or "").strip()
    if not cleaned:
        return cleaned

    if field == BookingField.DATE:
        normalized = normalize_date(cleaned)
        if normalized is None:
            raise BookingValidationError("Date must be in YYYY-MM-DD format", [field.value])
        return normalized

    if field == BookingField.TIME:
        normalized = normalize_time(cleaned)
        if normalized is None:
            raise BookingValidationError("Time must be in HH:MM format", [field.value])
        return normalized

    return cleaned
