from __future__ import annotations

import re
from datetime import date, datetime

_DATE_PATTERN = re.compile(r"^\s*(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[T\s].*)?$")

_TIME_PATTERNS = [
    re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?\s*(am|pm|a\.m\.|p\.m\.)?$"),
    re.compile(r"^(\d{1,2})\s*(am|pm|a\.m\.|p\.m\.)$"),
    re.compile(r"^(\d{1,2})(h)?$"),
]


def parse_date(text: str) -> date | None:
    """Parse a calendar date in YYYY-MM-DD (or YYYY/M/D) form. Returns None if invalid."""
    match = _DATE_PATTERN.match(text or "")
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_time(text: str) -> tuple[int, int] | None:
    """Parse time of day from text. Returns (hour, minute) or None."""
    normalized = (text or "").lower().strip()

    for pattern in _TIME_PATTERNS:
        match = pattern.match(normalized)
        if not match:
            continue

        hour = int(match.group(1))
        minute = 0
        am_pm = None
        for group in match.groups()[1:]:
            if group is None:
                continue
            if group.isdigit():
                minute = int(group)
            elif group.startswith(("a", "p")):
                am_pm = group[0]

        if am_pm is not None and not 1 <= hour <= 12:
            return None
        if am_pm == "p" and hour != 12:
            hour += 12
        elif am_pm == "a" and hour == 12:
            hour = 0

        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return (hour, minute)
        return None

    return None


def normalize_date(text: str) -> str | None:
    parsed = parse_date(text)
    return parsed.isoformat() if parsed else None


def normalize_time(text: str) -> str | None:
    """Normalize "9:00", "9am", "09:00:00" and friends to zero-padded "HH:MM"."""
    parsed = parse_time(text)
    if parsed is None:
        return None
    hour, minute = parsed
    return f"{hour:02d}:{minute:02d}"


def slot_id_for(date_iso: str, time_hhmm: str) -> str:
    return f"{date_iso}T{time_hhmm}"


def format_slot_datetime(date_iso: str, time_hhmm: str) -> str:
    """Human readable slot time, e.g. "Wednesday, January 10, 2024 at 9:00 AM"."""
    try:
        dt = datetime.strptime(f"{date_iso} {time_hhmm}", "%Y-%m-%d %H:%M")
    except ValueError:
        return f"{date_iso} {time_hhmm}"
    hour_12 = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{dt.strftime('%A, %B')} {dt.day}, {dt.year} at {hour_12}:{dt.minute:02d} {suffix}"
