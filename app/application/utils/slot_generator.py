from __future__ import annotations

from datetime import datetime, timedelta

from app.application.utils.date_parser import slot_id_for
from app.domain.entities.slot import Slot


def generate_default_slots(
    now: datetime,
    days_ahead: int = 14,
    start_hour: int = 9,
    end_hour: int = 17,
) -> list[Slot]:
    """
    Hourly slots for the next `days_ahead` days, starting at start_hour up to (not
    including) end_hour. `now` is the business-local current time: hours already started
    today are skipped, and today is skipped entirely once end_hour has been reached.
    """
    slots: list[Slot] = []
    today = now.date()

    for day in range(days_ahead):
        if day == 0 and now.hour >= end_hour:
            continue

        current = today + timedelta(days=day)
        date_iso = current.isoformat()
        for hour in range(start_hour, end_hour):
            if day == 0 and hour <= now.hour:
                continue
            time_hhmm = f"{hour:02d}:00"
            slots.append(
                Slot(
                    id=slot_id_for(date_iso, time_hhmm),
                    date=date_iso,
                    time=time_hhmm,
                    available=True,
                )
            )

    return slots
