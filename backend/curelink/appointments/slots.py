from __future__ import annotations

from datetime import date, time

from sqlalchemy.orm import Session

from curelink import crud

# Hourly consultation blocks starting at noon; weekday index per date.weekday().
_WEEKDAY_HOURS = range(12, 20)
_SATURDAY_HOURS = range(12, 16)


def _label(hour: int) -> str:
    return time(hour, 0).strftime("%I:%M %p").lstrip("0")


def candidate_slots(day: date) -> list[str]:
    weekday = day.weekday()
    if weekday == 6:
        return []
    hours = _SATURDAY_HOURS if weekday == 5 else _WEEKDAY_HOURS
    return [_label(hour) for hour in hours]


def available_slots(db: Session, doctor_id: int, day: date) -> list[str]:
    taken = crud.occupied_slots(db, doctor_id, day.isoformat())
    return [slot for slot in candidate_slots(day) if slot not in taken]
