"""
Medication reminders.

``MedicationStore`` is the persistence boundary for a patient's reminder list:
the list is loaded once when the store is created and written through on every
mutation. ``process_due_reminders`` is the scheduled job that turns due
reminders into notifications, at most once per reminder per day.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from curelink import models, notifications

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationEntry:
    id: int
    name: str
    reminder_time: str  # HH:MM


class MedicationStore(Protocol):
    def entries(self) -> list[MedicationEntry]: ...

    def add(self, name: str, reminder_time: str) -> MedicationEntry: ...

    def remove(self, medication_id: int) -> bool: ...


def _entry(row: models.Medication) -> MedicationEntry:
    return MedicationEntry(id=row.id, name=row.name, reminder_time=row.reminder_time)


class SqlMedicationStore:
    def __init__(self, db: Session, patient_id: int, clock: Callable[[], datetime] = datetime.now) -> None:
        self._db = db
        self._patient_id = patient_id
        self._clock = clock
        rows = (
            db.query(models.Medication)
            .filter(models.Medication.patient_id == patient_id)
            .order_by(models.Medication.reminder_time, models.Medication.id)
            .all()
        )
        self._entries = [_entry(row) for row in rows]

    def entries(self) -> list[MedicationEntry]:
        return list(self._entries)

    def add(self, name: str, reminder_time: str) -> MedicationEntry:
        row = models.Medication(patient_id=self._patient_id, name=name.strip(), reminder_time=reminder_time)
        now = self._clock()
        # A time already past today starts reminding tomorrow.
        if reminder_time < now.strftime("%H:%M"):
            row.last_notified_on = now.date()
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        entry = _entry(row)
        self._entries.append(entry)
        self._entries.sort(key=lambda e: (e.reminder_time, e.id))
        return entry

    def remove(self, medication_id: int) -> bool:
        row = (
            self._db.query(models.Medication)
            .filter(models.Medication.id == medication_id, models.Medication.patient_id == self._patient_id)
            .first()
        )
        if row is None:
            return False
        self._db.delete(row)
        self._db.commit()
        self._entries = [e for e in self._entries if e.id != medication_id]
        return True


def process_due_reminders(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    today = now.date()
    current = now.strftime("%H:%M")

    due = (
        db.query(models.Medication)
        .filter(models.Medication.reminder_time <= current)
        .filter((models.Medication.last_notified_on.is_(None)) | (models.Medication.last_notified_on < today))
        .all()
    )
    sent = 0
    for medication in due:
        notifications.notify(
            db,
            user_id=medication.patient_id,
            type=notifications.MEDICATION,
            title="Medication Reminder",
            message=f"It's time to take {medication.name} ({medication.reminder_time}).",
        )
        medication.last_notified_on = today
        db.commit()
        sent += 1

    if sent:
        _logger.info("medication_reminders_sent count=%s at=%s", sent, current)
    return {"sent": sent}
