from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.appointments import booking
from curelink.appointments.slots import available_slots
from curelink.auth.deps import get_current_user, require_doctor, require_patient
from curelink.db import get_db

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("/slots", response_model=schemas.AvailableSlotsOut)
def get_available_slots(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    crud.get_user_with_role(db, doctor_id, "doctor")
    return schemas.AvailableSlotsOut(
        doctor_id=doctor_id,
        date=day.isoformat(),
        slots=available_slots(db, doctor_id, day),
    )


@router.post("", response_model=schemas.Appointment, status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: schemas.AppointmentBookIn,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return booking.book(db, current_user, payload)


@router.get("", response_model=list[schemas.Appointment])
def list_appointments(
    status_filter: str | None = Query(None, alias="status"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.role == "doctor":
        return crud.list_appointments_for_doctor(db, current_user.id, status_filter=status_filter)
    rows = crud.list_appointments_for_patient(db, current_user.id)
    if status_filter:
        rows = [a for a in rows if a.status == status_filter]
    return rows


@router.post("/{appointment_id}/confirm", response_model=schemas.Appointment)
def confirm_appointment(
    appointment_id: int,
    current_user: models.User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    return booking.transition(db, appointment_id, current_user, booking.CONFIRMED)


@router.post("/{appointment_id}/decline", response_model=schemas.Appointment)
def decline_appointment(
    appointment_id: int,
    current_user: models.User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    return booking.transition(db, appointment_id, current_user, booking.CANCELLED)


@router.post("/{appointment_id}/complete", response_model=schemas.Appointment)
def complete_appointment(
    appointment_id: int,
    current_user: models.User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    return booking.transition(db, appointment_id, current_user, booking.COMPLETED)


@router.post("/{appointment_id}/cancel", response_model=schemas.Appointment)
def cancel_appointment(
    appointment_id: int,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return booking.transition(db, appointment_id, current_user, booking.CANCELLED)
