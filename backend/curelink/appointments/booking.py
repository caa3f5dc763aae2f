"""
Appointment booking and the appointment state machine.

``book`` validates the request against the date's candidate slots only.
Occupancy is not re-checked at write time, so two sessions that both saw a
slot as free can both book it.
"""
from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from curelink import crud, models, notifications, schemas
from curelink.appointments.email_templates import render_confirmation
from curelink.appointments.slots import candidate_slots
from curelink.config.settings import get_settings
from curelink.profiles import display_name
from curelink.utils.email import email_configured, send_email

_logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"

TRANSITIONS: dict[str, set[str]] = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}


def appointment_fee(appointment_type: str) -> float:
    settings = get_settings()
    return settings.urgent_fee if appointment_type == "urgent" else settings.normal_fee


def _send_confirmation_email(appointment: models.Appointment) -> None:
    if not appointment.patient_email or not email_configured():
        return
    template = render_confirmation(appointment)
    ok, error = send_email(appointment.patient_email, template.subject, template.body)
    if not ok:
        _logger.warning("booking_email_failed appointment_id=%s error=%s", appointment.id, error)


def book(
    db: Session,
    patient: models.User,
    payload: schemas.AppointmentBookIn,
    today: date | None = None,
) -> models.Appointment:
    today = today or date.today()
    if payload.date < today:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot book an appointment in the past")

    doctor = crud.get_user_with_role(db, payload.doctor_id, "doctor")

    if payload.time_slot not in candidate_slots(payload.date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{payload.time_slot} is not a bookable slot on {payload.date.isoformat()}",
        )

    details = payload.patient
    doctor_name = display_name(doctor)
    appointment = crud.create_appointment(
        db,
        patient_id=patient.id,
        doctor_id=doctor.id,
        doctor_name=doctor_name,
        date=payload.date.isoformat(),
        time_slot=payload.time_slot,
        type=payload.appointment_type,
        status=PENDING,
        fee=appointment_fee(payload.appointment_type),
        patient_name=details.full_name.strip(),
        patient_email=str(details.email),
        patient_phone=details.phone.strip(),
        patient_gender=details.gender,
        patient_age=details.age,
        notes=details.notes,
    )
    _logger.info(
        "appointment_booked appointment_id=%s doctor_id=%s date=%s slot=%s type=%s",
        appointment.id,
        doctor.id,
        appointment.date,
        appointment.time_slot,
        appointment.type,
    )

    notifications.notify(
        db,
        user_id=doctor.id,
        type=notifications.APPOINTMENT,
        title="New Appointment Booked",
        message=(
            f"{appointment.patient_name} booked a {appointment.type} appointment "
            f"on {appointment.date} at {appointment.time_slot}."
        ),
    )
    notifications.notify(
        db,
        user_id=patient.id,
        type=notifications.APPOINTMENT,
        title="Appointment Booked",
        message=(
            f"Your appointment with Dr. {doctor_name} is confirmed for "
            f"{appointment.date} at {appointment.time_slot}."
        ),
    )

    _send_confirmation_email(appointment)
    return appointment


_DOCTOR_MESSAGES = {
    CONFIRMED: ("Appointment Confirmed", "Dr. {doctor} confirmed your appointment on {date} at {slot}."),
    CANCELLED: ("Appointment Declined", "Dr. {doctor} declined your appointment on {date} at {slot}."),
    COMPLETED: ("Appointment Completed", "Your appointment with Dr. {doctor} on {date} is completed."),
}


def transition(
    db: Session,
    appointment_id: int,
    actor: models.User,
    new_status: str,
) -> models.Appointment:
    appointment = crud.get_appointment(db, appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    owner_id = appointment.doctor_id if actor.role == "doctor" else appointment.patient_id
    if owner_id != actor.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")

    if new_status not in TRANSITIONS.get(appointment.status, set()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move appointment from {appointment.status} to {new_status}",
        )

    previous = appointment.status
    appointment.status = new_status
    appointment.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(appointment)
    _logger.info(
        "appointment_transition appointment_id=%s from=%s to=%s by=%s",
        appointment.id,
        previous,
        new_status,
        actor.role,
    )

    fields = {"doctor": appointment.doctor_name, "date": appointment.date, "slot": appointment.time_slot}
    if actor.role == "doctor":
        title, template = _DOCTOR_MESSAGES[new_status]
        notifications.notify(
            db,
            user_id=appointment.patient_id,
            type=notifications.APPOINTMENT,
            title=title,
            message=template.format(**fields),
        )
    else:
        notifications.notify(
            db,
            user_id=appointment.doctor_id,
            type=notifications.APPOINTMENT,
            title="Appointment Cancelled",
            message=f"{appointment.patient_name} cancelled the appointment on {appointment.date} at {appointment.time_slot}.",
        )
    return appointment
