from __future__ import annotations

from dataclasses import dataclass

from curelink import models


@dataclass
class EmailTemplate:
    subject: str
    body: str


def render_confirmation(appointment: models.Appointment) -> EmailTemplate:
    kind = "Urgent" if appointment.type == "urgent" else "Normal"
    lines = [
        f"Hello {appointment.patient_name or 'there'},",
        "",
        "Your appointment request has been received:",
        f"Doctor: Dr. {appointment.doctor_name or 'your doctor'}",
        f"Date: {appointment.date}",
        f"Time: {appointment.time_slot}",
        f"Type: {kind}",
        f"Fee: Rs. {appointment.fee:.0f}",
        "",
        "You will be notified once the doctor confirms.",
    ]
    return EmailTemplate(subject="Appointment booked", body="\n".join(lines))
