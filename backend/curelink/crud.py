from datetime import datetime

from fastapi import HTTPException, status
from rapidfuzz import fuzz, process
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from . import models, schemas
from .profiles import DoctorProfile, HospitalProfile, load_profile


# Users
def get_user(db: Session, user_id: int):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(func.lower(models.User.email) == email.strip().lower()).first()


def get_user_with_role(db: Session, user_id: int, role: str):
    user = get_user(db, user_id)
    if user is None or user.role != role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{role.capitalize()} not found",
        )
    return user


def search_doctors(db: Session, specialization: str | None = None, min_rating: float | None = None):
    """
    Profiles live in a JSON column, so role filtering happens in SQL and the
    profile filters are applied after parsing.
    """
    wanted = (specialization or "").strip().lower()
    results = []
    for user in db.query(models.User).filter(models.User.role == "doctor").order_by(models.User.id).all():
        profile = load_profile(user)
        if not isinstance(profile, DoctorProfile):
            continue
        if wanted and wanted not in (profile.specialization or "").lower():
            continue
        if min_rating is not None and (profile.rating_average or 0) < min_rating:
            continue
        results.append((user, profile))
    return results


def search_hospitals(db: Session, facilities: list[str] | None = None):
    wanted = [f.strip().lower() for f in (facilities or []) if f and f.strip()]
    results = []
    for user in db.query(models.User).filter(models.User.role == "hospital").order_by(models.User.id).all():
        profile = load_profile(user)
        if not isinstance(profile, HospitalProfile):
            continue
        have = {f.lower() for f in profile.facilities}
        if wanted and not all(any(w in h for h in have) for w in wanted):
            continue
        results.append((user, profile))
    return results


# Medicine CRUD
def get_medicine(db: Session, medicine_id: int):
    return db.query(models.Medicine).filter(models.Medicine.id == medicine_id).first()


def search_medicines(
    db: Session,
    query: str | None = None,
    category: str | None = None,
    max_price: float | None = None,
    pharmacy_id: int | None = None,
    in_stock_only: bool = False,
    sort_by: str | None = None,
    limit: int | None = None,
):
    q = db.query(models.Medicine)
    if query:
        q = q.filter(models.Medicine.name.ilike(f"%{query.strip()}%"))
    if category:
        q = q.filter(models.Medicine.category.ilike(category.strip()))
    if max_price is not None:
        q = q.filter(models.Medicine.price <= max_price)
    if pharmacy_id is not None:
        q = q.filter(models.Medicine.pharmacy_id == pharmacy_id)
    if in_stock_only:
        q = q.filter(models.Medicine.stock > 0)

    if sort_by == "price_asc":
        q = q.order_by(models.Medicine.price.asc(), models.Medicine.id)
    elif sort_by == "price_desc":
        q = q.order_by(models.Medicine.price.desc(), models.Medicine.id)
    else:
        q = q.order_by(models.Medicine.name, models.Medicine.id)

    if limit:
        q = q.limit(limit)
    return q.all()


def fuzzy_medicine_matches(db: Session, query: str, limit: int = 5, score_cutoff: float = 72):
    """Typo-tolerant name lookup used when a substring search finds nothing."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    meds = db.query(models.Medicine).order_by(models.Medicine.id).all()
    by_name: dict[str, list[models.Medicine]] = {}
    for med in meds:
        by_name.setdefault(med.name.lower(), []).append(med)
    results = process.extract(needle, list(by_name), scorer=fuzz.WRatio, limit=limit, score_cutoff=score_cutoff)
    return [med for name, _, _ in results for med in by_name[name]][:limit]


def existing_medicine_ids(db: Session, medicine_ids: list[int]) -> set[int]:
    if not medicine_ids:
        return set()
    rows = db.query(models.Medicine.id).filter(models.Medicine.id.in_(medicine_ids)).all()
    return {row.id for row in rows}


def create_medicine(db: Session, medicine: schemas.MedicineCreate, pharmacy_id: int):
    db_medicine = models.Medicine(**medicine.model_dump(), pharmacy_id=pharmacy_id)
    db.add(db_medicine)
    db.commit()
    db.refresh(db_medicine)
    return db_medicine


def _get_owned_medicine(db: Session, medicine_id: int, pharmacy_id: int):
    db_medicine = (
        db.query(models.Medicine)
        .filter(models.Medicine.id == medicine_id, models.Medicine.pharmacy_id == pharmacy_id)
        .first()
    )
    if not db_medicine:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")
    return db_medicine


def update_medicine(db: Session, medicine_id: int, medicine: schemas.MedicineUpdate, pharmacy_id: int):
    db_medicine = _get_owned_medicine(db, medicine_id, pharmacy_id)
    for key, value in medicine.model_dump(exclude_unset=True).items():
        setattr(db_medicine, key, value)
    db_medicine.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(db_medicine)
    return db_medicine


def delete_medicine(db: Session, medicine_id: int, pharmacy_id: int) -> None:
    db_medicine = _get_owned_medicine(db, medicine_id, pharmacy_id)
    db.delete(db_medicine)
    db.commit()


def adjust_stock(db: Session, medicine_id: int, delta: int) -> None:
    """
    Single unconditional ``stock = stock + delta`` update, committed on its own.
    No floor check: concurrent checkouts can drive stock below zero.
    """
    db.query(models.Medicine).filter(models.Medicine.id == medicine_id).update(
        {models.Medicine.stock: models.Medicine.stock + delta},
        synchronize_session=False,
    )
    db.commit()


def decrement_stock(db: Session, medicine_id: int, quantity: int) -> None:
    adjust_stock(db, medicine_id, -quantity)


def increment_stock(db: Session, medicine_id: int, quantity: int) -> None:
    adjust_stock(db, medicine_id, quantity)


# Orders
def create_order(
    db: Session,
    patient_id: int,
    delivery_address: str | None,
    total_amount: float,
    pharmacies: list[tuple[int, str | None]],
    items: list[dict],
):
    order = models.Order(
        patient_id=patient_id,
        delivery_address=delivery_address,
        total_amount=total_amount,
    )
    for pharmacy_id, pharmacy_name in pharmacies:
        order.pharmacies.append(
            models.OrderPharmacy(pharmacy_id=pharmacy_id, pharmacy_name=pharmacy_name, status="pending")
        )
    for item in items:
        order.items.append(models.OrderItem(**item))
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def get_order(db: Session, order_id: int):
    return db.query(models.Order).filter(models.Order.id == order_id).first()


def list_orders_for_patient(db: Session, patient_id: int):
    return (
        db.query(models.Order)
        .filter(models.Order.patient_id == patient_id)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .all()
    )


def list_orders_for_pharmacy(db: Session, pharmacy_id: int, status_filter: str | None = None):
    q = (
        db.query(models.Order)
        .join(models.OrderPharmacy, models.OrderPharmacy.order_id == models.Order.id)
        .filter(models.OrderPharmacy.pharmacy_id == pharmacy_id)
    )
    if status_filter:
        q = q.filter(models.OrderPharmacy.status == status_filter)
    return q.order_by(models.Order.created_at.desc(), models.Order.id.desc()).all()


def get_order_pharmacy(db: Session, order_id: int, pharmacy_id: int):
    return (
        db.query(models.OrderPharmacy)
        .filter(
            models.OrderPharmacy.order_id == order_id,
            models.OrderPharmacy.pharmacy_id == pharmacy_id,
        )
        .first()
    )


# Appointments
def create_appointment(db: Session, **fields):
    appointment = models.Appointment(**fields)
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def get_appointment(db: Session, appointment_id: int):
    return db.query(models.Appointment).filter(models.Appointment.id == appointment_id).first()


def list_appointments_for_patient(db: Session, patient_id: int):
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.patient_id == patient_id)
        .order_by(models.Appointment.date.desc(), models.Appointment.id.desc())
        .all()
    )


def list_appointments_for_doctor(db: Session, doctor_id: int, status_filter: str | None = None):
    q = db.query(models.Appointment).filter(models.Appointment.doctor_id == doctor_id)
    if status_filter:
        q = q.filter(models.Appointment.status == status_filter)
    return q.order_by(models.Appointment.date, models.Appointment.id).all()


def list_doctor_patients(db: Session, doctor_id: int) -> list[dict]:
    """One entry per distinct patient, most recent visit first."""
    patients: dict[int, dict] = {}
    # Ordered by date, so each later appointment refreshes the contact details.
    for appt in list_appointments_for_doctor(db, doctor_id):
        entry = patients.setdefault(appt.patient_id, {"patient_id": appt.patient_id, "appointment_count": 0})
        entry["appointment_count"] += 1
        entry["name"] = appt.patient_name
        entry["email"] = appt.patient_email or entry.get("email")
        entry["phone"] = appt.patient_phone or entry.get("phone")
        entry["last_visit"] = appt.date
    return sorted(patients.values(), key=lambda p: (p["last_visit"], p["patient_id"]), reverse=True)


def has_active_appointment(db: Session, doctor_id: int, patient_id: int) -> bool:
    return (
        db.query(models.Appointment.id)
        .filter(
            models.Appointment.doctor_id == doctor_id,
            models.Appointment.patient_id == patient_id,
            models.Appointment.status.notin_(("cancelled", "declined")),
        )
        .first()
        is not None
    )


def occupied_slots(db: Session, doctor_id: int, day: str) -> set[str]:
    rows = (
        db.query(models.Appointment.time_slot)
        .filter(
            models.Appointment.doctor_id == doctor_id,
            models.Appointment.date == day,
            models.Appointment.status != "cancelled",
        )
        .all()
    )
    return {row[0] for row in rows}


# Notifications
def create_notification(db: Session, user_id: int, type: str, title: str, message: str):
    notification = models.Notification(user_id=user_id, type=type, title=title, message=message)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_notifications(db: Session, user_id: int, unread_only: bool = False):
    q = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        q = q.filter(models.Notification.read.is_(False))
    return q.order_by(models.Notification.created_at.desc(), models.Notification.id.desc()).all()


def mark_notification_read(db: Session, notification_id: int, user_id: int):
    notification = (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id, models.Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_notifications_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(models.Notification)
        .filter(models.Notification.user_id == user_id, models.Notification.read.is_(False))
        .update({models.Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return updated


# Medical records
def create_medical_record(
    db: Session,
    patient_id: int,
    file_name: str,
    record_type: str | None,
    storage_path: str,
    content_type: str | None,
    uploaded_by_id: int | None = None,
):
    record = models.MedicalRecord(
        patient_id=patient_id,
        file_name=file_name,
        record_type=record_type,
        storage_path=storage_path,
        content_type=content_type,
        uploaded_by_id=uploaded_by_id,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def list_medical_records(db: Session, patient_id: int, record_type: str | None = None, limit: int | None = None):
    q = db.query(models.MedicalRecord).filter(models.MedicalRecord.patient_id == patient_id)
    if record_type:
        q = q.filter(models.MedicalRecord.record_type.ilike(record_type))
    q = q.order_by(models.MedicalRecord.uploaded_at.desc(), models.MedicalRecord.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def get_medical_record(db: Session, record_id: int, patient_id: int):
    record = (
        db.query(models.MedicalRecord)
        .filter(models.MedicalRecord.id == record_id, models.MedicalRecord.patient_id == patient_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medical record not found")
    return record


def delete_medical_record(db: Session, record: models.MedicalRecord) -> None:
    db.delete(record)
    db.commit()


# Reviews
def list_reviews_for_doctor(db: Session, doctor_id: int):
    return (
        db.query(models.Review)
        .filter(models.Review.doctor_id == doctor_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )


# Spending
def patient_spending(db: Session, patient_id: int) -> dict:
    doctor_spending = (
        db.query(func.coalesce(func.sum(models.Appointment.fee), 0.0))
        .filter(
            models.Appointment.patient_id == patient_id,
            models.Appointment.status != "cancelled",
        )
        .scalar()
    )

    paid_order_ids = select(models.OrderPharmacy.order_id).where(
        models.OrderPharmacy.status.in_(("approved", "delivered"))
    )
    pharmacy_spending = (
        db.query(func.coalesce(func.sum(models.Order.total_amount), 0.0))
        .filter(models.Order.patient_id == patient_id, models.Order.id.in_(paid_order_ids))
        .scalar()
    )

    doctor_spending = float(doctor_spending or 0.0)
    pharmacy_spending = float(pharmacy_spending or 0.0)
    return {
        "total_spending": doctor_spending + pharmacy_spending,
        "doctor_spending": doctor_spending,
        "pharmacy_spending": pharmacy_spending,
    }
