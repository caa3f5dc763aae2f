import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from curelink import crud, models, notifications, schemas
from curelink.auth.deps import require_doctor
from curelink.db import get_db
from curelink.routes.record_routes import record_out
from curelink.storage import LocalObjectStore, get_object_store, is_allowed_upload, medical_record_key

router = APIRouter(prefix="/doctor", tags=["Doctor"])
_logger = logging.getLogger(__name__)


def reviews_out(reviews: list[models.Review]) -> schemas.DoctorReviewsOut:
    average = round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else None
    return schemas.DoctorReviewsOut(
        average_rating=average,
        count=len(reviews),
        reviews=[schemas.ReviewOut.model_validate(r) for r in reviews],
    )


@router.get("/patients", response_model=list[schemas.DoctorPatientOut])
def list_patients(
    current_user: models.User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    return crud.list_doctor_patients(db, current_user.id)


@router.post(
    "/patients/{patient_id}/records",
    response_model=schemas.MedicalRecord,
    status_code=status.HTTP_201_CREATED,
)
async def upload_prescription(
    patient_id: int,
    file: UploadFile = File(...),
    record_type: str | None = Form(None),
    current_user: models.User = Depends(require_doctor),
    store: LocalObjectStore = Depends(get_object_store),
    db: Session = Depends(get_db),
):
    if not crud.has_active_appointment(db, current_user.id, patient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    if not is_allowed_upload(file.filename, file.content_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only images and PDF files are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    key = store.put(medical_record_key(patient_id, file.filename), content)
    record = crud.create_medical_record(
        db,
        patient_id=patient_id,
        file_name=file.filename or "prescription",
        record_type=(record_type or "").strip() or "Prescription",
        storage_path=key,
        content_type=file.content_type,
        uploaded_by_id=current_user.id,
    )
    _logger.info("doctor_record_uploaded doctor_id=%s patient_id=%s record_id=%s", current_user.id, patient_id, record.id)

    doctor_name = current_user.name or "Your doctor"
    notifications.notify(
        db,
        user_id=patient_id,
        type=notifications.APPOINTMENT,
        title="New Prescription",
        message=f"{doctor_name} added {record.file_name} to your medical records.",
    )
    return record_out(record)


@router.get("/reviews", response_model=schemas.DoctorReviewsOut)
def my_reviews(
    current_user: models.User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    return reviews_out(crud.list_reviews_for_doctor(db, current_user.id))
