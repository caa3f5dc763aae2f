from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import require_patient
from curelink.config.settings import get_settings
from curelink.db import get_db
from curelink.storage import LocalObjectStore, get_object_store, is_allowed_upload, medical_record_key

router = APIRouter(prefix="/records", tags=["Medical Records"])


def record_out(record: models.MedicalRecord) -> schemas.MedicalRecord:
    base = get_settings().public_base_url
    return schemas.MedicalRecord(
        id=record.id,
        file_name=record.file_name,
        record_type=record.record_type,
        content_type=record.content_type,
        uploaded_by_id=record.uploaded_by_id,
        uploaded_at=record.uploaded_at,
        download_url=f"{base}/records/{record.id}/download",
    )


@router.post("", response_model=schemas.MedicalRecord, status_code=status.HTTP_201_CREATED)
async def upload_record(
    file: UploadFile = File(...),
    record_type: str | None = Form(None),
    current_user: models.User = Depends(require_patient),
    store: LocalObjectStore = Depends(get_object_store),
    db: Session = Depends(get_db),
):
    if not is_allowed_upload(file.filename, file.content_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only images and PDF files are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    key = store.put(medical_record_key(current_user.id, file.filename), content)
    record = crud.create_medical_record(
        db,
        patient_id=current_user.id,
        file_name=file.filename or "upload",
        record_type=(record_type or "").strip() or None,
        storage_path=key,
        content_type=file.content_type,
    )
    return record_out(record)


@router.get("", response_model=list[schemas.MedicalRecord])
def list_records(
    record_type: str | None = None,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return [record_out(r) for r in crud.list_medical_records(db, current_user.id, record_type=record_type)]


@router.get("/{record_id}/download")
def download_record(
    record_id: int,
    current_user: models.User = Depends(require_patient),
    store: LocalObjectStore = Depends(get_object_store),
    db: Session = Depends(get_db),
):
    record = crud.get_medical_record(db, record_id, current_user.id)
    try:
        path = store.path_for(record.storage_path)
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from exc
    return FileResponse(
        path=str(path),
        media_type=record.content_type or "application/octet-stream",
        filename=record.file_name,
    )


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    record_id: int,
    current_user: models.User = Depends(require_patient),
    store: LocalObjectStore = Depends(get_object_store),
    db: Session = Depends(get_db),
):
    record = crud.get_medical_record(db, record_id, current_user.id)
    store.delete(record.storage_path)
    crud.delete_medical_record(db, record)
