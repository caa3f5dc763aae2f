from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from curelink import models, schemas
from curelink.auth.deps import require_patient
from curelink.db import get_db
from curelink.medications import SqlMedicationStore
from curelink.utils.validation import validate_reminder_time

router = APIRouter(prefix="/medications", tags=["Medications"])


@router.get("", response_model=list[schemas.Medication])
def list_medications(
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return SqlMedicationStore(db, current_user.id).entries()


@router.post("", response_model=schemas.Medication, status_code=status.HTTP_201_CREATED)
def add_medication(
    payload: schemas.MedicationIn,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    store = SqlMedicationStore(db, current_user.id)
    return store.add(payload.name, validate_reminder_time(payload.reminder_time))


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_medication(
    medication_id: int,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    if not SqlMedicationStore(db, current_user.id).remove(medication_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
