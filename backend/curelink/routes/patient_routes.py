from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import require_patient
from curelink.db import get_db

router = APIRouter(prefix="/patient", tags=["Patient"])


@router.get("/budget", response_model=schemas.BudgetOut)
def get_budget(
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return crud.patient_spending(db, current_user.id)
