from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import require_pharmacy
from curelink.db import get_db

router = APIRouter(prefix="/medicines", tags=["Medicines"])


@router.get("/", response_model=list[schemas.Medicine])
def search_medicines(
    q: str | None = None,
    category: str | None = None,
    max_price: float | None = Query(None, ge=0),
    pharmacy_id: int | None = None,
    sort_by: str | None = Query(None, pattern="^(price_asc|price_desc|name)$"),
    db: Session = Depends(get_db),
):
    return crud.search_medicines(
        db,
        query=q,
        category=category,
        max_price=max_price,
        pharmacy_id=pharmacy_id,
        sort_by=sort_by,
    )


@router.get("/mine", response_model=list[schemas.Medicine])
def list_own_medicines(
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return crud.search_medicines(db, pharmacy_id=current_user.id)


@router.get("/{medicine_id}", response_model=schemas.Medicine)
def get_medicine(medicine_id: int, db: Session = Depends(get_db)):
    medicine = crud.get_medicine(db, medicine_id)
    if not medicine:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")
    return medicine


@router.post("/", response_model=schemas.Medicine, status_code=status.HTTP_201_CREATED)
def create_medicine(
    medicine: schemas.MedicineCreate,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return crud.create_medicine(db=db, medicine=medicine, pharmacy_id=current_user.id)


@router.patch("/{medicine_id}", response_model=schemas.Medicine)
def update_medicine(
    medicine_id: int,
    medicine: schemas.MedicineUpdate,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return crud.update_medicine(db=db, medicine_id=medicine_id, medicine=medicine, pharmacy_id=current_user.id)


@router.delete("/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medicine(
    medicine_id: int,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    crud.delete_medicine(db=db, medicine_id=medicine_id, pharmacy_id=current_user.id)
