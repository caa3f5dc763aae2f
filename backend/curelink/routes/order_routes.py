from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import require_patient, require_pharmacy
from curelink.db import get_db
from curelink.orders.checkout import set_pharmacy_status

router = APIRouter(tags=["Orders"])


@router.get("/orders", response_model=list[schemas.Order])
def list_my_orders(
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return crud.list_orders_for_patient(db, current_user.id)


@router.get("/orders/{order_id}", response_model=schemas.Order)
def get_my_order(
    order_id: int,
    current_user: models.User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    order = crud.get_order(db, order_id)
    if not order or order.patient_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.get("/pharmacy/orders", response_model=list[schemas.Order])
def list_pharmacy_orders(
    status_filter: str | None = Query(None, alias="status", pattern="^(pending|approved|declined|delivered)$"),
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return crud.list_orders_for_pharmacy(db, current_user.id, status_filter=status_filter)


@router.post("/pharmacy/orders/{order_id}/approve", response_model=schemas.Order)
def approve_order(
    order_id: int,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return set_pharmacy_status(db, order_id, current_user, "approved")


@router.post("/pharmacy/orders/{order_id}/decline", response_model=schemas.Order)
def decline_order(
    order_id: int,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return set_pharmacy_status(db, order_id, current_user, "declined")


@router.post("/pharmacy/orders/{order_id}/deliver", response_model=schemas.Order)
def deliver_order(
    order_id: int,
    current_user: models.User = Depends(require_pharmacy),
    db: Session = Depends(get_db),
):
    return set_pharmacy_status(db, order_id, current_user, "delivered")
