from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.auth.deps import get_current_user
from curelink.db import get_db

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[schemas.Notification])
def list_notifications(
    unread_only: bool = False,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.list_notifications(db, current_user.id, unread_only=unread_only)


@router.post("/{notification_id}/read", response_model=schemas.Notification)
def mark_read(
    notification_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.mark_notification_read(db, notification_id, current_user.id)


@router.post("/read-all")
def mark_all_read(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"updated": crud.mark_all_notifications_read(db, current_user.id)}
