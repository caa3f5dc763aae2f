from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from curelink import models, schemas
from curelink.auth.deps import get_current_user
from curelink.db import get_db
from curelink.profiles import display_name, load_profile, parse_profile, store_profile
from curelink.storage import LocalObjectStore, get_object_store, is_allowed_upload, profile_image_key
from curelink.utils.validation import validate_e164_phone

router = APIRouter(prefix="/profile", tags=["Profile"])


def _profile_out(user: models.User) -> schemas.ProfileOut:
    return schemas.ProfileOut(
        id=user.id,
        email=user.email,
        name=user.name,
        phone=user.phone,
        role=user.role,
        display_name=display_name(user),
        profile=load_profile(user).model_dump(exclude={"role"}),
    )


@router.get("", response_model=schemas.ProfileOut)
def get_profile(current_user: models.User = Depends(get_current_user)):
    return _profile_out(current_user)


@router.put("", response_model=schemas.ProfileOut)
def update_profile(
    payload: schemas.ProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if payload.name is not None:
        current_user.name = payload.name.strip() or None
    if payload.phone is not None:
        current_user.phone = validate_e164_phone(payload.phone, "profile")
    if payload.profile is not None:
        merged = load_profile(current_user).model_dump(exclude={"role"})
        merged.update({k: v for k, v in payload.profile.items() if k != "role"})
        try:
            store_profile(current_user, parse_profile(current_user.role, merged))
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
    current_user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(current_user)
    return _profile_out(current_user)


@router.post("/image", response_model=schemas.ProfileOut)
async def upload_profile_image(
    file: UploadFile = File(...),
    current_user: models.User = Depends(get_current_user),
    store: LocalObjectStore = Depends(get_object_store),
    db: Session = Depends(get_db),
):
    if not is_allowed_upload(file.filename, file.content_type, images_only=True):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only image files are allowed")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

    key = store.put(profile_image_key(current_user.id, file.filename), content)
    profile = load_profile(current_user).model_copy(update={"profile_image": key})
    store_profile(current_user, profile)
    current_user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(current_user)
    return _profile_out(current_user)
