import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from curelink import crud, models
from curelink.auth import schemas, utils
from curelink.auth.deps import get_current_user
from curelink.db import get_db
from curelink.profiles import parse_profile, store_profile
from curelink.utils.validation import validate_e164_phone

router = APIRouter()
_logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _profile_errors(exc: ValidationError) -> list[dict]:
    return exc.errors(include_url=False, include_context=False)


@router.post("/register", response_model=schemas.UserOut)
def register(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    if crud.get_user_by_email(db, user_in.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    # Role-specific fields are validated against the profile type for the chosen role.
    try:
        profile = parse_profile(user_in.role, user_in.profile)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=_profile_errors(exc)) from exc

    user = models.User(
        email=str(user_in.email).lower(),
        name=(user_in.name or "").strip() or None,
        phone=validate_e164_phone(user_in.phone, "account"),
        role=user_in.role,
        hashed_password=utils.hash_password(user_in.password),
    )
    store_profile(user, profile)
    db.add(user)
    db.commit()
    db.refresh(user)
    _logger.info("user_registered user_id=%s role=%s", user.id, user.role)
    return user


@router.post("/login", response_model=schemas.Token)
def login(user_in: schemas.UserLogin, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, user_in.email)
    if user is None or not utils.verify_password(user_in.password, user.hashed_password):
        _logger.info("user_login_failed email=%s", user_in.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    _logger.info("user_login user_id=%s role=%s", user.id, user.role)
    return schemas.Token(access_token=utils.create_access_token(user.id, user.role), role=user.role)


@router.get("/me", response_model=schemas.UserOut)
def me(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.post("/change-password")
def change_password(
    payload: schemas.PasswordChangeIn,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if len(payload.new_password.strip()) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if not utils.verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incorrect current password")

    current_user.hashed_password = utils.hash_password(payload.new_password)
    db.commit()
    _logger.info("password_changed user_id=%s", current_user.id)
    return {"ok": True}
