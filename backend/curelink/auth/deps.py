from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from curelink import crud, models
from curelink.auth.utils import decode_access_token
from curelink.db import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> models.User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        claims = decode_access_token(token)
        user_id = int(claims["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise unauthorized

    user = crud.get_user(db, user_id)
    # A token minted before a role change no longer authorizes the old role.
    if user is None or user.role != claims.get("role"):
        raise unauthorized
    return user


def _require_role(current_user: models.User, role: str) -> models.User:
    if current_user.role != role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{role.capitalize()} account required",
        )
    return current_user


def require_patient(current_user: models.User = Depends(get_current_user)) -> models.User:
    return _require_role(current_user, "patient")


def require_doctor(current_user: models.User = Depends(get_current_user)) -> models.User:
    return _require_role(current_user, "doctor")


def require_pharmacy(current_user: models.User = Depends(get_current_user)) -> models.User:
    return _require_role(current_user, "pharmacy")
