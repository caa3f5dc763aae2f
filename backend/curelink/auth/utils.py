import hashlib
import os
from datetime import datetime, timedelta
from typing import Any, Optional

import bcrypt
from jose import jwt

ALGORITHM = "HS256"
# Tokens carry the user id in ``sub`` and the account role in ``role``.
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

# IMPORTANT: Set a strong secret in production.
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores input past 72 bytes; pre-hash long passphrases instead.
    raw = password.encode("utf-8")
    return hashlib.sha256(raw).digest() if len(raw) > 72 else raw


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database.
        return False


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Raises ``jose.JWTError`` for a bad signature or an expired token."""
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
