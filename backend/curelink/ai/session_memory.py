from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from curelink import models

_MAX_TURNS = 20


def new_session_id() -> str:
    return str(uuid4())


def _row(db: Session, user_id: int, session_id: str) -> models.ChatSession | None:
    return (
        db.query(models.ChatSession)
        .filter(models.ChatSession.user_id == user_id, models.ChatSession.session_id == session_id)
        .first()
    )


def load_turns(db: Session, user_id: int, session_id: str) -> list[dict[str, Any]]:
    if not session_id:
        return []
    row = _row(db, user_id, session_id)
    if not row:
        return []
    try:
        data = json.loads(row.turns_json or "[]")
    except json.JSONDecodeError:
        return []
    return data if isinstance(data, list) else []


def save_turns(db: Session, user_id: int, session_id: str, turns: list[dict[str, Any]]) -> None:
    if not session_id:
        return
    payload = json.dumps(turns[-_MAX_TURNS:], ensure_ascii=False)
    row = _row(db, user_id, session_id)
    if row is None:
        row = models.ChatSession(session_id=session_id, user_id=user_id)
        db.add(row)
    row.turns_json = payload
    row.updated_at = datetime.utcnow()
    db.commit()
