import re

from fastapi import HTTPException, status

_E164 = re.compile(r"^\+[1-9]\d{1,14}$")
_REMINDER_TIME = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _unprocessable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


def validate_e164_phone(value: str | None, field_name: str) -> str | None:
    """Blank input clears the number; anything else must be E.164."""
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    if _E164.fullmatch(cleaned) is None:
        raise _unprocessable(f"Invalid {field_name} phone number. Use E.164 (e.g. +923001234567).")
    return cleaned


def validate_reminder_time(value: str) -> str:
    cleaned = (value or "").strip()
    if _REMINDER_TIME.fullmatch(cleaned) is None:
        raise _unprocessable("Reminder time must be HH:MM (24h)")
    return cleaned
