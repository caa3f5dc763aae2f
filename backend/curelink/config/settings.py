from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    normal_fee: float = 1500.0
    urgent_fee: float = 3000.0
    pharmacy_low_stock_threshold: int = 5
    patient_low_stock_threshold: int = 3
    upload_dir: Path = Path("uploads")
    public_base_url: str = ""
    speech_to_text_url: str = ""
    text_to_speech_url: str = ""
    speech_api_key: str = ""
    speech_timeout_s: float = 30.0
    reminder_poll_seconds: int = 60


def _backend_root() -> Path:
    # backend/curelink/config/settings.py -> backend/
    return Path(__file__).resolve().parents[2]


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    upload_dir = os.getenv("UPLOAD_DIR")
    return Settings(
        normal_fee=_env_float("APPOINTMENT_NORMAL_FEE", 1500.0),
        urgent_fee=_env_float("APPOINTMENT_URGENT_FEE", 3000.0),
        pharmacy_low_stock_threshold=_env_int("PHARMACY_LOW_STOCK_THRESHOLD", 5),
        patient_low_stock_threshold=_env_int("PATIENT_LOW_STOCK_THRESHOLD", 3),
        upload_dir=Path(upload_dir) if upload_dir else _backend_root() / "uploads",
        public_base_url=(os.getenv("PUBLIC_BASE_URL") or "").strip().rstrip("/"),
        speech_to_text_url=(os.getenv("SPEECH_TO_TEXT_URL") or "").strip(),
        text_to_speech_url=(os.getenv("TEXT_TO_SPEECH_URL") or "").strip(),
        speech_api_key=(os.getenv("SPEECH_API_KEY") or "").strip(),
        speech_timeout_s=_env_float("SPEECH_TIMEOUT_S", 30.0),
        reminder_poll_seconds=_env_int("REMINDER_POLL_SECONDS", 60),
    )
