"""
Local object store for uploaded files.

Keys are slash-separated paths such as ``medical_records/{patient_id}/{token}_{file}``
and are resolved under the configured upload directory.
"""
from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from curelink.config.settings import get_settings

_logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def safe_file_name(original: str | None) -> str:
    name = (original or "upload").replace("/", "_").replace("\\", "_").strip()
    return name or "upload"


def is_allowed_upload(filename: str | None, content_type: str | None, *, images_only: bool = False) -> bool:
    ctype = (content_type or "").lower()
    if ctype.startswith("image/"):
        return True
    if ctype == "application/pdf" and not images_only:
        return True
    # Fallback to extension checks when the client doesn't send a content type.
    name = (filename or "").lower()
    allowed = _IMAGE_EXTENSIONS if images_only else _IMAGE_EXTENSIONS + (".pdf",)
    return name.endswith(allowed)


def medical_record_key(patient_id: int, filename: str | None) -> str:
    return f"medical_records/{patient_id}/{secrets.token_urlsafe(8)}_{safe_file_name(filename)}"


def profile_image_key(user_id: int, filename: str | None) -> str:
    return f"profile_images/{user_id}/{secrets.token_urlsafe(8)}_{safe_file_name(filename)}"


class LocalObjectStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, key: str) -> Path:
        root = self.root.resolve(strict=False)
        resolved = (root / key).resolve(strict=False)
        if root not in resolved.parents:
            raise ValueError(f"Invalid storage key: {key}")
        return resolved

    def put(self, key: str, data: bytes) -> str:
        dest = self._path(key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        _logger.info("storage_put key=%s bytes=%s", key, len(data))
        return key

    def path_for(self, key: str) -> Path:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        return path

    def delete(self, key: str) -> None:
        path = self._path(key)
        path.unlink(missing_ok=True)
        _logger.info("storage_delete key=%s", key)


@lru_cache(maxsize=1)
def _default_store() -> LocalObjectStore:
    return LocalObjectStore(get_settings().upload_dir)


def get_object_store() -> LocalObjectStore:
    return _default_store()
