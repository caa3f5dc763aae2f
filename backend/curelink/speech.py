"""HTTP client for the external speech-to-text and text-to-speech endpoints."""
from __future__ import annotations

import logging
import time

import httpx

from curelink.config.settings import Settings, get_settings

_logger = logging.getLogger(__name__)


class SpeechError(RuntimeError):
    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _headers(settings: Settings) -> dict[str, str]:
    if not settings.speech_api_key:
        return {}
    return {"Authorization": f"Bearer {settings.speech_api_key}"}


def _raise_speech_error(res: httpx.Response) -> None:
    try:
        payload = res.json()
        msg = payload.get("error") or payload.get("message") or res.text
        if isinstance(msg, dict):
            msg = msg.get("message") or str(msg)
    except ValueError:
        msg = res.text
    raise SpeechError(res.status_code, str(msg))


async def transcribe(audio: bytes, content_type: str | None = None) -> str:
    settings = get_settings()
    if not settings.speech_to_text_url:
        raise SpeechError(None, "SPEECH_TO_TEXT_URL is not set")
    headers = _headers(settings)
    headers["Content-Type"] = content_type or "application/octet-stream"

    start = time.time()
    try:
        async with httpx.AsyncClient(timeout=settings.speech_timeout_s) as client:
            res = await client.post(settings.speech_to_text_url, content=audio, headers=headers)
    except httpx.HTTPError as exc:
        raise SpeechError(None, str(exc)) from exc
    _logger.info("speech transcribe status=%s ms=%s", res.status_code, int((time.time() - start) * 1000))
    if res.status_code >= 400:
        _raise_speech_error(res)

    data = res.json()
    text = data.get("transcription") or data.get("text") or ""
    return str(text).strip()


async def synthesize(text: str) -> bytes:
    settings = get_settings()
    if not settings.text_to_speech_url:
        raise SpeechError(None, "TEXT_TO_SPEECH_URL is not set")

    start = time.time()
    try:
        async with httpx.AsyncClient(timeout=settings.speech_timeout_s) as client:
            res = await client.post(settings.text_to_speech_url, json={"text": text}, headers=_headers(settings))
    except httpx.HTTPError as exc:
        raise SpeechError(None, str(exc)) from exc
    _logger.info("speech synthesize status=%s ms=%s", res.status_code, int((time.time() - start) * 1000))
    if res.status_code >= 400:
        _raise_speech_error(res)
    return res.content
