from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from curelink import models, schemas
from curelink.auth.deps import get_current_user
from curelink.speech import SpeechError, synthesize, transcribe

router = APIRouter(prefix="/speech", tags=["Speech"])


def _upstream_error(exc: SpeechError) -> HTTPException:
    code = status.HTTP_503_SERVICE_UNAVAILABLE if exc.status_code is None else status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=f"Speech service error: {exc.message}")


@router.post("/transcribe", response_model=schemas.TranscriptionOut)
async def transcribe_audio(
    audio: UploadFile = File(...),
    _: models.User = Depends(get_current_user),
):
    content = await audio.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio provided")
    try:
        text = await transcribe(content, audio.content_type)
    except SpeechError as exc:
        raise _upstream_error(exc) from exc
    return schemas.TranscriptionOut(transcription=text)


@router.post("/synthesize")
async def synthesize_speech(
    payload: schemas.SynthesizeIn,
    _: models.User = Depends(get_current_user),
):
    try:
        audio = await synthesize(payload.text)
    except SpeechError as exc:
        raise _upstream_error(exc) from exc
    return Response(content=audio, media_type="audio/mpeg")
