from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.ai import flows, session_memory
from curelink.ai.assistant import history_messages, run_turn
from curelink.ai.patient_tools import build_patient_registry
from curelink.ai.provider_factory import get_ai_provider
from curelink.ai.providers.base import ChatProvider, ProviderError
from curelink.ai.registry import ToolContext, ToolRegistry
from curelink.auth.deps import get_current_user, require_doctor, require_patient, require_pharmacy
from curelink.config.settings import get_settings
from curelink.db import get_db
from curelink.medications import SqlMedicationStore

router = APIRouter(prefix="/ai", tags=["AI"])
_logger = logging.getLogger(__name__)


def get_chat_provider() -> ChatProvider:
    try:
        return get_ai_provider()
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"AI provider is not configured: {exc}",
        ) from exc


@lru_cache(maxsize=1)
def get_patient_registry() -> ToolRegistry:
    return build_patient_registry()


def _upstream_error(exc: ProviderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI provider error: {exc.message}")


def _log(db: Session, user_id: int | None, log_type: str, details: str) -> None:
    db.add(models.AILog(log_type=log_type, details=details, user_id=user_id))
    db.commit()


@router.post("/chat", response_model=schemas.AIChatOut)
async def chat(
    payload: schemas.AIChatIn,
    current_user: models.User = Depends(require_patient),
    provider: ChatProvider = Depends(get_chat_provider),
    registry: ToolRegistry = Depends(get_patient_registry),
    db: Session = Depends(get_db),
):
    message = (payload.message or "").strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    session_id = (payload.session_id or "").strip() or session_memory.new_session_id()

    turns = session_memory.load_turns(db, current_user.id, session_id)
    try:
        reply = await run_turn(
            provider,
            registry,
            ToolContext(db=db, user=current_user),
            history_messages(turns),
            message,
        )
    except ProviderError as exc:
        _log(db, current_user.id, "provider_error", f"status={exc.status_code}")
        raise _upstream_error(exc) from exc

    turns.append({"role": "user", "content": message})
    turns.append({"role": "assistant", "content": reply.answer})
    session_memory.save_turns(db, current_user.id, session_id, turns)
    _log(db, current_user.id, "chat", f"session={session_id} tool={reply.tool_name or '-'}")

    return schemas.AIChatOut(
        session_id=session_id,
        answer=reply.answer,
        tool_name=reply.tool_name,
        tool_result=reply.tool_result,
    )


@router.post("/symptom-check", response_model=schemas.SymptomCheckOut)
async def symptom_check(
    payload: schemas.SymptomCheckIn,
    current_user: models.User = Depends(get_current_user),
    provider: ChatProvider = Depends(get_chat_provider),
    db: Session = Depends(get_db),
):
    try:
        result = await flows.symptom_check(
            provider,
            payload.symptom_description,
            medical_history=payload.medical_history,
            chat_history=payload.chat_history,
        )
    except ProviderError as exc:
        raise _upstream_error(exc) from exc
    _log(db, current_user.id, "symptom_check", f"emergency={result.emergency}")
    return schemas.SymptomCheckOut(guidance=result.guidance, emergency=result.emergency)


def _records_text(db: Session, patient_id: int) -> str:
    rows = crud.list_medical_records(db, patient_id)
    return "\n".join(
        f"- {r.file_name} ({r.record_type or 'record'}, uploaded {r.uploaded_at.date().isoformat()})" for r in rows
    )


def _appointments_text(rows: list[models.Appointment]) -> str:
    return "\n".join(f"- {a.date} {a.time_slot} with Dr. {a.doctor_name} ({a.status})" for a in rows)


@router.get("/medical-summary", response_model=schemas.MedicalSummaryOut)
async def medical_summary(
    current_user: models.User = Depends(require_patient),
    provider: ChatProvider = Depends(get_chat_provider),
    db: Session = Depends(get_db),
):
    medications = SqlMedicationStore(db, current_user.id).entries()
    try:
        summary = await flows.medical_summary(
            provider,
            records=_records_text(db, current_user.id),
            appointments=_appointments_text(crud.list_appointments_for_patient(db, current_user.id)),
            medications="\n".join(f"- {m.name} at {m.reminder_time}" for m in medications),
        )
    except ProviderError as exc:
        raise _upstream_error(exc) from exc
    return schemas.MedicalSummaryOut(
        highlights=summary.highlights,
        recent_activity=summary.recent_activity,
        medication_summary=summary.medication_summary,
    )


@router.post("/doctor-summary", response_model=schemas.DoctorPatientSummaryOut)
async def doctor_patient_summary(
    payload: schemas.DoctorPatientSummaryIn,
    current_user: models.User = Depends(require_doctor),
    provider: ChatProvider = Depends(get_chat_provider),
    db: Session = Depends(get_db),
):
    shared = [
        a for a in crud.list_appointments_for_patient(db, payload.patient_id) if a.doctor_id == current_user.id
    ]
    if not shared:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    completed = [a.date for a in shared if a.status == "completed"]
    history = "\n".join(
        part for part in (_records_text(db, payload.patient_id), _appointments_text(shared)) if part
    )
    try:
        summary = await flows.doctor_patient_summary(
            provider,
            history=history,
            last_visit=max(completed) if completed else None,
            condition=payload.condition or shared[0].notes,
            current_medicine=payload.current_medicine,
        )
    except ProviderError as exc:
        raise _upstream_error(exc) from exc
    return schemas.DoctorPatientSummaryOut(summary=summary)


@router.get("/stock-alerts", response_model=list[schemas.StockAlertOut])
async def stock_alerts(
    current_user: models.User = Depends(require_pharmacy),
    provider: ChatProvider = Depends(get_chat_provider),
    db: Session = Depends(get_db),
):
    threshold = get_settings().pharmacy_low_stock_threshold
    low = [m for m in crud.search_medicines(db, pharmacy_id=current_user.id) if m.stock < threshold]
    out = []
    for medicine in low:
        try:
            message = await flows.low_stock_alert(provider, medicine.name, medicine.stock, "Current inventory level")
        except ProviderError as exc:
            raise _upstream_error(exc) from exc
        out.append(
            schemas.StockAlertOut(
                medicine_id=medicine.id,
                name=medicine.name,
                stock=medicine.stock,
                alert_message=message,
            )
        )
    return out


@router.post("/patient-stock-alert", response_model=schemas.PatientStockAlertOut)
async def patient_stock_alert(
    payload: schemas.PatientStockAlertIn,
    _: models.User = Depends(require_patient),
    provider: ChatProvider = Depends(get_chat_provider),
):
    try:
        message = await flows.patient_stock_alert(provider, payload.product_name, payload.current_stock)
    except ProviderError as exc:
        raise _upstream_error(exc) from exc
    return schemas.PatientStockAlertOut(alert_message=message)
