"""
Single-shot prompt flows. Threshold and emergency checks run locally; the
model is only asked to phrase the result.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from curelink.ai import prompts
from curelink.ai.providers.base import ChatMessage, ChatProvider
from curelink.ai.safety import detect_emergency, emergency_response
from curelink.config.settings import get_settings

_logger = logging.getLogger(__name__)

_FALLBACK_GUIDANCE = "I'm sorry, I was unable to process your request at this time. Please try again later."


@dataclass(frozen=True)
class SymptomGuidance:
    guidance: str
    emergency: bool = False


@dataclass(frozen=True)
class MedicalSummary:
    highlights: str
    recent_activity: str
    medication_summary: str


def _extract_json_object(raw: str) -> str | None:
    cleaned = (raw or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[-1]
        if "```" in cleaned:
            cleaned = cleaned.rsplit("```", 1)[0]
        cleaned = cleaned.strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return cleaned[start : end + 1]


async def _ask(provider: ChatProvider, system: str, user: str) -> str:
    turn = await provider.complete([ChatMessage(role="system", content=system), ChatMessage(role="user", content=user)])
    return (turn.text or "").strip()


async def symptom_check(
    provider: ChatProvider,
    symptoms: str,
    medical_history: str | None = None,
    chat_history: str | None = None,
) -> SymptomGuidance:
    if detect_emergency(symptoms):
        _logger.info("symptom_check emergency=true")
        return SymptomGuidance(guidance=emergency_response(), emergency=True)

    text = await _ask(
        provider,
        prompts.SYMPTOM_CHECKER_SYSTEM,
        prompts.SYMPTOM_CHECKER_USER.format(
            symptoms=symptoms,
            history=medical_history or "None provided",
            chat_history=chat_history or "None",
        ),
    )
    return SymptomGuidance(guidance=text or _FALLBACK_GUIDANCE)


async def medical_summary(provider: ChatProvider, records: str, appointments: str, medications: str) -> MedicalSummary:
    raw = await _ask(
        provider,
        prompts.MEDICAL_SUMMARY_SYSTEM,
        prompts.MEDICAL_SUMMARY_USER.format(
            records=records or "No records uploaded.",
            appointments=appointments or "No appointments.",
            medications=medications or "No active medications.",
        ),
    )
    extracted = _extract_json_object(raw)
    data: dict = {}
    if extracted:
        try:
            loaded = json.loads(extracted)
            data = loaded if isinstance(loaded, dict) else {}
        except json.JSONDecodeError:
            _logger.warning("medical_summary returned invalid JSON")
    return MedicalSummary(
        highlights=str(data.get("highlights") or raw or "No summary available."),
        recent_activity=str(data.get("recentActivity") or ""),
        medication_summary=str(data.get("medicationSummary") or ""),
    )


async def doctor_patient_summary(
    provider: ChatProvider,
    history: str,
    last_visit: str | None,
    condition: str | None,
    current_medicine: str | None,
) -> str:
    return await _ask(
        provider,
        prompts.DOCTOR_SUMMARY_SYSTEM,
        prompts.DOCTOR_SUMMARY_USER.format(
            history=history or "No history on file.",
            last_visit=last_visit or "No previous visit",
            condition=condition or "Not specified",
            current_medicine=current_medicine or "None",
        ),
    )


async def low_stock_alert(provider: ChatProvider, name: str, stock: int, reason: str) -> str | None:
    """Pharmacy-side alert; ``None`` when stock is at or above the threshold."""
    if stock >= get_settings().pharmacy_low_stock_threshold:
        return None
    text = await _ask(
        provider,
        prompts.LOW_STOCK_SYSTEM,
        prompts.LOW_STOCK_USER.format(name=name, stock=stock, reason=reason),
    )
    return text or f"{name} is running low ({stock} left). Please replenish soon."


async def patient_stock_alert(provider: ChatProvider, name: str, stock: int) -> str:
    if stock > get_settings().patient_low_stock_threshold:
        return "Stock levels are currently fine."
    text = await _ask(provider, prompts.PATIENT_STOCK_SYSTEM, prompts.PATIENT_STOCK_USER.format(name=name, stock=stock))
    return text or (
        f"It looks like your supply of {name} is running low ({stock} remaining). "
        "It might be a good time to place a new order!"
    )
