from __future__ import annotations

import json
import re
from typing import Any

from .base import ChatMessage, ModelTurn, ToolCall

_SPECIALTIES = [
    "cardiologist",
    "dermatologist",
    "neurologist",
    "pediatrician",
    "orthopedic",
    "gynecologist",
    "psychiatrist",
    "dentist",
    "general physician",
]

_RESPONSE_KEYS = re.compile(r"RESPONSE_KEYS:\s*([a-zA-Z_, ]+)")


def _has_word(text: str, *words: str) -> bool:
    return any(re.search(rf"\b{re.escape(w)}", text) for w in words)


def _medicine_query(low: str) -> str:
    match = re.search(r"\b(?:for|find|search|need|buy)\s+([a-z0-9][a-z0-9 \-]*)", low)
    query = match.group(1) if match else low
    query = re.sub(r"\b(medicines?|tablets?|please|price|of|the|some)\b", " ", query)
    return " ".join(query.split()) or low


def route_tool(message: str, available: set[str]) -> tuple[str, dict[str, Any]] | None:
    """Keyword routing used in place of model function calling."""
    low = (message or "").strip().lower()
    if not low:
        return None
    routes: list[tuple[bool, str, dict[str, Any]]] = [
        (_has_word(low, "budget", "spend", "spent", "cost"), "getBudgetAndSpending", {}),
        (_has_word(low, "medication", "reminder"), "getActiveMedications", {}),
        (
            _has_word(low, "appointment"),
            "getAppointments",
            {"filter": "past" if _has_word(low, "past", "previous") else "today" if _has_word(low, "today") else "upcoming"},
        ),
        (_has_word(low, "order"), "getOrderDetails", {}),
        (_has_word(low, "record", "report"), "getMedicalRecords", {}),
        (_has_word(low, "hospital"), "searchHospitals", {}),
    ]
    for hit, name, args in routes:
        if hit and name in available:
            return name, args

    specialty = next((s for s in _SPECIALTIES if s in low), None)
    if (specialty or _has_word(low, "doctor", "specialist")) and "searchDoctors" in available:
        return "searchDoctors", {"specialization": specialty or "general"}
    if _has_word(low, "medicine", "tablet", "price", "buy") and "searchMedicines" in available:
        return "searchMedicines", {"query": _medicine_query(low)}
    return None


def _summarize_tool_result(raw: str) -> str:
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return "I could not read that information right now."
    if not isinstance(data, dict) or not data.get("success"):
        error = data.get("error") if isinstance(data, dict) else None
        return f"Sorry, I could not complete that request. {error or ''}".strip()
    parts = []
    for key, value in data.items():
        if key == "success":
            continue
        if isinstance(value, list):
            parts.append(f"{len(value)} {key}")
        elif isinstance(value, (int, float, str)):
            parts.append(f"{key}: {value}")
    return "Here is what I found: " + (", ".join(parts) if parts else "nothing to report") + "."


class StubProvider:
    """
    Deterministic provider for tests/dev when an external LLM is not configured.
    """

    name = "stub"

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelTurn:
        last = messages[-1] if messages else None
        if last is not None and last.role == "tool":
            return ModelTurn(text=_summarize_tool_result(last.content or ""))

        system = next((m.content or "" for m in messages if m.role == "system"), "")
        user = next((m.content or "" for m in reversed(messages) if m.role == "user"), "")

        keys_match = _RESPONSE_KEYS.search(system)
        if keys_match:
            keys = [k.strip() for k in keys_match.group(1).split(",") if k.strip()]
            snippet = " ".join(user.split())[:160]
            return ModelTurn(text=json.dumps({key: snippet for key in keys}, ensure_ascii=False))

        if tools:
            routed = route_tool(user, {decl["name"] for decl in tools})
            if routed is not None:
                name, args = routed
                return ModelTurn(tool_call=ToolCall(id=f"call_{name}", name=name, arguments=args))

        low = user.strip().lower()
        if low.startswith(("hi", "hello", "hey")):
            return ModelTurn(text="Hello! How can I help you with your health today?")
        return ModelTurn(text="I can help with doctors, medicines, appointments, orders and records.")
