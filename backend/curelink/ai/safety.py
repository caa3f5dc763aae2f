from __future__ import annotations

EMERGENCY_KEYWORDS = (
    "cant breathe",
    "can't breathe",
    "difficulty breathing",
    "chest pain severe",
    "severe chest pain",
    "unconscious",
    "heavy bleeding",
    "suicide",
    "overdose",
    "severe allergic reaction",
    "heart attack",
    "stroke",
)


def detect_emergency(text: str) -> bool:
    msg = (text or "").lower()
    return any(keyword in msg for keyword in EMERGENCY_KEYWORDS)


def emergency_response() -> str:
    return (
        "Your symptoms may need urgent care. Please call your local emergency number "
        "or go to the nearest emergency room right away. "
        "This is not medical advice."
    )
