from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any] | str  # raw JSON string when the model sent unparseable args


@dataclass(frozen=True)
class ChatMessage:
    role: str  # system | user | assistant | tool
    content: str | None
    tool_call: ToolCall | None = None  # set on an assistant message that requested a tool
    tool_call_id: str | None = None  # set on a tool result message


@dataclass(frozen=True)
class ModelTurn:
    text: str | None = None
    tool_call: ToolCall | None = None


class ProviderError(RuntimeError):
    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:  # pragma: no cover
        prefix = f"AI provider error ({self.status_code})" if self.status_code is not None else "AI provider error"
        return f"{prefix}: {self.message}"


class ChatProvider(Protocol):
    name: str

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelTurn: ...
