"""
One assistant turn: history plus the user message and the tool declarations go
to the model; at most one requested tool is executed and its JSON result is
fed back for a follow-up completion whose text becomes the answer.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from curelink.ai import prompts
from curelink.ai.providers.base import ChatMessage, ChatProvider
from curelink.ai.registry import ToolContext, ToolRegistry

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssistantReply:
    answer: str
    tool_name: str | None = None
    tool_result: dict[str, Any] | None = None


def history_messages(turns: list[dict[str, Any]]) -> list[ChatMessage]:
    out = []
    for turn in turns:
        role = turn.get("role")
        content = turn.get("content")
        if role in ("user", "assistant") and isinstance(content, str):
            out.append(ChatMessage(role=role, content=content))
    return out


async def run_turn(
    provider: ChatProvider,
    registry: ToolRegistry,
    ctx: ToolContext,
    history: list[ChatMessage],
    user_message: str,
) -> AssistantReply:
    messages = [
        ChatMessage(role="system", content=prompts.ASSISTANT_SYSTEM),
        *history,
        ChatMessage(role="user", content=user_message),
    ]
    first = await provider.complete(messages, tools=registry.declarations())
    if first.tool_call is None:
        return AssistantReply(answer=(first.text or "").strip())

    call = first.tool_call
    raw_result = registry.execute(call.name, call.arguments, ctx)
    try:
        result = json.loads(raw_result)
    except json.JSONDecodeError:
        result = {"success": False, "error": "Tool returned invalid JSON"}

    messages.append(ChatMessage(role="assistant", content=first.text, tool_call=call))
    messages.append(ChatMessage(role="tool", content=raw_result, tool_call_id=call.id))
    # No tools on the follow-up: one function call per turn.
    follow_up = await provider.complete(messages)
    _logger.info("assistant_turn tool=%s success=%s", call.name, result.get("success"))
    return AssistantReply(answer=(follow_up.text or "").strip(), tool_name=call.name, tool_result=result)
