from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from typing import Any

import httpx

from .base import ChatMessage, ModelTurn, ProviderError, ToolCall

_RETRYABLE = {429, 500, 502, 503, 504}
_logger = logging.getLogger(__name__)


def _raise_openrouter_error(res: httpx.Response) -> None:
    try:
        payload = res.json()
        msg = payload.get("error", {}).get("message") or payload.get("message") or res.text
    except Exception:
        msg = res.text
    raise ProviderError(res.status_code, str(msg))


def _wire_message(message: ChatMessage) -> dict[str, Any]:
    if message.role == "tool":
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content or ""}
    if message.tool_call is not None:
        call = message.tool_call
        arguments = call.arguments if isinstance(call.arguments, str) else json.dumps(call.arguments)
        return {
            "role": "assistant",
            "content": message.content,
            "tool_calls": [
                {"id": call.id, "type": "function", "function": {"name": call.name, "arguments": arguments}}
            ],
        }
    return {"role": message.role, "content": message.content or ""}


def _parse_turn(data: dict[str, Any]) -> ModelTurn:
    message = data["choices"][0]["message"]
    tool_calls = message.get("tool_calls") or []
    if tool_calls:
        # One function call per turn; extra calls are ignored.
        first = tool_calls[0]
        function = first.get("function") or {}
        raw_args = function.get("arguments") or "{}"
        try:
            arguments: dict[str, Any] | str = json.loads(raw_args) if isinstance(raw_args, str) else raw_args
        except json.JSONDecodeError:
            arguments = raw_args
        return ModelTurn(
            text=message.get("content"),
            tool_call=ToolCall(id=first.get("id") or "call_0", name=function.get("name") or "", arguments=arguments),
        )
    return ModelTurn(text=message.get("content") or "")


class OpenRouterProvider:
    """OpenAI-compatible chat completions with function tools."""

    name = "openrouter"

    def __init__(self) -> None:
        self.api_key = (os.getenv("OPENROUTER_API_KEY") or "").strip()
        self.base_url = (os.getenv("OPENROUTER_BASE_URL") or "https://openrouter.ai/api/v1").rstrip("/")
        self.chat_model = os.getenv("OPENROUTER_CHAT_MODEL", "google/gemini-2.0-flash-001")
        self.http_referer = (os.getenv("OPENROUTER_HTTP_REFERER") or "").strip() or None
        self.x_title = (os.getenv("OPENROUTER_X_TITLE") or "").strip() or None
        self.timeout_s = float(os.getenv("OPENROUTER_TIMEOUT_S", "30"))
        self.max_tokens = int(os.getenv("OPENROUTER_MAX_TOKENS", "2048"))
        self.temperature = float(os.getenv("OPENROUTER_TEMPERATURE", "0.7"))
        self.max_retries = int(os.getenv("OPENROUTER_MAX_RETRIES", "1"))

        if not self.api_key:
            raise ProviderError(None, "OPENROUTER_API_KEY is not set")

    def _headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.http_referer:
            headers["HTTP-Referer"] = self.http_referer
        if self.x_title:
            headers["X-Title"] = self.x_title
        return headers

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelTurn:
        body: dict[str, Any] = {
            "model": self.chat_model,
            "messages": [_wire_message(m) for m in messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            body["tools"] = [{"type": "function", "function": decl} for decl in tools]

        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            start = time.time()
            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url, timeout=self.timeout_s, headers=self._headers()
                ) as client:
                    res = await client.post("/chat/completions", json=body)
                elapsed_ms = int((time.time() - start) * 1000)
                if res.status_code >= 400:
                    _logger.info(
                        "openrouter chat status=%s model=%s ms=%s", res.status_code, self.chat_model, elapsed_ms
                    )
                    if res.status_code in _RETRYABLE and attempt < self.max_retries:
                        retry_after = (res.headers.get("Retry-After") or "").strip()
                        try:
                            delay_s = float(retry_after) if retry_after else 1.0
                        except ValueError:
                            delay_s = 1.0
                        await asyncio.sleep(min(delay_s, 5.0))
                        continue
                    _raise_openrouter_error(res)
                _logger.info("openrouter chat status=200 model=%s ms=%s", self.chat_model, elapsed_ms)
                return _parse_turn(res.json())
            except ProviderError:
                raise
            except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
                last_error = exc
                if attempt >= self.max_retries:
                    break
        raise ProviderError(None, str(last_error or "unknown error"))
