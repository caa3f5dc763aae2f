"""
Capability-restricted tool registry for model function calling.

The registry only knows tool names, argument models and handlers. It never
talks to a model client: the assistant loop asks it for declarations and hands
it the model's requested call.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from curelink import models

_logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    db: Session
    user: models.User
    today: date = field(default_factory=date.today)


Handler = Callable[[Any, ToolContext], dict[str, Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: Handler


def _strip_titles(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {k: _strip_titles(v) for k, v in schema.items() if k != "title"}
    if isinstance(schema, list):
        return [_strip_titles(v) for v in schema]
    return schema


def _failure(error: str) -> str:
    return json.dumps({"success": False, "error": error}, ensure_ascii=False)


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, name: str, description: str, args_model: type[BaseModel]):
        def decorator(handler: Handler) -> Handler:
            if name in self._tools:
                raise ValueError(f"Tool already registered: {name}")
            self._tools[name] = Tool(name=name, description=description, args_model=args_model, handler=handler)
            return handler

        return decorator

    def names(self) -> list[str]:
        return list(self._tools)

    def declarations(self) -> list[dict[str, Any]]:
        out = []
        for tool in self._tools.values():
            parameters = _strip_titles(tool.args_model.model_json_schema(by_alias=True))
            parameters.setdefault("properties", {})
            out.append({"name": tool.name, "description": tool.description, "parameters": parameters})
        return out

    def execute(self, name: str, raw_args: dict[str, Any] | str | None, ctx: ToolContext) -> str:
        tool = self._tools.get(name)
        if tool is None:
            _logger.info("tool_call name=%s status=unknown", name)
            return _failure(f"Unknown function: {name}")

        if isinstance(raw_args, str):
            try:
                raw_args = json.loads(raw_args or "{}")
            except json.JSONDecodeError:
                _logger.info("tool_call name=%s status=bad_json", name)
                return _failure("Arguments are not valid JSON")

        try:
            args = tool.args_model.model_validate(raw_args or {})
        except ValidationError as exc:
            _logger.info("tool_call name=%s status=invalid_args", name)
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}" for err in exc.errors()
            )
            return _failure(f"Invalid arguments: {errors}")

        try:
            result = tool.handler(args, ctx)
        except Exception as exc:
            _logger.exception("tool_call name=%s status=error user_id=%s", name, ctx.user.id)
            return _failure(str(exc) or exc.__class__.__name__)

        _logger.info("tool_call name=%s status=ok user_id=%s", name, ctx.user.id)
        return json.dumps(result, ensure_ascii=False, default=str)
