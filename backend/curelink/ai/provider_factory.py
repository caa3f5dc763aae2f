from __future__ import annotations

import logging
import os
from functools import lru_cache

from curelink.ai.providers.base import ChatProvider
from curelink.ai.providers.openrouter import OpenRouterProvider
from curelink.ai.providers.stub import StubProvider

_logger = logging.getLogger(__name__)

_PROVIDERS: dict[str, type] = {
    "openrouter": OpenRouterProvider,
    "stub": StubProvider,
}


@lru_cache(maxsize=1)
def get_ai_provider() -> ChatProvider:
    """Provider named by ``AI_PROVIDER``; OpenRouter unless told otherwise."""
    name = (os.getenv("AI_PROVIDER") or "openrouter").strip().lower()
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        raise RuntimeError(f"Unsupported AI_PROVIDER: {name} (expected one of {', '.join(_PROVIDERS)})")
    _logger.info("ai_provider selected=%s", name)
    return provider_cls()
