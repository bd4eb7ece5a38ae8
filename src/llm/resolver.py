"""Route a model identifier to the provider that serves it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.llm.models import (
    ANTHROPIC_PREFIX,
    DEEPSEEK_MODELS,
    DEEPSEEK_PREFIX,
    OPENAI_MODELS,
    UnknownModelError,
    resolve_alias,
)

if TYPE_CHECKING:
    from src.llm.providers import ModelProvider

logger = logging.getLogger(__name__)


class ModelProviderResolver:
    """Pick a provider by model id.

    Rules, in order: ``claude-`` prefix → Anthropic, OpenAI registry
    membership → OpenAI, ``deepseek-`` prefix or DeepSeek registry
    membership → DeepSeek. Anything else is a configuration error.
    """

    def __init__(
        self,
        anthropic: ModelProvider,
        openai: ModelProvider,
        deepseek: ModelProvider | None = None,
    ) -> None:
        self._anthropic = anthropic
        self._openai = openai
        self._deepseek = deepseek

    def get_provider_for_model(self, model_id: str) -> ModelProvider:
        """Return the provider bound to ``model_id``. Raises UnknownModelError."""
        model_id = resolve_alias(model_id or "")
        if not model_id:
            msg = "No model configured"
            raise UnknownModelError(msg)

        if model_id.lower().startswith(ANTHROPIC_PREFIX):
            return self._anthropic

        if model_id in OPENAI_MODELS:
            return self._openai

        if self._deepseek is not None and (
            model_id.lower().startswith(DEEPSEEK_PREFIX) or model_id in DEEPSEEK_MODELS
        ):
            return self._deepseek

        msg = f"No provider registered for model: {model_id}"
        raise UnknownModelError(msg)
