"""Chat model providers.

Every provider takes a ``ModelRequestConfig``, an ordered list of chat turns
and an optional system prompt, and returns the generated text. SDK errors
propagate unchanged so callers can tell a failed call from an empty reply.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import anthropic
import openai

from src.config import settings
from src.llm.models import (
    DEEPSEEK_MODELS,
    OPENAI_MODELS,
    Endpoint,
    ModelRequestConfig,
    UnknownModelError,
    supports_endpoint,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.models import Message

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com"


@runtime_checkable
class ModelProvider(Protocol):
    """Protocol that all chat model providers must satisfy."""

    @property
    def name(self) -> str:
        """Vendor identifier (e.g. 'anthropic')."""
        ...

    async def send_message(
        self,
        config: ModelRequestConfig,
        messages: Sequence[Message],
        system_prompt: str | None = None,
    ) -> str:
        """Generate a reply. Raises on transport or API failure."""
        ...

    def set_api_key(self, api_key: str) -> None:
        """Replace the credential used for subsequent calls."""
        ...


def to_api_messages(messages: Sequence[Message]) -> list[dict[str, str]]:
    """Format messages for a chat-completions style API."""
    return [{"role": m.role, "content": m.content} for m in messages]


class AnthropicProvider:
    """Claude via the official async SDK."""

    name = "anthropic"

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key if api_key is not None else settings.anthropic_api_key
        self._client: anthropic.AsyncAnthropic | None = None

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key
        self._client = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def send_message(
        self,
        config: ModelRequestConfig,
        messages: Sequence[Message],
        system_prompt: str | None = None,
    ) -> str:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "messages": to_api_messages(messages),
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        response = await client.messages.create(**kwargs)
        for block in response.content:
            if block.type == "text":
                return block.text
        return ""


class OpenAICompatibleProvider:
    """Shared chat-completions logic for OpenAI and OpenAI-compatible vendors."""

    name = "openai"
    base_url: str | None = None
    registry = OPENAI_MODELS

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key if api_key is not None else self._default_api_key()
        self._client: openai.AsyncOpenAI | None = None

    def _default_api_key(self) -> str:
        return settings.openai_api_key

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key
        self._client = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self.base_url)
        return self._client

    async def send_message(
        self,
        config: ModelRequestConfig,
        messages: Sequence[Message],
        system_prompt: str | None = None,
    ) -> str:
        if not supports_endpoint(self.registry, config.model, Endpoint.CHAT_COMPLETIONS):
            msg = f"Model {config.model} does not support the {self.name} chat endpoint"
            raise UnknownModelError(msg)

        api_messages: list[dict[str, str]] = []
        if system_prompt and system_prompt.strip():
            api_messages.append({"role": "system", "content": system_prompt})
        api_messages.extend(to_api_messages(messages))

        client = self._get_client()
        response = await client.chat.completions.create(
            model=config.model,
            max_tokens=config.max_tokens,
            messages=api_messages,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class OpenAIProvider(OpenAICompatibleProvider):
    """GPT models from the OpenAI registry."""


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek's OpenAI-compatible API."""

    name = "deepseek"
    base_url = DEEPSEEK_BASE_URL
    registry = DEEPSEEK_MODELS

    def _default_api_key(self) -> str:
        return settings.deepseek_api_key
