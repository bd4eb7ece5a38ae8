"""Model registries and per-call request configuration.

Vendor capability tables are immutable and built once at import time.
OpenAI's ``/models`` endpoint says nothing about which endpoint or role a
model supports, so the tables are maintained by hand.
"""

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

ANTHROPIC_PREFIX = "claude-"
DEEPSEEK_PREFIX = "deepseek-"

# Friendly aliases accepted anywhere a Claude model id is expected
ANTHROPIC_ALIASES: MappingProxyType[str, str] = MappingProxyType({
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-1-20250805",
})


class Endpoint(StrEnum):
    CHAT_COMPLETIONS = "chat_completions"
    EMBEDDINGS = "embeddings"


@dataclass(frozen=True)
class ModelCapabilities:
    """What a registry model can be used for."""

    endpoint: Endpoint
    categories: frozenset[str]


_CHAT_ROLES = frozenset({"chat", "thought", "memory"})
_VECTOR_ROLES = frozenset({"vector"})

OPENAI_MODELS: MappingProxyType[str, ModelCapabilities] = MappingProxyType({
    "gpt-4.1": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "gpt-4.1-mini": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "gpt-4.1-nano": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "gpt-4o": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "gpt-4o-mini": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "gpt-3.5-turbo": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "text-embedding-3-large": ModelCapabilities(Endpoint.EMBEDDINGS, _VECTOR_ROLES),
    "text-embedding-3-small": ModelCapabilities(Endpoint.EMBEDDINGS, _VECTOR_ROLES),
    "text-embedding-ada-002": ModelCapabilities(Endpoint.EMBEDDINGS, _VECTOR_ROLES),
})

DEEPSEEK_MODELS: MappingProxyType[str, ModelCapabilities] = MappingProxyType({
    "deepseek-chat": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
    "deepseek-reasoner": ModelCapabilities(Endpoint.CHAT_COMPLETIONS, _CHAT_ROLES),
})


@dataclass(frozen=True)
class ModelRequestConfig:
    """Parameters for a single provider call."""

    model: str
    max_tokens: int = 4096


def resolve_alias(name_or_id: str) -> str:
    """Expand a friendly Claude alias; anything else is returned as-is."""
    return ANTHROPIC_ALIASES.get(name_or_id.strip(), name_or_id.strip())


def supports_endpoint(
    registry: MappingProxyType[str, ModelCapabilities],
    model_id: str,
    endpoint: Endpoint,
) -> bool:
    caps = registry.get(model_id)
    return caps is not None and caps.endpoint == endpoint


def models_for_category(category: str) -> list[str]:
    """List registry model ids usable for a role (chat, thought, memory, vector)."""
    ids = [
        model_id
        for registry in (OPENAI_MODELS, DEEPSEEK_MODELS)
        for model_id, caps in registry.items()
        if category in caps.categories
    ]
    if category in _CHAT_ROLES:
        ids = list(ANTHROPIC_ALIASES.values()) + ids
    return ids


class UnknownModelError(ValueError):
    """A model id that no registered provider serves.

    This is a configuration error and is never retried.
    """
