"""Context window trimming and memory-augmented system prompts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.models import AppConfig, Message
    from src.memory.embeddings import VectorProviderResolver
    from src.memory.models import Memory
    from src.memory.storage import VectorStorageResolver

logger = logging.getLogger(__name__)


def format_memories(memories: Sequence[Memory]) -> str:
    """Format retrieved memories for injection into the system prompt."""
    if not memories:
        return ""
    lines = ["<memories>", "Things you remember from earlier conversations:", ""]
    for memory in memories:
        lines.append(memory.content)
        lines.append("")
    lines.append("</memories>")
    return "\n".join(lines)


def wrap_mode_prompt(mode_prompt: str) -> str:
    return f"<conversation_mode>\n{mode_prompt}\n</conversation_mode>"


class ChatContextBuilder:
    """Bounds the history sent to the model and recalls relevant memories."""

    def __init__(
        self,
        vector_resolver: VectorProviderResolver | None = None,
        storage_resolver: VectorStorageResolver | None = None,
        max_context_messages: int | None = None,
    ) -> None:
        self._vector_resolver = vector_resolver
        self._storage_resolver = storage_resolver
        self._max_messages = max_context_messages or settings.context_window_size

    @property
    def max_context_messages(self) -> int:
        return self._max_messages

    def build_context(self, all_messages: Sequence[Message]) -> list[Message]:
        """Return the most recent messages that fit the window, in order."""
        if len(all_messages) <= self._max_messages:
            return list(all_messages)
        return list(all_messages[-self._max_messages :])

    async def build_system_prompt(
        self,
        mode_prompt: str,
        user_message: str,
        config: AppConfig,
    ) -> str:
        """Append memories relevant to ``user_message`` to ``mode_prompt``.

        Returns ``mode_prompt`` unchanged when memory is not configured,
        nothing relevant is found, or the remote calls fail. An unregistered
        vector model or unmapped storage raises.
        """
        if not config.memory_enabled:
            return mode_prompt
        if self._vector_resolver is None or self._storage_resolver is None:
            return mode_prompt

        vector_provider = self._vector_resolver.get_provider_for_model(config.vector_model)
        storage = self._storage_resolver.storage_for(config)

        try:
            embedding = await vector_provider.get_embedding(user_message, config.vector_model)
            memories = await storage.search_similar(
                embedding,
                top_k=settings.memory_top_k,
                threshold=settings.memory_similarity_threshold,
            )
            memory_text = format_memories(memories)
        except Exception:
            logger.exception("Memory retrieval failed")
            return mode_prompt

        if not memory_text:
            return mode_prompt

        logger.info("Recalled %d memories", len(memories))
        return f"{wrap_mode_prompt(mode_prompt)}\n\n{memory_text}"
