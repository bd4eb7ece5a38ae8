"""Batched distillation of conversation history into long-term memories.

Every turn, the storer counts messages not yet folded into a memory. Once
that count reaches the store interval, the pending transcript is sent to
the memory model, which returns one plain paragraph per durable topic. Each
paragraph is embedded and stored on its own.

Messages are marked memorized when the batch has been reviewed: either
nothing was worth keeping, memory storage is not configured, or at least one
paragraph was stored. If every paragraph fails, the batch stays pending and
is retried (with any newer messages) at the next trigger.

Remote failures never escape ``process_memories``. An unregistered model or
an unmapped storage selection does: those are setup bugs.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from src.chat.models import Message
from src.config import settings
from src.llm.models import ModelRequestConfig, UnknownModelError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.models import AppConfig
    from src.chat.thought_log import ThoughtProcessLogger
    from src.llm.resolver import ModelProviderResolver
    from src.memory.embeddings import VectorProvider, VectorProviderResolver
    from src.memory.storage import VectorStorage, VectorStorageResolver

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTION = (
    "Below is a transcript of part of a conversation between a user and an "
    "assistant. Extract only durable information worth remembering in future "
    "conversations: facts about the user, their preferences, goals, decisions, "
    "relevant definitions and insights. Ignore greetings, small talk and routine "
    "exchanges.\n\n"
    "Write each topic as an independent prose paragraph that makes sense on its "
    "own, and separate paragraphs with a single blank line. Use no markup of any "
    "kind: no headings, no bullet points, no bold or italics, no numbered lists "
    "and no labels. If nothing is worth remembering, respond with nothing."
)

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_NUMBERED = re.compile(r"^\s*\d+\.", re.MULTILINE)
_BULLET = re.compile(r"^\s*- ", re.MULTILINE)


def format_transcript(messages: Sequence[Message]) -> str:
    """Render messages as ``Role: "content"`` lines separated by blank lines."""
    return "\n\n".join(
        f'{"User" if m.is_user else "Assistant"}: "{m.content}"' for m in messages
    )


def split_paragraphs(text: str) -> list[str]:
    """Split a summary on blank lines, dropping empty chunks."""
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def has_formatting(paragraph: str) -> bool:
    return "**" in paragraph or bool(_BULLET.search(paragraph)) or bool(
        _NUMBERED.search(paragraph)
    )


class ChatMemoryStorer:
    """Turns batches of un-memorized messages into stored memories."""

    def __init__(
        self,
        provider_resolver: ModelProviderResolver,
        vector_resolver: VectorProviderResolver,
        storage_resolver: VectorStorageResolver,
        thought_log: ThoughtProcessLogger,
        interval: int | None = None,
    ) -> None:
        self._provider_resolver = provider_resolver
        self._vector_resolver = vector_resolver
        self._storage_resolver = storage_resolver
        self._log = thought_log
        self._interval = interval or settings.memory_store_interval

    @property
    def interval(self) -> int:
        return self._interval

    @staticmethod
    def _mark_memorized(messages: Sequence[Message]) -> None:
        for message in messages:
            message.is_memorized = True

    async def summarize(self, messages: Sequence[Message], model: str) -> list[str]:
        """Ask the memory model for topic paragraphs. Provider errors propagate."""
        provider = self._provider_resolver.get_provider_for_model(model)
        request = ModelRequestConfig(model=model, max_tokens=settings.memory_max_tokens)
        transcript = Message(content=format_transcript(messages), is_user=True)

        raw = await provider.send_message(request, [transcript], system_prompt=SUMMARY_INSTRUCTION)
        paragraphs = split_paragraphs(raw)

        for paragraph in paragraphs:
            if has_formatting(paragraph):
                logger.warning("Memory paragraph contains formatting: %s", paragraph[:80])
        return paragraphs

    async def process_memories(self, all_messages: Sequence[Message], config: AppConfig) -> bool:
        """Distill pending messages once the interval is reached.

        Returns True only when at least one memory was stored.
        """
        pending = [m for m in all_messages if not m.is_memorized]
        if len(pending) < self._interval:
            return False

        if not config.memory_model.strip():
            logger.debug("No memory model configured, skipping memory storage")
            return False

        # Configuration errors raise here, before any remote call
        self._provider_resolver.get_provider_for_model(config.memory_model)
        vector_provider: VectorProvider | None = None
        storage: VectorStorage | None = None
        if config.vector_model.strip():
            vector_provider = self._vector_resolver.get_provider_for_model(config.vector_model)
            storage = self._storage_resolver.storage_for(config)

        self._log.log_info(f"Processing messages for memory, found {len(pending)} messages")

        try:
            paragraphs = await self.summarize(pending, config.memory_model)
        except UnknownModelError:
            raise
        except Exception:
            logger.exception("Memory summarization failed")
            return False

        if not paragraphs:
            self._log.log_info("Nothing worth remembering in this batch")
            self._mark_memorized(pending)
            return False

        if vector_provider is None or storage is None:
            self._log.log_info("No vector model configured, skipping memory storage")
            self._mark_memorized(pending)
            return False

        try:
            await storage.ensure_ready()
        except Exception:
            logger.exception("Vector storage unavailable")
            return False

        stored = 0
        for paragraph in paragraphs:
            try:
                embedding = await vector_provider.get_embedding(paragraph, config.vector_model)
                await storage.store_memory(paragraph, embedding)
                stored += 1
            except Exception:
                logger.exception("Failed to store memory paragraph: %s", paragraph[:80])

        self._log.log_info(f"Stored {stored} of {len(paragraphs)} memories")

        if stored == 0:
            return False

        self._mark_memorized(pending)
        return True
