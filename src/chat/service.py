"""Per-turn orchestration of mode detection, context, chat and memory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from src.chat.models import DEFAULT_MODE, ConversationMode, Message
from src.chat.modes import get_system_prompt_for_mode
from src.config import settings
from src.llm.models import ModelRequestConfig

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from pathlib import Path

    from src.chat.context import ChatContextBuilder
    from src.chat.mode_detector import ModeDetector, SingleShotModeDetector
    from src.chat.persistence import ConfigService, ConversationService
    from src.chat.thought_log import ThoughtProcessLogger
    from src.llm.resolver import ModelProviderResolver
    from src.memory.storer import ChatMemoryStorer

logger = logging.getLogger(__name__)


class ChatEventKind(StrEnum):
    MESSAGE_ADDED = "message_added"
    MESSAGE_REMOVED = "message_removed"
    TURN_COMPLETED = "turn_completed"
    MEMORIES_STORED = "memories_stored"
    BUSY_CHANGED = "busy_changed"
    CONVERSATION_RESET = "conversation_reset"


@dataclass
class ChatEvent:
    """Notification published to listeners as the conversation changes."""

    kind: ChatEventKind
    message: Message | None = None
    mode: ConversationMode | None = None
    busy: bool | None = None


class TurnInProgressError(RuntimeError):
    """A message was sent while the previous turn was still running."""


class ChatService:
    """Owns the conversation list and runs one turn at a time.

    Per turn: detect the mode from the latest user message, build the
    memory-augmented system prompt and bounded context, call the
    conversational model, then give the memory storer a chance to distill
    pending messages. A failed model call removes the user message again so
    the list is left as it was before the turn.
    """

    def __init__(
        self,
        config_service: ConfigService,
        provider_resolver: ModelProviderResolver,
        mode_detector: ModeDetector | SingleShotModeDetector,
        context_builder: ChatContextBuilder,
        memory_storer: ChatMemoryStorer,
        conversation_service: ConversationService,
        thought_log: ThoughtProcessLogger,
    ) -> None:
        self._config_service = config_service
        self._provider_resolver = provider_resolver
        self._mode_detector = mode_detector
        self._context_builder = context_builder
        self._memory_storer = memory_storer
        self._conversation_service = conversation_service
        self._log = thought_log

        self._messages: list[Message] = []
        self._current_mode: ConversationMode = DEFAULT_MODE
        self._busy = False
        self._listeners: list[Callable[[ChatEvent], Awaitable[None]]] = []

    # -- State ---------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """A copy of the conversation, oldest first."""
        return list(self._messages)

    @property
    def current_mode(self) -> ConversationMode:
        return self._current_mode

    @property
    def busy(self) -> bool:
        """True while a turn is running; input should be disabled."""
        return self._busy

    # -- Events --------------------------------------------------------------

    def add_listener(self, listener: Callable[[ChatEvent], Awaitable[None]]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[ChatEvent], Awaitable[None]]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, event: ChatEvent) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception:
                logger.exception("Chat listener failed on %s", event.kind)

    async def _set_busy(self, busy: bool) -> None:
        self._busy = busy
        await self._emit(ChatEvent(ChatEventKind.BUSY_CHANGED, busy=busy))

    # -- Turn ----------------------------------------------------------------

    async def send_message(self, text: str) -> tuple[Message, ConversationMode]:
        """Run one full turn for ``text`` and return the reply and its mode.

        Raises whatever the classification or chat provider raised; the
        conversation is rolled back to its pre-turn state in that case.
        A misconfigured memory model or storage raises after the reply has
        been kept.
        """
        if self._busy:
            msg = "A turn is already in progress"
            raise TurnInProgressError(msg)

        await self._set_busy(True)
        try:
            return await self._run_turn(text)
        finally:
            await self._set_busy(False)

    async def _run_turn(self, text: str) -> tuple[Message, ConversationMode]:
        user_msg = Message(content=text, is_user=True, mode=self._current_mode)
        self._messages.append(user_msg)
        await self._emit(ChatEvent(ChatEventKind.MESSAGE_ADDED, message=user_msg))

        try:
            config = await self._config_service.load_config()

            new_mode = await self._mode_detector.detect_mode(self._messages, config.thought_model)
            mode_prompt = get_system_prompt_for_mode(new_mode)
            system_prompt = await self._context_builder.build_system_prompt(
                mode_prompt, text, config
            )
            self._log.log_system_prompt(new_mode, system_prompt)

            context = self._context_builder.build_context(self._messages)
            provider = self._provider_resolver.get_provider_for_model(config.conversational_model)
            reply_text = await provider.send_message(
                ModelRequestConfig(
                    model=config.conversational_model,
                    max_tokens=settings.chat_max_tokens,
                ),
                context,
                system_prompt=system_prompt,
            )
        except Exception:
            logger.exception("Chat turn failed, rolling back")
            if self._messages and self._messages[-1] is user_msg:
                self._messages.pop()
            await self._emit(ChatEvent(ChatEventKind.MESSAGE_REMOVED, message=user_msg))
            raise

        self._current_mode = new_mode
        reply = Message(content=reply_text, is_user=False, mode=new_mode)
        self._messages.append(reply)
        await self._emit(ChatEvent(ChatEventKind.MESSAGE_ADDED, message=reply, mode=new_mode))

        if await self._memory_storer.process_memories(self._messages, config):
            await self._emit(ChatEvent(ChatEventKind.MEMORIES_STORED))
            try:
                await self._conversation_service.auto_save(self._messages, self._current_mode)
            except Exception:
                logger.exception("Auto-save after memory storage failed")

        await self._emit(ChatEvent(ChatEventKind.TURN_COMPLETED, message=reply, mode=new_mode))
        return reply, new_mode

    # -- Lifecycle -----------------------------------------------------------

    async def auto_save(self) -> None:
        await self._conversation_service.auto_save(self._messages, self._current_mode)

    def new_save_path(self) -> Path:
        return self._conversation_service.generate_timestamped_filename()

    async def clear_conversation(self) -> None:
        """Auto-save, then start a fresh conversation."""
        await self.auto_save()
        self._messages.clear()
        self._current_mode = DEFAULT_MODE
        self._log.clear()
        await self._emit(ChatEvent(ChatEventKind.CONVERSATION_RESET, mode=DEFAULT_MODE))

    async def load_conversation(
        self,
        messages: Sequence[Message],
        mode: ConversationMode | None = None,
    ) -> None:
        """Replace the conversation.

        The mode is ``mode`` when given, else the last message's mode.
        """
        self._messages = list(messages)
        if mode is None:
            mode = self._messages[-1].mode if self._messages else DEFAULT_MODE
        self._current_mode = mode
        await self._emit(ChatEvent(ChatEventKind.CONVERSATION_RESET, mode=mode))

    async def load_from_file(self, filepath: Path) -> bool:
        """Auto-save the current conversation and load another. False if missing."""
        await self.auto_save()
        data = await self._conversation_service.load(filepath)
        if data is None:
            return False
        await self.load_conversation(data.messages, data.current_mode)
        return True

    async def restore_auto_save(self) -> bool:
        data = await self._conversation_service.load_auto_save()
        if data is None or not data.messages:
            return False
        await self.load_conversation(data.messages, data.current_mode)
        return True

    async def save_to_file(self, filepath: Path) -> None:
        await self._conversation_service.save(self._messages, self._current_mode, filepath)

    async def truncate_from(self, index: int) -> list[Message]:
        """Drop the message at ``index`` and everything after it (for edit-and-resend)."""
        if self._busy:
            msg = "Cannot edit the conversation while a turn is running"
            raise TurnInProgressError(msg)
        removed = self._messages[index:]
        self._messages = self._messages[:index]
        self._current_mode = self._messages[-1].mode if self._messages else DEFAULT_MODE
        for message in reversed(removed):
            await self._emit(ChatEvent(ChatEventKind.MESSAGE_REMOVED, message=message))
        return removed
