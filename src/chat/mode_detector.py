"""Conversation mode detection.

The canonical detector walks a decision tree of yes/no questions, each
answered by a separate call to a fast classification model. Splitting the
judgment into independent binary questions keeps every step small enough to
retry on its own when the model answers with something other than YES/NO.

A single-shot detector, which asks for the mode name directly, is kept as a
cheaper alternative.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from src.chat.models import DEFAULT_MODE, ConversationMode
from src.config import settings
from src.llm.models import ModelRequestConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.chat.models import Message
    from src.chat.thought_log import ThoughtProcessLogger
    from src.llm.resolver import ModelProviderResolver

logger = logging.getLogger(__name__)

YES_NO_INSTRUCTION = "Answer with a single word, YES or NO."

IS_QUESTION = "Is the message a question?"
IS_INFORMATIONAL = "Is the question informational?"
IS_CLEAR = "Is the message clear and specific enough to respond to with confidence?"
IS_CASUAL = "Is the statement casual?"
IS_JOKING = "Is the statement a joke or meant playfully?"
IS_PERSONAL = "Is the statement personal?"
IS_REASONABLE = "Is the statement reasonable and valid?"
IS_PLAN = "Is the statement a plan?"

Ask = Callable[[str], Awaitable[bool]]


async def walk_decision_tree(ask: Ask) -> ConversationMode:
    """Resolve a mode from yes/no answers supplied by ``ask``.

    Only the questions on the taken path are asked, in tree order.
    """
    if await ask(IS_QUESTION):
        if await ask(IS_INFORMATIONAL):
            if await ask(IS_CLEAR):
                return ConversationMode.OPINE
            return ConversationMode.INVESTIGATE
        return ConversationMode.OPINE

    if await ask(IS_CASUAL):
        if await ask(IS_JOKING):
            return ConversationMode.AMUSE
        if await ask(IS_PERSONAL):
            if await ask(IS_REASONABLE):
                return ConversationMode.EMPOWER
            return ConversationMode.OPINE
        if not await ask(IS_CLEAR):
            return ConversationMode.INVESTIGATE
        if await ask(IS_REASONABLE):
            return ConversationMode.OPINE
        return ConversationMode.CRITIQUE

    if await ask(IS_PLAN):
        if await ask(IS_CLEAR):
            return ConversationMode.INVESTIGATE
        if await ask(IS_REASONABLE):
            return ConversationMode.EMPOWER
        return ConversationMode.CRITIQUE

    if await ask(IS_CLEAR):
        return ConversationMode.OPINE
    return ConversationMode.INVESTIGATE


def parse_yes_no(response: str) -> bool | None:
    """Return True/False for an exact YES/NO (case-insensitive), else None."""
    answer = response.strip().upper()
    if answer == "YES":
        return True
    if answer == "NO":
        return False
    return None


class ModeDetector:
    """Decision-tree mode detector driven by a classification model."""

    def __init__(
        self,
        resolver: ModelProviderResolver,
        thought_log: ThoughtProcessLogger,
        max_attempts: int | None = None,
    ) -> None:
        self._resolver = resolver
        self._log = thought_log
        self._max_attempts = max_attempts or settings.mode_query_max_attempts

    async def mode_query(self, context: Sequence[Message], question: str, model: str) -> bool:
        """Ask one yes/no question about ``context``.

        Unparseable answers are retried up to ``max_attempts`` times, after
        which the answer is NO. Provider errors propagate.
        """
        provider = self._resolver.get_provider_for_model(model)
        request = ModelRequestConfig(model=model, max_tokens=settings.mode_query_max_tokens)
        prompt = f"{question} {YES_NO_INSTRUCTION}"

        self._log.log_mode_detection_start()
        self._log.log_mode_prompt(prompt)

        for attempt in range(1, self._max_attempts + 1):
            response = await provider.send_message(request, list(context), system_prompt=prompt)
            self._log.log_mode_response(response)

            answer = parse_yes_no(response)
            if answer is not None:
                return answer
            logger.info(
                "Unparseable mode answer %r (attempt %d/%d)",
                response,
                attempt,
                self._max_attempts,
            )

        self._log.log_info(f"No YES/NO after {self._max_attempts} attempts, assuming NO")
        return False

    async def detect_mode(self, recent_messages: Sequence[Message], model: str) -> ConversationMode:
        """Pick the mode for the next reply from the latest message."""
        if not recent_messages:
            return DEFAULT_MODE

        last_message = list(recent_messages[-1:])

        async def ask(question: str) -> bool:
            return await self.mode_query(last_message, question, model)

        mode = await walk_decision_tree(ask)
        logger.info("Detected mode: %s", mode)
        return mode


SINGLE_SHOT_PROMPT = (
    "Classify the user's latest message into exactly one conversational mode:\n"
    "EMPOWER - sharing ideas or plans that deserve encouragement\n"
    "INVESTIGATE - asking or exploring something with unknowns\n"
    "OPINE - chatting or sharing an opinion\n"
    "CRITIQUE - saying something dubious that needs pushback\n"
    "AMUSE - joking or being playful\n"
    "SOOTHE - distressed or anxious\n"
    "Respond with ONLY the mode name."
)

SINGLE_SHOT_CONTEXT = 3


class SingleShotModeDetector:
    """One classification call returning a mode name, matched by substring."""

    def __init__(self, resolver: ModelProviderResolver, thought_log: ThoughtProcessLogger) -> None:
        self._resolver = resolver
        self._log = thought_log

    async def detect_mode(self, recent_messages: Sequence[Message], model: str) -> ConversationMode:
        if not recent_messages:
            return DEFAULT_MODE

        provider = self._resolver.get_provider_for_model(model)
        request = ModelRequestConfig(model=model, max_tokens=settings.mode_query_max_tokens)

        self._log.log_mode_detection_start()
        self._log.log_mode_prompt(SINGLE_SHOT_PROMPT)
        response = await provider.send_message(
            request,
            list(recent_messages[-SINGLE_SHOT_CONTEXT:]),
            system_prompt=SINGLE_SHOT_PROMPT,
        )
        self._log.log_mode_response(response)

        upper = response.upper()
        for mode in ConversationMode:
            if mode.name in upper:
                return mode
        logger.info("Unparseable mode response %r, using %s", response, DEFAULT_MODE)
        return DEFAULT_MODE


def create_mode_detector(
    resolver: ModelProviderResolver,
    thought_log: ThoughtProcessLogger,
    strategy: str | None = None,
) -> ModeDetector | SingleShotModeDetector:
    """Build the detector named by ``strategy`` (``"tree"`` or ``"single"``)."""
    strategy = strategy or settings.mode_detection_strategy
    if strategy == "single":
        return SingleShotModeDetector(resolver, thought_log)
    if strategy != "tree":
        logger.warning("Unknown mode detection strategy %r, using tree", strategy)
    return ModeDetector(resolver, thought_log)
