"""Tests for decision-tree and single-shot mode detection."""

import itertools

import pytest

from src.chat.mode_detector import (
    IS_CASUAL,
    IS_CLEAR,
    IS_INFORMATIONAL,
    IS_JOKING,
    IS_PERSONAL,
    IS_PLAN,
    IS_QUESTION,
    IS_REASONABLE,
    YES_NO_INSTRUCTION,
    ModeDetector,
    SingleShotModeDetector,
    create_mode_detector,
    parse_yes_no,
    walk_decision_tree,
)
from src.chat.models import ConversationMode, Message
from src.chat.thought_log import LogEntryType
from tests.fakes import FakeProvider, FakeProviderResolver

QUESTIONS = [
    IS_QUESTION,
    IS_INFORMATIONAL,
    IS_CLEAR,
    IS_CASUAL,
    IS_JOKING,
    IS_PERSONAL,
    IS_REASONABLE,
    IS_PLAN,
]


def _scripted(answers: dict[str, bool]):
    """An ``ask`` callable that records the questions it was asked."""
    asked: list[str] = []

    async def ask(question: str) -> bool:
        asked.append(question)
        return answers.get(question, False)

    return ask, asked


def _question_of(system_prompt: str | None) -> str:
    assert system_prompt is not None
    return system_prompt.replace(f" {YES_NO_INSTRUCTION}", "")


def _detector_for(answers: dict[str, str], thought_log) -> tuple[ModeDetector, FakeProvider]:
    provider = FakeProvider(respond=lambda system, _msgs: answers[_question_of(system)])
    return ModeDetector(FakeProviderResolver(provider), thought_log), provider


# -- walk_decision_tree ------------------------------------------------------


@pytest.mark.parametrize(
    ("answers", "expected"),
    [
        ({IS_QUESTION: True, IS_INFORMATIONAL: True, IS_CLEAR: True}, ConversationMode.OPINE),
        (
            {IS_QUESTION: True, IS_INFORMATIONAL: True, IS_CLEAR: False},
            ConversationMode.INVESTIGATE,
        ),
        ({IS_QUESTION: True, IS_INFORMATIONAL: False}, ConversationMode.OPINE),
        ({IS_CASUAL: True, IS_JOKING: True}, ConversationMode.AMUSE),
        (
            {IS_CASUAL: True, IS_PERSONAL: True, IS_REASONABLE: True},
            ConversationMode.EMPOWER,
        ),
        ({IS_CASUAL: True, IS_PERSONAL: True, IS_REASONABLE: False}, ConversationMode.OPINE),
        ({IS_CASUAL: True, IS_CLEAR: False}, ConversationMode.INVESTIGATE),
        ({IS_CASUAL: True, IS_CLEAR: True, IS_REASONABLE: True}, ConversationMode.OPINE),
        ({IS_CASUAL: True, IS_CLEAR: True, IS_REASONABLE: False}, ConversationMode.CRITIQUE),
        ({IS_PLAN: True, IS_CLEAR: True}, ConversationMode.INVESTIGATE),
        ({IS_PLAN: True, IS_CLEAR: False, IS_REASONABLE: True}, ConversationMode.EMPOWER),
        ({IS_PLAN: True, IS_CLEAR: False, IS_REASONABLE: False}, ConversationMode.CRITIQUE),
        ({IS_CLEAR: True}, ConversationMode.OPINE),
        ({}, ConversationMode.INVESTIGATE),
    ],
)
async def test_every_leaf(answers: dict[str, bool], expected: ConversationMode) -> None:
    ask, _ = _scripted(answers)
    assert await walk_decision_tree(ask) == expected


async def test_tree_is_total_over_all_answer_combinations() -> None:
    allowed = {
        ConversationMode.EMPOWER,
        ConversationMode.INVESTIGATE,
        ConversationMode.OPINE,
        ConversationMode.CRITIQUE,
        ConversationMode.AMUSE,
    }
    seen = set()
    for combo in itertools.product([True, False], repeat=len(QUESTIONS)):
        ask, _ = _scripted(dict(zip(QUESTIONS, combo, strict=True)))
        mode = await walk_decision_tree(ask)
        assert mode in allowed
        seen.add(mode)
    assert seen == allowed


async def test_tree_only_asks_questions_on_the_path() -> None:
    ask, asked = _scripted({IS_QUESTION: True, IS_INFORMATIONAL: False})
    await walk_decision_tree(ask)
    assert asked == [IS_QUESTION, IS_INFORMATIONAL]


async def test_joke_short_circuits_before_personal() -> None:
    ask, asked = _scripted({IS_CASUAL: True, IS_JOKING: True})
    await walk_decision_tree(ask)
    assert asked == [IS_QUESTION, IS_CASUAL, IS_JOKING]


# -- parse_yes_no ------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("YES", True), ("yes", True), ("  No \n", False), ("NO", False)],
)
def test_parse_yes_no_accepts_exact_words(raw: str, expected: bool) -> None:
    assert parse_yes_no(raw) is expected


@pytest.mark.parametrize("raw", ["", "Yes.", "maybe", "YES NO", "Y"])
def test_parse_yes_no_rejects_everything_else(raw: str) -> None:
    assert parse_yes_no(raw) is None


# -- mode_query --------------------------------------------------------------


async def test_mode_query_retries_until_parseable(thought_log) -> None:
    provider = FakeProvider(["Well...", "I think so", "yes"])
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    result = await detector.mode_query([Message(content="hi", is_user=True)], IS_QUESTION, "m")

    assert result is True
    assert len(provider.calls) == 3


async def test_mode_query_gives_up_after_four_attempts(thought_log) -> None:
    provider = FakeProvider(["?", "hmm", "perhaps", "unclear", "YES"])
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    result = await detector.mode_query([Message(content="hi", is_user=True)], IS_QUESTION, "m")

    assert result is False
    assert len(provider.calls) == 4


async def test_mode_query_sends_instruction_and_small_budget(thought_log) -> None:
    provider = FakeProvider(["NO"])
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)
    msg = Message(content="Is it raining?", is_user=True)

    await detector.mode_query([msg], IS_QUESTION, "gpt-4.1-nano")

    config, messages, system_prompt = provider.calls[0]
    assert config.model == "gpt-4.1-nano"
    assert config.max_tokens <= 10
    assert messages == [msg]
    assert system_prompt == f"{IS_QUESTION} {YES_NO_INSTRUCTION}"


async def test_mode_query_propagates_provider_errors(thought_log) -> None:
    provider = FakeProvider(error=ConnectionError("offline"))
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    with pytest.raises(ConnectionError):
        await detector.mode_query([Message(content="hi", is_user=True)], IS_QUESTION, "m")


async def test_mode_query_logs_prompt_and_responses(thought_log) -> None:
    provider = FakeProvider(["eh", "NO"])
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    await detector.mode_query([Message(content="hi", is_user=True)], IS_PLAN, "m")

    types = [e.type for e in thought_log.entries]
    assert types == [
        LogEntryType.MODE_DETECTION_START,
        LogEntryType.MODE_PROMPT,
        LogEntryType.MODE_RESPONSE,
        LogEntryType.MODE_RESPONSE,
    ]


# -- detect_mode -------------------------------------------------------------


async def test_empty_history_is_empower_without_calls(thought_log) -> None:
    provider = FakeProvider(["YES"])
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    assert await detector.detect_mode([], "m") == ConversationMode.EMPOWER
    assert provider.calls == []


async def test_detect_mode_uses_only_latest_message(thought_log) -> None:
    answers = {q: "NO" for q in QUESTIONS}
    answers[IS_CASUAL] = "YES"
    answers[IS_JOKING] = "YES"
    detector, provider = _detector_for(answers, thought_log)
    history = [
        Message(content="earlier", is_user=True),
        Message(content="reply", is_user=False),
        Message(content="knock knock", is_user=True),
    ]

    mode = await detector.detect_mode(history, "gpt-4.1-nano")

    assert mode == ConversationMode.AMUSE
    for _, messages, _ in provider.calls:
        assert [m.content for m in messages] == ["knock knock"]


async def test_detect_mode_unparseable_answers_fall_through_as_no(thought_log) -> None:
    provider = FakeProvider(respond=lambda _s, _m: "I cannot say")
    detector = ModeDetector(FakeProviderResolver(provider), thought_log)

    mode = await detector.detect_mode([Message(content="hm", is_user=True)], "m")

    # question NO, casual NO, plan NO, clear NO
    assert mode == ConversationMode.INVESTIGATE
    assert len(provider.calls) == 4 * 4


# -- SingleShotModeDetector --------------------------------------------------


async def test_single_shot_parses_mode_by_substring(thought_log) -> None:
    provider = FakeProvider(["Mode: critique."])
    detector = SingleShotModeDetector(FakeProviderResolver(provider), thought_log)

    mode = await detector.detect_mode([Message(content="x", is_user=True)], "m")

    assert mode == ConversationMode.CRITIQUE


async def test_single_shot_defaults_on_garbage(thought_log) -> None:
    provider = FakeProvider(["banana"])
    detector = SingleShotModeDetector(FakeProviderResolver(provider), thought_log)

    mode = await detector.detect_mode([Message(content="x", is_user=True)], "m")

    assert mode == ConversationMode.EMPOWER


async def test_single_shot_sends_last_three_messages(thought_log) -> None:
    provider = FakeProvider(["SOOTHE"])
    detector = SingleShotModeDetector(FakeProviderResolver(provider), thought_log)
    history = [Message(content=str(i), is_user=i % 2 == 0) for i in range(5)]

    mode = await detector.detect_mode(history, "m")

    assert mode == ConversationMode.SOOTHE
    assert [m.content for m in provider.calls[0][1]] == ["2", "3", "4"]


async def test_single_shot_empty_history(thought_log) -> None:
    provider = FakeProvider(["AMUSE"])
    detector = SingleShotModeDetector(FakeProviderResolver(provider), thought_log)

    assert await detector.detect_mode([], "m") == ConversationMode.EMPOWER
    assert provider.calls == []


# -- create_mode_detector ----------------------------------------------------


def test_factory_selects_strategy(thought_log) -> None:
    resolver = FakeProviderResolver(FakeProvider())
    assert isinstance(create_mode_detector(resolver, thought_log, "tree"), ModeDetector)
    assert isinstance(
        create_mode_detector(resolver, thought_log, "single"), SingleShotModeDetector
    )
    assert isinstance(create_mode_detector(resolver, thought_log, "bogus"), ModeDetector)
