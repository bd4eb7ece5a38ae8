"""Tests for model registries and alias handling."""

import pytest

from src.llm.models import (
    ANTHROPIC_ALIASES,
    DEEPSEEK_MODELS,
    OPENAI_MODELS,
    Endpoint,
    models_for_category,
    resolve_alias,
    supports_endpoint,
)


def test_resolve_alias_expands_friendly_names() -> None:
    assert resolve_alias("sonnet") == ANTHROPIC_ALIASES["sonnet"]
    assert resolve_alias(" haiku ") == ANTHROPIC_ALIASES["haiku"]


def test_resolve_alias_passes_through_ids() -> None:
    assert resolve_alias("gpt-4.1-mini") == "gpt-4.1-mini"
    assert resolve_alias("") == ""


def test_registries_are_read_only() -> None:
    with pytest.raises(TypeError):
        OPENAI_MODELS["gpt-5"] = OPENAI_MODELS["gpt-4.1"]  # type: ignore[index]
    with pytest.raises(TypeError):
        ANTHROPIC_ALIASES["fast"] = "claude-x"  # type: ignore[index]


@pytest.mark.parametrize(
    ("model_id", "endpoint", "expected"),
    [
        ("gpt-4.1-nano", Endpoint.CHAT_COMPLETIONS, True),
        ("gpt-4.1-nano", Endpoint.EMBEDDINGS, False),
        ("text-embedding-3-large", Endpoint.EMBEDDINGS, True),
        ("text-embedding-3-large", Endpoint.CHAT_COMPLETIONS, False),
        ("unknown-model", Endpoint.CHAT_COMPLETIONS, False),
    ],
)
def test_supports_endpoint(model_id: str, endpoint: Endpoint, expected: bool) -> None:
    assert supports_endpoint(OPENAI_MODELS, model_id, endpoint) is expected


def test_models_for_vector_category() -> None:
    assert models_for_category("vector") == [
        "text-embedding-3-large",
        "text-embedding-3-small",
        "text-embedding-ada-002",
    ]


def test_models_for_chat_category_spans_vendors() -> None:
    ids = models_for_category("chat")
    assert ids[: len(ANTHROPIC_ALIASES)] == list(ANTHROPIC_ALIASES.values())
    assert "gpt-4.1" in ids
    assert set(DEEPSEEK_MODELS) <= set(ids)
    assert "text-embedding-3-small" not in ids


def test_models_for_unknown_category() -> None:
    assert models_for_category("painting") == []
