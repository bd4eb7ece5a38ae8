"""Data models for conversations and per-turn configuration."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.llm.models import resolve_alias
from src.memory.models import VectorStorageProvider


class ConversationMode(StrEnum):
    """Stance the assistant takes for the next reply."""

    EMPOWER = "empower"
    INVESTIGATE = "investigate"
    OPINE = "opine"
    CRITIQUE = "critique"
    AMUSE = "amuse"
    SOOTHE = "soothe"


DEFAULT_MODE = ConversationMode.EMPOWER


class Message(BaseModel):
    """A single conversation turn.

    ``is_memorized`` flips to True once the content has been folded into a
    memory summary. Nothing else about a message changes after creation.
    """

    content: str
    is_user: bool
    mode: ConversationMode = DEFAULT_MODE
    timestamp: datetime = Field(default_factory=datetime.now)
    is_memorized: bool = False

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"


class ConversationData(BaseModel):
    """On-disk shape of a saved conversation."""

    messages: list[Message] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=datetime.now)
    current_mode: ConversationMode = DEFAULT_MODE


class AppConfig(BaseModel):
    """User-selected models and backends, re-read before every turn.

    An empty ``memory_model`` or ``vector_model`` disables the memory
    subsystem rather than raising.
    """

    conversational_model: str = "claude-sonnet-4-5-20250929"
    thought_model: str = "gpt-4.1-nano"
    memory_model: str = ""
    vector_model: str = ""
    selected_vector_storage: VectorStorageProvider = VectorStorageProvider.QDRANT
    saved_conversations_path: str = "~/.omoi/conversations/"
    supabase_url: str = ""
    qdrant_url: str = ""

    @field_validator(
        "conversational_model", "thought_model", "memory_model", "vector_model"
    )
    @classmethod
    def _expand_alias(cls, value: str) -> str:
        return resolve_alias(value)

    @property
    def memory_enabled(self) -> bool:
        return bool(self.memory_model.strip()) and bool(self.vector_model.strip())
