"""Data models for long-term memory storage."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class VectorStorageProvider(StrEnum):
    """Vector backends a user can select in ``AppConfig``."""

    SUPABASE = "supabase"
    QDRANT = "qdrant"
    LOCAL = "local"


class Memory(BaseModel):
    """A distilled paragraph retrieved from vector storage.

    ``similarity`` is only meaningful on search results and is never
    persisted.
    """

    id: str
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    similarity: float = 0.0
