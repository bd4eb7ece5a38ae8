"""Shared test fixtures."""

import pytest

from src.chat.models import AppConfig
from src.chat.thought_log import ThoughtProcessLogger
from src.memory.models import VectorStorageProvider
from src.memory.storage import LocalVectorStorage, VectorStorageResolver


@pytest.fixture
def thought_log() -> ThoughtProcessLogger:
    return ThoughtProcessLogger()


@pytest.fixture
def local_storage() -> LocalVectorStorage:
    return LocalVectorStorage()


@pytest.fixture
def storage_resolver(local_storage: LocalVectorStorage) -> VectorStorageResolver:
    return VectorStorageResolver({VectorStorageProvider.LOCAL: local_storage})


@pytest.fixture
def memory_config() -> AppConfig:
    """Config with every role set and the local vector backend selected."""
    return AppConfig(
        conversational_model="claude-sonnet-4-5-20250929",
        thought_model="gpt-4.1-nano",
        memory_model="gpt-4.1-mini",
        vector_model="text-embedding-3-small",
        selected_vector_storage=VectorStorageProvider.LOCAL,
    )
