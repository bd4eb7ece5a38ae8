"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Omoi configuration. All values come from environment variables.

    Per-role model selection lives in ``AppConfig`` (``config.json`` in the
    data dir) because it may change between turns. This class only holds
    secrets, paths and tuning constants.
    """

    # Vendor credentials
    anthropic_api_key: str = Field(default="")
    openai_api_key: str = Field(default="")
    deepseek_api_key: str = Field(default="")

    # Vector backends
    qdrant_api_key: str = Field(default="")
    supabase_api_key: str = Field(default="")
    vector_dimensions: int = Field(default=3072)

    # Local state (config.json, conversations/)
    data_dir: Path = Field(default=Path("~/.omoi"))

    # Conversation
    context_window_size: int = Field(default=16)
    chat_max_tokens: int = Field(default=4096)

    # Mode detection
    mode_detection_strategy: str = Field(default="tree")
    mode_query_max_attempts: int = Field(default=4)
    mode_query_max_tokens: int = Field(default=5)

    # Long-term memory
    memory_store_interval: int = Field(default=16)
    memory_max_tokens: int = Field(default=2048)
    memory_top_k: int = Field(default=5)
    memory_similarity_threshold: float = Field(default=0.1)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_data_dir(self) -> Path:
        """Return the data directory with ``~`` expanded."""
        return self.data_dir.expanduser()


settings = Settings()
