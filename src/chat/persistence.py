"""JSON persistence for ``AppConfig`` and saved conversations.

File I/O runs in a worker thread via ``asyncio.to_thread()`` so callers on
the event loop never block.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from src.chat.models import AppConfig, ConversationData, ConversationMode, Message
from src.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
AUTOSAVE_FILENAME = "autosave.json"


def _write_private(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if os.name == "posix":
        path.chmod(0o600)


class ConfigService:
    """Loads and saves the user's ``AppConfig``."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir = config_dir or settings.get_data_dir()
        self._config_path = self._config_dir / CONFIG_FILENAME

    @property
    def config_path(self) -> Path:
        return self._config_path

    async def load_config(self) -> AppConfig:
        """Read ``config.json``; a missing or invalid file yields defaults."""
        if not self._config_path.exists():
            return AppConfig()
        text = await asyncio.to_thread(self._config_path.read_text, encoding="utf-8")
        try:
            return AppConfig.model_validate_json(text)
        except ValidationError:
            logger.exception("Invalid config at %s, using defaults", self._config_path)
            return AppConfig()

    async def save_config(self, config: AppConfig) -> None:
        await asyncio.to_thread(
            _write_private, self._config_path, config.model_dump_json(indent=2)
        )


class ConversationService:
    """Saves and restores conversations as JSON files."""

    def __init__(self, conversations_dir: Path | None = None) -> None:
        self._dir = conversations_dir or settings.get_data_dir() / "conversations"
        self._autosave_path = self._dir / AUTOSAVE_FILENAME

    @property
    def conversations_dir(self) -> Path:
        return self._dir

    async def save(
        self,
        messages: Sequence[Message],
        current_mode: ConversationMode,
        filepath: Path,
    ) -> None:
        data = ConversationData(messages=list(messages), current_mode=current_mode)
        await asyncio.to_thread(_write_private, filepath, data.model_dump_json(indent=2))
        logger.debug("Saved %d messages to %s", len(messages), filepath)

    async def load(self, filepath: Path) -> ConversationData | None:
        """Return the saved conversation, or None if the file is missing."""
        if not filepath.exists():
            return None
        text = await asyncio.to_thread(filepath.read_text, encoding="utf-8")
        return ConversationData.model_validate_json(text)

    async def auto_save(self, messages: Sequence[Message], current_mode: ConversationMode) -> None:
        if not messages:
            return
        await self.save(messages, current_mode, self._autosave_path)

    async def load_auto_save(self) -> ConversationData | None:
        return await self.load(self._autosave_path)

    def generate_timestamped_filename(self) -> Path:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        return self._dir / f"conversation_{timestamp}.json"
