"""Append-only log of the assistant's intermediate reasoning.

Mode-detection prompts and answers, chosen system prompts and memory
pipeline notes land here so a UI can show them. The core only writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.chat.models import ConversationMode

logger = logging.getLogger(__name__)


class LogEntryType(StrEnum):
    MODE_DETECTION_START = "mode_detection_start"
    MODE_PROMPT = "mode_prompt"
    MODE_RESPONSE = "mode_response"
    SYSTEM_PROMPT = "system_prompt"
    INFO = "info"


@dataclass
class LogEntry:
    type: LogEntryType
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


class ThoughtProcessLogger:
    """Structured sink for mode-detection and memory events."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def _append(self, entry_type: LogEntryType, content: str) -> None:
        self._entries.append(LogEntry(type=entry_type, content=content))
        logger.debug("[%s] %s", entry_type, content)

    def log_mode_detection_start(self) -> None:
        self._append(LogEntryType.MODE_DETECTION_START, "--- Starting mode detection ---")

    def log_mode_prompt(self, prompt: str) -> None:
        self._append(LogEntryType.MODE_PROMPT, f"Mode Detection Prompt:\n{prompt}")

    def log_mode_response(self, response: str) -> None:
        self._append(LogEntryType.MODE_RESPONSE, f"Mode Response: {response}")

    def log_system_prompt(self, mode: ConversationMode, prompt: str) -> None:
        self._append(LogEntryType.SYSTEM_PROMPT, f"System Prompt (Mode: {mode}):\n{prompt}")

    def log_info(self, message: str) -> None:
        self._append(LogEntryType.INFO, message)

    def clear(self) -> None:
        self._entries.clear()
