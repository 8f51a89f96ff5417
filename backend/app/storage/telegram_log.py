"""In-memory log of Telegram bot interactions.

Keeps the most recent entries only (default 1000). Every entry is also
written to the ``logging`` logger so it shows up in process output.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from app.models import LogLevel, TelegramLogEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class TelegramLogStore:
    """Bounded FIFO of ``TelegramLogEntry``; the oldest entry is dropped first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._entries: deque[TelegramLogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def __len__(self) -> int:
        return len(self._entries)

    def log(
        self,
        level: LogLevel,
        chat_id: str | int,
        message: str,
        command: str | None = None,
        response: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TelegramLogEntry:
        entry = TelegramLogEntry(
            level=level,
            chat_id=str(chat_id),
            message=message,
            command=command,
            response=response,
            metadata=metadata,
        )
        self._entries.append(entry)
        logger.log(
            _LEVELS[level],
            "[TELEGRAM %s] %s (chat=%s%s)",
            level.upper(),
            message,
            entry.chat_id,
            f", command={command}" if command else "",
        )
        return entry

    def recent(self, limit: int = 100) -> list[TelegramLogEntry]:
        """Newest ``limit`` entries in insertion order."""
        if limit <= 0:
            return []
        return list(self._entries)[-limit:]

    def for_chat(self, chat_id: str | int, limit: int = 100) -> list[TelegramLogEntry]:
        if limit <= 0:
            return []
        chat = str(chat_id)
        return [e for e in self._entries if e.chat_id == chat][-limit:]

    def clear(self) -> None:
        self._entries.clear()
