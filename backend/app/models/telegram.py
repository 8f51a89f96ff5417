"""Telegram wire and log models."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from core.models.base import CamelModel

LogLevel = Literal["info", "warning", "error", "debug"]


class BotInfo(CamelModel):
    """Subset of the Bot API ``User`` object returned by getMe."""

    id: int
    username: str | None = None
    first_name: str = ""

    @classmethod
    def from_api(cls, result: dict[str, Any]) -> "BotInfo":
        return cls(
            id=result["id"],
            username=result.get("username"),
            first_name=result.get("first_name", ""),
        )


class TelegramLogEntry(CamelModel):
    """One recorded bot interaction."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: LogLevel
    chat_id: str
    message: str
    command: str | None = None
    response: str | None = None
    metadata: dict[str, Any] | None = None


class MonitorStatus(CamelModel):
    """Snapshot of the connection monitor."""

    running: bool
    configured: bool
    consecutive_failures: int
    last_check: datetime | None = None
    last_success: datetime | None = None
    last_error: str | None = None
