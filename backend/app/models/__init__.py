"""Data models."""

from app.models.telegram import BotInfo, LogLevel, MonitorStatus, TelegramLogEntry

__all__ = [
    "BotInfo",
    "LogLevel",
    "MonitorStatus",
    "TelegramLogEntry",
]
