"""Process-local storage."""

from app.storage.telegram_log import DEFAULT_CAPACITY, TelegramLogStore

__all__ = [
    "DEFAULT_CAPACITY",
    "TelegramLogStore",
]
