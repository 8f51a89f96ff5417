"""Outbound API clients."""

from app.clients.telegram import TelegramAPIError, TelegramClient

__all__ = [
    "TelegramAPIError",
    "TelegramClient",
]
