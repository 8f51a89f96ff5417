"""Business services."""

from app.services.connection_monitor import TelegramConnectionMonitor
from app.services.m1_service import M1SignalService
from app.services.otc_service import OTCSignalService
from app.services.telegram_notifier import TelegramNotConfiguredError, TelegramNotifier
from app.services.webhook import TelegramCommandHandler

__all__ = [
    "TelegramConnectionMonitor",
    "M1SignalService",
    "OTCSignalService",
    "TelegramNotConfiguredError",
    "TelegramNotifier",
    "TelegramCommandHandler",
]
