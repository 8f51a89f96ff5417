"""Request dependencies resolved from services owned by the app lifespan."""

from typing import Callable

import numpy as np
from fastapi import Request

from app.clients import TelegramClient
from app.config import get_settings
from app.services import (
    M1SignalService,
    OTCSignalService,
    TelegramCommandHandler,
    TelegramConnectionMonitor,
    TelegramNotifier,
)
from app.storage import TelegramLogStore

TelegramClientFactory = Callable[[str], TelegramClient]


def get_rng(request: Request) -> np.random.Generator:
    return request.app.state.rng


def get_notifier(request: Request) -> TelegramNotifier:
    return request.app.state.notifier


def get_monitor(request: Request) -> TelegramConnectionMonitor | None:
    return getattr(request.app.state, "monitor", None)


def get_log_store(request: Request) -> TelegramLogStore:
    return request.app.state.log_store


def get_otc_service(request: Request) -> OTCSignalService:
    return request.app.state.otc_service


def get_m1_service(request: Request) -> M1SignalService:
    return request.app.state.m1_service


def get_command_handler(request: Request) -> TelegramCommandHandler:
    return request.app.state.command_handler


def get_telegram_client_factory(request: Request) -> TelegramClientFactory:
    """Build clients for bot tokens supplied in a request body."""
    factory = getattr(request.app.state, "telegram_client_factory", None)
    if factory is not None:
        return factory

    settings = get_settings()
    return lambda token: TelegramClient(
        token, base_url=settings.telegram_api_url, timeout=settings.telegram_timeout
    )
