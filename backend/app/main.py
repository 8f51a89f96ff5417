"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

import numpy as np
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.api import manager, register_error_handlers, router, telegram_router, websocket_endpoint
from app.config import get_settings
from app.services import (
    M1SignalService,
    OTCSignalService,
    TelegramCommandHandler,
    TelegramConnectionMonitor,
    TelegramNotifier,
)
from app.services.webhook import VERSION
from app.signal_config import load_signal_config
from app.storage import TelegramLogStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Builds the services, exposes them to routes via ``app.state``, and
    starts the background tasks enabled in settings.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Starting signal service...")

    signal_config = load_signal_config()
    rng = np.random.default_rng()

    log_store = TelegramLogStore(settings.telegram_log_capacity)
    notifier = TelegramNotifier(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        admin_chat_id=settings.admin_chat_id,
        log_store=log_store,
        base_url=settings.telegram_api_url,
        timeout=settings.telegram_timeout,
    )
    if not notifier.configured:
        logger.warning("Telegram bot token or chat id not set - relay disabled")

    monitor = TelegramConnectionMonitor(
        notifier,
        interval=settings.monitor_interval,
        retry_delay=settings.monitor_retry_delay,
        max_failures=settings.monitor_max_failures,
    )
    otc_service = OTCSignalService(signal_config.otc, notifier=notifier, rng=rng)
    m1_service = M1SignalService(signal_config.m1, notifier=notifier, rng=rng)

    # Push signals and results to dashboard clients
    otc_service.on_signal(manager.send_otc_signal)
    otc_service.on_result(manager.send_otc_result)
    m1_service.on_signal(manager.send_m1_signal)
    m1_service.on_trade(manager.send_m1_trade)

    app.state.rng = rng
    app.state.log_store = log_store
    app.state.notifier = notifier
    app.state.monitor = monitor
    app.state.otc_service = otc_service
    app.state.m1_service = m1_service
    app.state.command_handler = TelegramCommandHandler(
        rng=rng, account_balance=settings.account_balance
    )

    try:
        if settings.monitor_enabled and notifier.configured:
            await monitor.start()
        if settings.otc_scheduler_enabled:
            otc_service.start()
        if settings.m1_scheduler_enabled:
            m1_service.start()
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await monitor.stop()
        await otc_service.stop()
        await m1_service.stop()
        await notifier.close()
        raise

    yield

    # Shutdown
    logger.info("Shutting down...")

    if monitor.running:
        await monitor.stop()
    await otc_service.stop()
    await m1_service.stop()
    await notifier.close()

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Synthetic Signal Service",
    description="Synthetic trading signals with Telegram relay",
    version=VERSION,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include REST routes
app.include_router(router, prefix="/api")
app.include_router(telegram_router, prefix="/api")

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Synthetic Signal Service",
        "version": VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
