"""API endpoints."""

from app.api.errors import register_error_handlers
from app.api.routes import router
from app.api.telegram import router as telegram_router
from app.api.websocket import manager, websocket_endpoint, ConnectionManager

__all__ = [
    "register_error_handlers",
    "router",
    "telegram_router",
    "manager",
    "websocket_endpoint",
    "ConnectionManager",
]
