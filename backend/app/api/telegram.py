"""Telegram relay, verification, log and webhook routes."""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import (
    TelegramClientFactory,
    get_command_handler,
    get_log_store,
    get_monitor,
    get_notifier,
    get_telegram_client_factory,
)
from app.clients import TelegramAPIError
from app.services import TelegramCommandHandler, TelegramConnectionMonitor, TelegramNotifier
from app.services.webhook import command_of
from app.storage import TelegramLogStore
from core.models.base import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()

ChatId = Union[int, str]

PROCESSING_ERROR_REPLY = (
    "❌ Sorry, an error occurred while processing your request. "
    "The system administrator has been notified."
)


class SendMessageRequest(CamelModel):
    message: Optional[str] = None
    chat_id: Optional[ChatId] = None
    bot_token: Optional[str] = None


class VerifyRequest(CamelModel):
    bot_token: Optional[str] = None
    chat_id: Optional[ChatId] = None


class WebhookChat(CamelModel):
    id: ChatId


class WebhookMessage(CamelModel):
    chat: Optional[WebhookChat] = None
    text: Optional[str] = None


class WebhookUpdate(CamelModel):
    update_id: Optional[int] = None
    message: Optional[WebhookMessage] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/telegram")
async def send_telegram_message(
    request: SendMessageRequest,
    client_factory: TelegramClientFactory = Depends(get_telegram_client_factory),
    log_store: TelegramLogStore = Depends(get_log_store),
):
    """Send a message with a caller-supplied bot token."""
    if not request.message:
        raise HTTPException(status_code=400, detail="Message is required")
    if not request.chat_id:
        raise HTTPException(status_code=400, detail="Chat ID is required")
    if not request.bot_token:
        raise HTTPException(status_code=400, detail="Bot token is required")

    try:
        async with client_factory(request.bot_token) as client:
            result = await client.send_message(request.chat_id, request.message)
    except TelegramAPIError as e:
        log_store.log(
            "error", request.chat_id, f"Telegram error: {e.description}",
            metadata={"errorCode": e.error_code},
        )
        raise HTTPException(status_code=400, detail=f"Telegram error: {e.description}")
    except httpx.HTTPError as e:
        logger.error(f"Error sending Telegram message: {e}")
        log_store.log("error", request.chat_id, f"Failed to send Telegram message: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to send Telegram message. Please check your internet connection.",
        )

    message_id = (result or {}).get("message_id")
    log_store.log(
        "info", request.chat_id, "Message sent",
        response=request.message[:200],
        metadata={"messageId": message_id, "length": len(request.message)},
    )
    return {
        "success": True,
        "timestamp": _timestamp(),
        "message": "Message sent successfully",
        "details": {
            "chatId": request.chat_id,
            "messageLength": len(request.message),
            "messageId": message_id,
        },
    }


@router.post("/telegram/verify")
async def verify_bot_token(
    request: VerifyRequest,
    client_factory: TelegramClientFactory = Depends(get_telegram_client_factory),
):
    """Check a bot token with getMe."""
    if not request.bot_token:
        raise HTTPException(status_code=400, detail="Bot token is required")
    if not request.chat_id:
        raise HTTPException(status_code=400, detail="Chat ID is required")

    try:
        async with client_factory(request.bot_token) as client:
            bot = await client.get_me()
    except TelegramAPIError:
        raise HTTPException(
            status_code=400, detail="Invalid bot token. Please check your credentials."
        )
    except httpx.HTTPError as e:
        logger.error(f"Error verifying bot token: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to verify bot token. Please check your internet connection.",
        )

    return {"success": True, "botInfo": bot.model_dump(by_alias=True)}


@router.get("/telegram/status")
async def telegram_status(
    monitor: Optional[TelegramConnectionMonitor] = Depends(get_monitor),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Connection monitor snapshot."""
    if monitor is None:
        return {
            "success": True,
            "status": {
                "running": False,
                "configured": notifier.configured,
                "consecutiveFailures": 0,
                "lastCheck": None,
                "lastSuccess": None,
                "lastError": None,
            },
        }
    return {"success": True, "status": monitor.status().model_dump(mode="json", by_alias=True)}


@router.get("/telegram/logs")
async def telegram_logs(
    limit: int = Query(100, ge=1, le=1000, description="Maximum entries to return"),
    chat_id: Optional[str] = Query(None, alias="chatId", description="Filter by chat"),
    log_store: TelegramLogStore = Depends(get_log_store),
):
    """Recent bot interactions, oldest first."""
    entries = log_store.for_chat(chat_id, limit) if chat_id else log_store.recent(limit)
    return {
        "success": True,
        "count": len(entries),
        "logs": [e.model_dump(mode="json", by_alias=True) for e in entries],
    }


@router.delete("/telegram/logs")
async def clear_telegram_logs(log_store: TelegramLogStore = Depends(get_log_store)):
    cleared = len(log_store)
    log_store.clear()
    return {"success": True, "cleared": cleared}


@router.post("/signals/telegram-webhook")
async def telegram_webhook(
    update: WebhookUpdate,
    handler: TelegramCommandHandler = Depends(get_command_handler),
    notifier: TelegramNotifier = Depends(get_notifier),
    log_store: TelegramLogStore = Depends(get_log_store),
):
    """Answer a bot command received through the Telegram webhook."""
    message = update.message
    if message is None:
        raise HTTPException(status_code=400, detail="No message found")
    if message.chat is None or not message.text:
        raise HTTPException(status_code=400, detail="Invalid message format")

    chat_id = message.chat.id
    text = message.text
    command = command_of(text)
    log_store.log("info", chat_id, f"Received message: {text}", command=command)

    try:
        reply = await handler.process(text, str(chat_id))
    except Exception as e:
        logger.exception(f"Error processing Telegram command {text!r}: {e}")
        log_store.log("error", chat_id, f"Error processing command: {e}", command=command)
        await notifier.send_error_report(e, {"chatId": chat_id, "command": text})
        await notifier.send(PROCESSING_ERROR_REPLY, chat_id=str(chat_id))
        raise HTTPException(status_code=500, detail="Failed to process command")

    log_store.log("info", chat_id, "Sending response", command=command, response=reply[:200])
    await notifier.send(reply, chat_id=str(chat_id))
    return {"success": True}
