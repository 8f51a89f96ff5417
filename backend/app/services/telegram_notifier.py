"""Outbound Telegram notifications for the configured bot and chat."""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

import httpx

from app.clients import TelegramAPIError, TelegramClient
from app.models import BotInfo
from app.storage import TelegramLogStore

logger = logging.getLogger(__name__)

STACK_LIMIT = 500


class TelegramNotConfiguredError(RuntimeError):
    """No bot token or chat id is configured."""


class TelegramNotifier:
    """
    Send messages through one bot to a default chat.

    Delivery failures are logged and recorded in the interaction log
    instead of propagating, so callers can relay signals best-effort.
    """

    def __init__(
        self,
        bot_token: str = "",
        chat_id: str = "",
        admin_chat_id: str = "",
        log_store: TelegramLogStore | None = None,
        client: TelegramClient | None = None,
        base_url: str | None = None,
        timeout: float = 10.0,
    ):
        self.chat_id = chat_id
        self.admin_chat_id = admin_chat_id or chat_id
        self.log_store = log_store or TelegramLogStore()
        if client is None and bot_token:
            client = TelegramClient(bot_token, base_url=base_url, timeout=timeout)
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None and bool(self.chat_id)

    @property
    def has_token(self) -> bool:
        return self._client is not None

    def _require_client(self) -> TelegramClient:
        if self._client is None:
            raise TelegramNotConfiguredError("Telegram bot token not configured")
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def verify(self) -> BotInfo:
        """
        Call getMe with the configured token.

        Raises:
            TelegramNotConfiguredError: no bot token
            TelegramAPIError: token rejected
            httpx.HTTPError: Telegram unreachable
        """
        return await self._require_client().get_me()

    async def send(
        self,
        text: str,
        chat_id: str | None = None,
        parse_mode: str | None = "Markdown",
    ) -> bool:
        """Send ``text`` to ``chat_id`` (default chat when omitted). Returns delivery success."""
        target = chat_id or self.chat_id
        if self._client is None or not target:
            logger.warning("Telegram not configured, message dropped")
            return False

        try:
            result = await self._client.send_message(target, text, parse_mode=parse_mode)
        except TelegramAPIError as e:
            self.log_store.log(
                "error", target, f"Telegram error: {e.description}",
                metadata={"errorCode": e.error_code},
            )
            return False
        except httpx.HTTPError as e:
            self.log_store.log("error", target, f"Failed to send Telegram message: {e}")
            return False

        self.log_store.log(
            "info", target, "Message sent",
            response=text[:200],
            metadata={"messageId": (result or {}).get("message_id"), "length": len(text)},
        )
        return True

    async def send_error_report(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """Send a formatted error report to the admin chat."""
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )[:STACK_LIMIT] or "No stack trace"

        lines = [
            "🚨 *ERROR REPORT* 🚨",
            "",
            f"*Error:* {error}",
            f"*Stack:* {stack}",
        ]
        if context:
            lines.append(f"*Context:* {json.dumps(context, indent=2, default=str)}")
        lines += ["", f"*Timestamp:* {datetime.now(timezone.utc).isoformat()}"]

        return await self.send("\n".join(lines), chat_id=self.admin_chat_id)
