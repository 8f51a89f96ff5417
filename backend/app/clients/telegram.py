"""Telegram Bot API client for outbound messages."""

import logging
from typing import Any

import httpx

from app.models import BotInfo

logger = logging.getLogger(__name__)


class TelegramAPIError(Exception):
    """The Bot API answered with ``ok: false``."""

    def __init__(self, description: str, error_code: int | None = None):
        super().__init__(description)
        self.description = description
        self.error_code = error_code


class TelegramClient:
    """Minimal async Bot API client (getMe, sendMessage)."""

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not bot_token:
            raise ValueError("bot_token is required")
        self.bot_token = bot_token
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TelegramClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/bot{self.bot_token}",
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, payload: dict[str, Any] | None = None
    ) -> Any:
        """
        Call a Bot API method and return its ``result``.

        Raises:
            TelegramAPIError: reply is not JSON or carries ``ok: false``
            httpx.HTTPError: transport failure
        """
        client = await self._get_client()
        response = await client.request(method, endpoint, json=payload)

        try:
            data = response.json()
        except ValueError:
            raise TelegramAPIError(
                f"Unexpected response (HTTP {response.status_code})",
                response.status_code,
            )

        if not data.get("ok"):
            raise TelegramAPIError(
                data.get("description", "Unknown error"),
                data.get("error_code", response.status_code),
            )
        return data.get("result")

    async def get_me(self) -> BotInfo:
        """Verify the token and return the bot's identity."""
        result = await self._request("GET", "/getMe")
        return BotInfo.from_api(result)

    async def send_message(
        self,
        chat_id: str | int,
        text: str,
        parse_mode: str | None = "Markdown",
    ) -> dict[str, Any]:
        """
        Send a text message.

        Returns:
            The Bot API ``Message`` object (contains ``message_id``)
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._request("POST", "/sendMessage", payload)
