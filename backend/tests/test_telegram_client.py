"""Tests for the Telegram Bot API client."""

import json

import httpx
import pytest

from app.clients import TelegramAPIError, TelegramClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def transport_for(handler):
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    transport = httpx.MockTransport(record)
    transport.requests = requests
    return transport


def ok(result) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": result})


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class TestTelegramClient:
    """getMe and sendMessage over a mock transport."""

    def test_token_required(self):
        with pytest.raises(ValueError):
            TelegramClient("")

    async def test_get_me(self):
        transport = transport_for(lambda r: ok({"id": 42, "username": "signal_bot", "first_name": "Signals"}))

        async with TelegramClient("123:abc", transport=transport) as client:
            bot = await client.get_me()

        assert bot.id == 42
        assert bot.username == "signal_bot"
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/bot123:abc/getMe"

    async def test_send_message_payload(self):
        transport = transport_for(lambda r: ok({"message_id": 7}))

        async with TelegramClient("123:abc", transport=transport) as client:
            message = await client.send_message(555, "hello")

        assert message == {"message_id": 7}
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/bot123:abc/sendMessage"
        assert json.loads(request.content) == {
            "chat_id": 555,
            "text": "hello",
            "parse_mode": "Markdown",
        }

    async def test_send_plain_text(self):
        transport = transport_for(lambda r: ok({"message_id": 1}))

        async with TelegramClient("t", transport=transport) as client:
            await client.send_message("@channel", "plain", parse_mode=None)

        assert "parse_mode" not in json.loads(transport.requests[0].content)

    async def test_custom_base_url(self):
        transport = transport_for(lambda r: ok({"id": 1}))

        async with TelegramClient("t", base_url="http://proxy.local/", transport=transport) as client:
            await client.get_me()

        assert str(transport.requests[0].url) == "http://proxy.local/bott/getMe"

    async def test_api_error(self):
        transport = transport_for(
            lambda r: httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"})
        )

        async with TelegramClient("t", transport=transport) as client:
            with pytest.raises(TelegramAPIError) as exc_info:
                await client.send_message(1, "x")

        assert exc_info.value.description == "Bad Request: chat not found"
        assert exc_info.value.error_code == 400

    async def test_non_json_reply(self):
        transport = transport_for(lambda r: httpx.Response(502, text="Bad Gateway"))

        async with TelegramClient("t", transport=transport) as client:
            with pytest.raises(TelegramAPIError) as exc_info:
                await client.get_me()

        assert exc_info.value.error_code == 502
        assert "HTTP 502" in exc_info.value.description

    async def test_transport_failure_propagates(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with TelegramClient("t", transport=transport_for(fail)) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get_me()

    async def test_close_is_idempotent(self):
        client = TelegramClient("t", transport=transport_for(lambda r: ok({"id": 1})))
        await client.get_me()

        await client.close()
        await client.close()
        assert client._client is None
