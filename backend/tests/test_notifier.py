"""Tests for TelegramNotifier."""

import json

import httpx
import pytest

from app.clients import TelegramAPIError, TelegramClient
from app.services import TelegramNotConfiguredError, TelegramNotifier
from app.storage import TelegramLogStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def client_with(handler) -> TelegramClient:
    return TelegramClient("123:abc", transport=httpx.MockTransport(handler))


def accept(sent: list):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        sent.append(body)
        if request.url.path.endswith("/getMe"):
            return httpx.Response(200, json={"ok": True, "result": {"id": 1, "username": "bot"}})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": len(sent)}})
    return handler


def reject(request: httpx.Request) -> httpx.Response:
    return httpx.Response(403, json={"ok": False, "error_code": 403, "description": "Forbidden: bot was blocked"})


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------

class TestTelegramNotifier:
    """Best-effort delivery to the configured chat."""

    def test_unconfigured(self):
        notifier = TelegramNotifier()

        assert notifier.configured is False
        assert notifier.has_token is False

    def test_token_without_chat(self):
        notifier = TelegramNotifier(bot_token="123:abc")

        assert notifier.has_token is True
        assert notifier.configured is False

    def test_admin_chat_defaults_to_chat(self):
        assert TelegramNotifier(chat_id="100").admin_chat_id == "100"
        assert TelegramNotifier(chat_id="100", admin_chat_id="200").admin_chat_id == "200"

    async def test_send_without_client_is_dropped(self):
        assert await TelegramNotifier(chat_id="100").send("hi") is False

    async def test_send_to_default_chat(self):
        sent = []
        store = TelegramLogStore()
        notifier = TelegramNotifier(chat_id="100", log_store=store, client=client_with(accept(sent)))

        assert await notifier.send("Signal text") is True
        assert sent == [{"chat_id": "100", "text": "Signal text", "parse_mode": "Markdown"}]

        entry = store.recent()[-1]
        assert entry.level == "info"
        assert entry.message == "Message sent"
        assert entry.metadata == {"messageId": 1, "length": 11}

    async def test_send_to_explicit_chat_without_markdown(self):
        sent = []
        notifier = TelegramNotifier(chat_id="100", client=client_with(accept(sent)))

        await notifier.send("x", chat_id="999", parse_mode=None)

        assert sent == [{"chat_id": "999", "text": "x"}]

    async def test_api_error_is_logged_not_raised(self):
        store = TelegramLogStore()
        notifier = TelegramNotifier(chat_id="100", log_store=store, client=client_with(reject))

        assert await notifier.send("x") is False

        entry = store.recent()[-1]
        assert entry.level == "error"
        assert entry.message == "Telegram error: Forbidden: bot was blocked"
        assert entry.metadata == {"errorCode": 403}

    async def test_transport_error_is_logged_not_raised(self):
        def fail(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        store = TelegramLogStore()
        notifier = TelegramNotifier(chat_id="100", log_store=store, client=client_with(fail))

        assert await notifier.send("x") is False
        assert store.recent()[-1].message.startswith("Failed to send Telegram message:")

    async def test_verify(self):
        notifier = TelegramNotifier(chat_id="100", client=client_with(accept([])))

        bot = await notifier.verify()
        assert bot.username == "bot"

    async def test_verify_without_token(self):
        with pytest.raises(TelegramNotConfiguredError):
            await TelegramNotifier().verify()

    async def test_verify_rejected_token(self):
        notifier = TelegramNotifier(chat_id="100", client=client_with(reject))

        with pytest.raises(TelegramAPIError):
            await notifier.verify()

    async def test_error_report_goes_to_admin_chat(self):
        sent = []
        notifier = TelegramNotifier(chat_id="100", admin_chat_id="200", client=client_with(accept(sent)))

        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            delivered = await notifier.send_error_report(e, {"command": "/otc"})

        assert delivered is True
        report = sent[0]
        assert report["chat_id"] == "200"
        text = report["text"]
        assert text.startswith("🚨 *ERROR REPORT* 🚨")
        assert "*Error:* boom" in text
        assert '"command": "/otc"' in text
        assert "*Timestamp:*" in text

    async def test_error_report_stack_is_truncated(self):
        sent = []
        notifier = TelegramNotifier(chat_id="100", client=client_with(accept(sent)))

        try:
            raise ValueError("x" * 2000)
        except ValueError as e:
            await notifier.send_error_report(e)

        text = sent[0]["text"]
        stack = text.split("*Stack:* ", 1)[1].split("\n\n*Timestamp:*")[0]
        assert stack.startswith("Traceback")
        assert len(stack) == 500
        assert "*Context:*" not in text

    async def test_close(self):
        notifier = TelegramNotifier(chat_id="100", client=client_with(accept([])))
        await notifier.verify()
        await notifier.close()
        await TelegramNotifier().close()
