"""Tests for TelegramConnectionMonitor."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.clients import TelegramAPIError
from app.models import BotInfo
from app.services.connection_monitor import (
    INIT_MESSAGE,
    RESTORED_MESSAGE,
    TelegramConnectionMonitor,
)


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.configured = True
    mock.verify = AsyncMock(return_value=BotInfo(id=1, username="bot"))
    mock.send = AsyncMock(return_value=True)
    return mock


class TestCheck:
    """Single verification pass."""

    async def test_success(self, notifier):
        monitor = TelegramConnectionMonitor(notifier)

        assert await monitor.check() is True

        status = monitor.status()
        assert status.consecutive_failures == 0
        assert status.last_success == status.last_check
        assert status.last_error is None
        notifier.send.assert_not_awaited()

    async def test_api_failure_counts(self, notifier):
        notifier.verify.side_effect = TelegramAPIError("Unauthorized", 401)
        monitor = TelegramConnectionMonitor(notifier, retry_delay=3600)

        assert await monitor.check() is False
        assert monitor.consecutive_failures == 1
        assert monitor.status().last_error == "Verification failed: Unauthorized"

        await monitor.stop()

    async def test_transport_failure_counts(self, notifier):
        notifier.verify.side_effect = httpx.ConnectError("refused")
        monitor = TelegramConnectionMonitor(notifier, retry_delay=3600)

        await monitor.check()
        await monitor.check()

        assert monitor.consecutive_failures == 2
        assert monitor.status().last_error == "Connection error: refused"
        await monitor.stop()

    async def test_unexpected_error_counts(self, notifier):
        notifier.verify.side_effect = ValueError("malformed getMe result")
        monitor = TelegramConnectionMonitor(notifier, retry_delay=3600)

        assert await monitor.check() is False

        assert monitor.consecutive_failures == 1
        assert monitor.status().last_error == "Unexpected error: malformed getMe result"
        assert monitor._retry_task is not None
        await monitor.stop()

    async def test_restored_notifies(self, notifier):
        notifier.verify.side_effect = [TelegramAPIError("Bad Gateway", 502), BotInfo(id=1)]
        monitor = TelegramConnectionMonitor(notifier, retry_delay=3600)

        await monitor.check()
        assert await monitor.check() is True

        assert monitor.consecutive_failures == 0
        notifier.send.assert_awaited_once_with(RESTORED_MESSAGE)
        await monitor.stop()

    async def test_first_failure_schedules_one_retry(self, notifier):
        notifier.verify.side_effect = [httpx.ConnectError("down"), BotInfo(id=1)]
        monitor = TelegramConnectionMonitor(notifier, retry_delay=0.01)

        await monitor.check()
        await asyncio.sleep(0.1)

        assert notifier.verify.await_count == 2
        assert monitor.consecutive_failures == 0
        notifier.send.assert_awaited_once_with(RESTORED_MESSAGE)

    async def test_alert_logged_at_max_failures(self, notifier, caplog):
        notifier.verify.side_effect = httpx.ConnectError("down")
        monitor = TelegramConnectionMonitor(notifier, retry_delay=3600, max_failures=2)

        await monitor.check()
        await monitor.check()

        assert "Multiple Telegram connection failures detected" in caplog.text
        await monitor.stop()


class TestLifecycle:
    """start/stop and status snapshot."""

    async def test_start_sends_init_message_and_polls(self, notifier):
        monitor = TelegramConnectionMonitor(notifier, interval=3600)

        await monitor.start()
        await asyncio.sleep(0)
        assert monitor.running is True
        notifier.send.assert_awaited_once_with(INIT_MESSAGE)

        await asyncio.sleep(0.01)
        notifier.verify.assert_awaited()

        await monitor.stop()
        assert monitor.running is False

    async def test_start_twice_is_noop(self, notifier):
        monitor = TelegramConnectionMonitor(notifier, interval=3600)

        await monitor.start()
        await monitor.start()

        assert notifier.send.await_count == 1
        await monitor.stop()

    async def test_stop_when_not_started(self, notifier):
        monitor = TelegramConnectionMonitor(notifier)
        await monitor.stop()
        assert monitor.running is False

    def test_status_wire_format(self, notifier):
        data = TelegramConnectionMonitor(notifier).status().model_dump(by_alias=True, mode="json")

        assert data == {
            "running": False,
            "configured": True,
            "consecutiveFailures": 0,
            "lastCheck": None,
            "lastSuccess": None,
            "lastError": None,
        }
