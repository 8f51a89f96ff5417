"""Telegram connection health monitor.

Polls getMe on a fixed interval and notifies the chat when the connection
comes back after failures.
"""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from app.clients import TelegramAPIError
from app.models import MonitorStatus
from app.services.telegram_notifier import TelegramNotConfiguredError, TelegramNotifier

logger = logging.getLogger(__name__)

INIT_MESSAGE = (
    "🔄 *Telegram Connection Manager Initialized*\n\n"
    "Your trading system will maintain a continuous connection to Telegram.\n"
    "Connection status will be monitored automatically."
)
RESTORED_MESSAGE = (
    "✅ *Telegram Connection Restored*\n\n"
    "The connection to Telegram has been restored."
)


class TelegramConnectionMonitor:
    """
    Periodic getMe check owned by the application lifespan.

    After the first failure a single extra check runs ``retry_delay``
    seconds later; an alert is logged when consecutive failures reach
    ``max_failures``.
    """

    def __init__(
        self,
        notifier: TelegramNotifier,
        interval: float = 60.0,
        retry_delay: float = 5.0,
        max_failures: int = 5,
    ):
        self.notifier = notifier
        self.interval = interval
        self.retry_delay = retry_delay
        self.max_failures = max_failures

        self._consecutive_failures = 0
        self._last_check: datetime | None = None
        self._last_success: datetime | None = None
        self._last_error: str | None = None
        self._task: asyncio.Task | None = None
        self._retry_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def start(self) -> None:
        """Start polling. Calling it while running does nothing."""
        if self.running:
            return

        self._task = asyncio.create_task(self._run())
        await self.notifier.send(INIT_MESSAGE)
        logger.info("Telegram connection monitor started (interval=%.0fs)", self.interval)

    async def stop(self) -> None:
        for task in (self._task, self._retry_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._retry_task = None
        logger.info("Telegram connection monitor stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.check()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Connection monitor error: {e}")
                await asyncio.sleep(self.interval)

    async def _retry_later(self) -> None:
        try:
            await asyncio.sleep(self.retry_delay)
            await self.check()
        except asyncio.CancelledError:
            pass

    async def check(self) -> bool:
        """Verify the connection once. Returns True when getMe succeeded."""
        self._last_check = datetime.now(timezone.utc)
        try:
            await self.notifier.verify()
        except TelegramAPIError as e:
            self._handle_failure(f"Verification failed: {e.description}")
            return False
        except (httpx.HTTPError, TelegramNotConfiguredError) as e:
            self._handle_failure(f"Connection error: {e}")
            return False
        except Exception as e:
            logger.exception("Unexpected error while verifying Telegram connection")
            self._handle_failure(f"Unexpected error: {e}")
            return False

        if self._consecutive_failures > 0:
            logger.info("Telegram connection restored after %d failures", self._consecutive_failures)
            self._consecutive_failures = 0
            await self.notifier.send(RESTORED_MESSAGE)

        self._last_success = self._last_check
        self._last_error = None
        return True

    def _handle_failure(self, error: str) -> None:
        self._consecutive_failures += 1
        self._last_error = error
        logger.error("Telegram connection failure (%d): %s", self._consecutive_failures, error)

        if self._consecutive_failures == self.max_failures:
            logger.error("Multiple Telegram connection failures detected")

        if self._consecutive_failures == 1:
            self._retry_task = asyncio.create_task(self._retry_later())

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            running=self.running,
            configured=self.notifier.configured,
            consecutive_failures=self._consecutive_failures,
            last_check=self._last_check,
            last_success=self._last_success,
            last_error=self._last_error,
        )
