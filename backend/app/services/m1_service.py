"""M1 OTC scanner service.

Scans every pair at second 30, relays qualifying signals, and settles
signals whose entry minute has passed at second 5.
"""

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

import numpy as np

from app.services.schedule import seconds_until
from app.services.telegram_notifier import TelegramNotifier
from core.m1 import (
    build_m1_signal,
    evaluate_m1_trade,
    format_m1_signal_message,
    format_m1_trade_result,
)
from core.market_data import OTCFeed
from core.models.config import M1Config
from core.models.kline import Candle
from core.models.otc import M1Signal, M1TradeResult

logger = logging.getLogger(__name__)

SignalCallback = Callable[[M1Signal], Awaitable[None]]
TradeCallback = Callable[[M1TradeResult], Awaitable[None]]
CandleSource = Callable[[str, int, datetime], list[Candle]]
Clock = Callable[[], datetime]

SETTLE_AFTER = timedelta(minutes=1)
RESULT_CANDLES = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class M1SignalService:
    """Hold active M1 signals (one per symbol) and completed trades."""

    def __init__(
        self,
        config: M1Config | None = None,
        notifier: TelegramNotifier | None = None,
        rng: np.random.Generator | None = None,
        candle_source: CandleSource | None = None,
        clock: Clock = _utcnow,
    ):
        self.config = config or M1Config()
        self.notifier = notifier
        self._rng = rng or np.random.default_rng()
        self._candle_source = candle_source or OTCFeed(self._rng)
        self._clock = clock

        self._active: dict[str, M1Signal] = {}
        self._completed: deque[M1TradeResult] = deque(maxlen=self.config.max_completed)
        self._signal_callbacks: list[SignalCallback] = []
        self._trade_callbacks: list[TradeCallback] = []
        self._tasks: list[asyncio.Task] = []

    def on_signal(self, callback: SignalCallback) -> None:
        if callback not in self._signal_callbacks:
            self._signal_callbacks.append(callback)

    def on_trade(self, callback: TradeCallback) -> None:
        if callback not in self._trade_callbacks:
            self._trade_callbacks.append(callback)

    def active_signals(self) -> list[M1Signal]:
        return list(self._active.values())

    def completed_trades(self) -> list[M1TradeResult]:
        return list(self._completed)

    async def scan_pair(self, symbol: str) -> M1Signal | None:
        now = self._clock()
        candles = self._candle_source(symbol, self.config.candle_count, now)
        return build_m1_signal(symbol, candles, now=now, config=self.config)

    async def scan_all_markets(self) -> list[M1Signal]:
        """Scan all pairs concurrently, store and relay the valid signals."""
        started = time.perf_counter()
        symbols = [p.symbol for p in self.config.pairs]
        logger.info("Starting market scan for %d currency pairs", len(symbols))

        outcomes = await asyncio.gather(
            *(self.scan_pair(s) for s in symbols), return_exceptions=True
        )
        signals = []
        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Error generating signal for %s: %s", symbol, outcome)
            elif outcome is not None:
                signals.append(outcome)

        logger.info(
            "Market scan completed in %.0fms. Found %d valid signals.",
            (time.perf_counter() - started) * 1000, len(signals),
        )

        for signal in signals:
            self._active[signal.symbol] = signal
            await self._notify(format_m1_signal_message(signal))
            logger.info("Signal sent for %s: %s", signal.symbol, signal.direction)
            for callback in self._signal_callbacks:
                try:
                    await callback(signal)
                except Exception as e:
                    logger.error(f"Signal callback error: {e}")
        return signals

    async def check_trade_results(self) -> list[M1TradeResult]:
        """Settle active signals whose entry is at least a minute old."""
        if not self._active:
            return []

        now = self._clock()
        logger.info("Checking trade results for %d active signals", len(self._active))
        settled = []

        for symbol, signal in list(self._active.items()):
            if now - signal.entry_time < SETTLE_AFTER:
                continue
            try:
                candles = self._candle_source(symbol, RESULT_CANDLES, now)
                result = evaluate_m1_trade(signal, candles)
            except Exception as e:
                logger.error(f"Error checking trade result for {symbol}: {e}")
                continue
            if result is None:
                continue

            self._completed.append(result)
            del self._active[symbol]
            settled.append(result)

            await self._notify(format_m1_trade_result(result))
            logger.info("Trade result sent for %s: %s", symbol, result.result)
            for callback in self._trade_callbacks:
                try:
                    await callback(result)
                except Exception as e:
                    logger.error(f"Trade callback error: {e}")

        return settled

    async def _notify(self, text: str) -> None:
        if self.notifier is not None:
            await self.notifier.send(text)

    # ── Scheduler ──

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._every_minute(self.config.scan_at_second, self.scan_all_markets)),
            asyncio.create_task(self._every_minute(self.config.check_at_second, self.check_trade_results)),
        ]
        logger.info("M1 OTC Signal Generator initialized")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

    async def _every_minute(self, second: int, job: Callable[[], Awaitable]) -> None:
        while True:
            try:
                await asyncio.sleep(seconds_until(self._clock(), second))
                await job()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"M1 scheduler error: {e}")
