"""OTC auto-signal service.

Generates signals for every configured OTC pair at a fixed second of each
minute, keeps the newest signal per pair, and evaluates each one a few
minutes after its entry time.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

import numpy as np

from app.services.schedule import seconds_until
from app.services.telegram_notifier import TelegramNotifier
from core.market_data import OTCFeed
from core.models.config import OTCConfig
from core.models.kline import Candle
from core.models.otc import OTCSignal, OTCTradeResult
from core.otc import build_otc_signal, evaluate_trade

logger = logging.getLogger(__name__)

SignalCallback = Callable[[OTCSignal], Awaitable[None]]
ResultCallback = Callable[[OTCTradeResult], Awaitable[None]]
CandleSource = Callable[[str, int, datetime], list[Candle]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OTCSignalService:
    """Generate, hold and evaluate OTC signals."""

    def __init__(
        self,
        config: OTCConfig | None = None,
        notifier: TelegramNotifier | None = None,
        rng: np.random.Generator | None = None,
        candle_source: CandleSource | None = None,
        clock: Clock = _utcnow,
    ):
        self.config = config or OTCConfig()
        self.notifier = notifier
        self._rng = rng or np.random.default_rng()
        self._candle_source = candle_source or OTCFeed(self._rng)
        self._clock = clock

        # Newest signal per pair
        self._active: dict[str, OTCSignal] = {}
        # Pending evaluation per pair
        self._evaluations: dict[str, asyncio.Task] = {}
        self._results: deque[OTCTradeResult] = deque(maxlen=self.config.max_results)

        self._signal_callbacks: list[SignalCallback] = []
        self._result_callbacks: list[ResultCallback] = []
        self._scheduler_task: asyncio.Task | None = None

    # ── Callbacks ──

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for new signals. Duplicates are ignored."""
        if callback not in self._signal_callbacks:
            self._signal_callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        if callback in self._signal_callbacks:
            self._signal_callbacks.remove(callback)

    def on_result(self, callback: ResultCallback) -> None:
        """Register callback for evaluated trade results. Duplicates are ignored."""
        if callback not in self._result_callbacks:
            self._result_callbacks.append(callback)

    def off_result(self, callback: ResultCallback) -> None:
        if callback in self._result_callbacks:
            self._result_callbacks.remove(callback)

    # ── Queries ──

    def active_signals(self) -> list[OTCSignal]:
        return list(self._active.values())

    def active_signal_for(self, pair: str) -> OTCSignal | None:
        return self._active.get(pair)

    def results(self) -> list[OTCTradeResult]:
        return list(self._results)

    def pending_evaluations(self) -> list[str]:
        return [pair for pair, task in self._evaluations.items() if not task.done()]

    # ── Generation ──

    async def generate_for_pair(
        self, pair: str, send_to_telegram: bool = False
    ) -> OTCSignal | None:
        """
        Analyse fresh candles for ``pair``.

        A produced signal replaces the pair's active signal and its pending
        evaluation. Returns None when the strength is below the minimum.
        """
        now = self._clock()
        candles = self._candle_source(pair, self.config.candle_count, now)
        signal = build_otc_signal(pair, candles, now=now, config=self.config)
        if signal is None:
            return None

        self._active[pair] = signal
        self._schedule_evaluation(signal)
        logger.info(
            "OTC signal %s %s (strength %.0f, entry %s)",
            pair, signal.direction, signal.strength, signal.entry_time.strftime("%H:%M:%S"),
        )

        await self._dispatch(self._signal_callbacks, signal, "Signal")
        if send_to_telegram and self.notifier is not None:
            await self.notifier.send(signal.message)
        return signal

    async def generate_all(self, send_to_telegram: bool = False) -> list[OTCSignal]:
        """Run every configured pair concurrently; per-pair failures are logged."""
        logger.info("Starting signal generation for all %d OTC pairs", len(self.config.pairs))
        outcomes = await asyncio.gather(
            *(self.generate_for_pair(p, send_to_telegram) for p in self.config.pairs),
            return_exceptions=True,
        )

        signals = []
        for pair, outcome in zip(self.config.pairs, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Error generating signal for %s: %s", pair, outcome)
            elif outcome is not None:
                signals.append(outcome)

        logger.info("Generated %d valid OTC signals", len(signals))
        return signals

    # ── Evaluation ──

    def _schedule_evaluation(self, signal: OTCSignal) -> None:
        existing = self._evaluations.pop(signal.pair, None)
        if existing is not None and not existing.done():
            existing.cancel()

        due = signal.entry_time + timedelta(seconds=self.config.timing.evaluation_delay_seconds)
        delay = max(0.0, (due - self._clock()).total_seconds())
        task = asyncio.create_task(self._evaluate_later(signal, delay))
        task.add_done_callback(lambda t, pair=signal.pair: self._forget_evaluation(pair, t))
        self._evaluations[signal.pair] = task
        logger.debug("Scheduled trade evaluation for %s in %.0fs", signal.pair, delay)

    def _forget_evaluation(self, pair: str, task: asyncio.Task) -> None:
        if self._evaluations.get(pair) is task:
            del self._evaluations[pair]

    async def _evaluate_later(self, signal: OTCSignal, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
            await self.evaluate(signal)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Error evaluating trade result for {signal.pair}: {e}")

    async def evaluate(self, signal: OTCSignal) -> OTCTradeResult | None:
        """Score ``signal`` against fresh candles and retire it from the active map."""
        now = self._clock()
        candles = self._candle_source(signal.pair, self.config.candle_count, now)
        result = evaluate_trade(signal, candles, now=now, config=self.config)
        if result is None:
            return None

        self._results.append(result)
        if self._active.get(signal.pair) is signal:
            del self._active[signal.pair]

        logger.info(
            "Trade result for %s: %s, PnL: %.2f%%",
            signal.pair, result.result, result.pnl_percentage,
        )
        await self._dispatch(self._result_callbacks, result, "Result")
        if self.notifier is not None:
            await self.notifier.send(result.message)
        return result

    async def _dispatch(self, callbacks: list, payload, kind: str) -> None:
        for callback in callbacks:
            try:
                await callback(payload)
            except Exception as e:
                logger.error(f"{kind} callback error: {e}")

    # ── Scheduler ──

    @property
    def running(self) -> bool:
        return self._scheduler_task is not None and not self._scheduler_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._scheduler_task = asyncio.create_task(self._scheduler_loop())
        logger.info(
            "OTC scheduler started (fires at second %d)", self.config.timing.send_at_second
        )

    async def stop(self) -> None:
        tasks = [self._scheduler_task, *self._evaluations.values()]
        for task in tasks:
            if task is not None and not task.done():
                task.cancel()
        for task in tasks:
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._scheduler_task = None
        self._evaluations.clear()

    async def _scheduler_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(
                    seconds_until(self._clock(), self.config.timing.send_at_second)
                )
                await self.generate_all(send_to_telegram=True)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"OTC scheduler error: {e}")
