"""Tests for M1SignalService."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from app.services import M1SignalService
from core.m1 import evaluate_m1_trade
from core.market_data import OTC_MAX_MOVE
from core.models.config import CurrencyPair, M1Config
from core.models.kline import Candle

from tests.conftest import NOW, make_m1_signal

ENTRY = NOW.replace(second=0) + timedelta(minutes=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class Clock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def result_candles(symbol, count, now):
    """Entry candle opens at 1.0; the newest closes 5 pips higher."""
    return [
        Candle(timestamp=ENTRY + timedelta(minutes=1), open=1.0, high=1.001, low=0.999,
               close=1.0005, volume=1000),
        Candle(timestamp=ENTRY, open=1.0, high=1.001, low=0.999, close=1.0, volume=1000),
    ]


def stub_builder(signalled: set[str]):
    def build(symbol, candles, now=None, config=None, sentiment=0.0):
        if symbol == "BROKEN":
            raise RuntimeError("bad data")
        if symbol in signalled:
            return make_m1_signal(symbol=symbol, entry_time=ENTRY)
        return None
    return build


def make_service(symbols=("EURUSD", "GBPUSD", "USDJPY"), notifier=None, clock=None, **kwargs):
    config = M1Config(pairs=[CurrencyPair(symbol=s, name=s) for s in symbols], **kwargs)
    return M1SignalService(
        config=config,
        notifier=notifier,
        candle_source=result_candles,
        clock=clock or Clock(),
    )


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.send = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def signalled(monkeypatch):
    def use(*symbols):
        monkeypatch.setattr("app.services.m1_service.build_m1_signal", stub_builder(set(symbols)))
    return use


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------

class TestScan:
    """Market scans store and relay valid signals."""

    async def test_scan_pair_uses_candle_source(self):
        calls = []

        def source(symbol, count, now):
            calls.append((symbol, count, now))
            return []

        service = M1SignalService(candle_source=source, clock=Clock())

        assert await service.scan_pair("EURUSD") is None
        assert calls == [("EURUSD", 100, NOW)]

    async def test_scan_all_markets(self, signalled, notifier):
        signalled("EURUSD", "USDJPY")
        service = make_service(notifier=notifier)
        received = []

        async def on_signal(signal):
            received.append(signal.symbol)

        service.on_signal(on_signal)
        signals = await service.scan_all_markets()

        assert [s.symbol for s in signals] == ["EURUSD", "USDJPY"]
        assert {s.symbol for s in service.active_signals()} == {"EURUSD", "USDJPY"}
        assert received == ["EURUSD", "USDJPY"]
        assert notifier.send.await_count == 2
        assert notifier.send.await_args_list[0].args[0].startswith("EURUSD | 1 minutes | buy")

    async def test_failing_pair_is_skipped(self, signalled):
        signalled("EURUSD")
        service = make_service(symbols=("BROKEN", "EURUSD"))

        signals = await service.scan_all_markets()

        assert [s.symbol for s in signals] == ["EURUSD"]

    async def test_one_active_signal_per_symbol(self, signalled):
        signalled("EURUSD")
        service = make_service()

        await service.scan_all_markets()
        await service.scan_all_markets()

        assert len(service.active_signals()) == 1

    async def test_callback_error_is_contained(self, signalled):
        signalled("EURUSD")
        service = make_service()
        service.on_signal(AsyncMock(side_effect=RuntimeError("closed")))

        assert len(await service.scan_all_markets()) == 1


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

class TestCheckTradeResults:
    """Signals settle one minute after entry."""

    async def test_nothing_active(self):
        assert await make_service().check_trade_results() == []

    async def test_too_early(self, signalled):
        signalled("EURUSD")
        clock = Clock()
        service = make_service(clock=clock)
        await service.scan_all_markets()

        clock.now = ENTRY + timedelta(seconds=59)
        assert await service.check_trade_results() == []
        assert len(service.active_signals()) == 1

    async def test_settles_after_a_minute(self, signalled, notifier):
        signalled("EURUSD")
        clock = Clock()
        service = make_service(notifier=notifier, clock=clock)
        trades = []

        async def on_trade(result):
            trades.append(result)

        service.on_trade(on_trade)
        await service.scan_all_markets()
        notifier.send.reset_mock()

        clock.now = ENTRY + timedelta(minutes=1, seconds=5)
        settled = await service.check_trade_results()

        assert len(settled) == 1
        result = settled[0]
        assert result.result == "WIN"
        assert result.pips == pytest.approx(5.0)
        assert service.active_signals() == []
        assert service.completed_trades() == [result]
        assert trades == [result]
        assert notifier.send.await_args.args[0].startswith("✅ *Trade Result: WIN*")

    async def test_missing_candles_keep_signal_active(self, signalled):
        signalled("EURUSD")
        clock = Clock()
        service = make_service(clock=clock)
        await service.scan_all_markets()
        service._candle_source = lambda symbol, count, now: []

        clock.now = ENTRY + timedelta(minutes=2)
        assert await service.check_trade_results() == []
        assert len(service.active_signals()) == 1

    async def test_completed_trades_are_bounded(self, signalled):
        signalled("EURUSD")
        clock = Clock()
        service = make_service(clock=clock, max_completed=1)

        for _ in range(2):
            clock.now = NOW
            await service.scan_all_markets()
            clock.now = ENTRY + timedelta(minutes=2)
            await service.check_trade_results()

        assert len(service.completed_trades()) == 1


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class TestScheduler:
    """Two minute loops: scan and settle."""

    async def test_start_and_stop(self):
        service = make_service()
        service.start()
        service.start()

        assert service.running is True
        assert len(service._tasks) == 2
        await service.stop()
        assert service.running is False

    async def test_loops_run_jobs(self, monkeypatch):
        monkeypatch.setattr("app.services.m1_service.seconds_until", lambda now, second: 0)
        service = make_service()
        service.scan_all_markets = AsyncMock(return_value=[])
        service.check_trade_results = AsyncMock(return_value=[])

        service.start()
        await asyncio.sleep(0.01)
        await service.stop()

        service.scan_all_markets.assert_awaited()
        service.check_trade_results.assert_awaited()


class TestSyntheticPrices:
    """Default candle source keeps one series per symbol."""

    def test_result_without_entry_candle_uses_same_series(self):
        service = M1SignalService(rng=np.random.default_rng(1))
        scanned = service._candle_source("EURUSD", 60, NOW)
        signal = make_m1_signal(price=scanned[0].close, entry_time=NOW + timedelta(hours=2))

        later = service._candle_source("EURUSD", 5, NOW + timedelta(minutes=3))
        result = evaluate_m1_trade(signal, later)

        assert result.entry_price == scanned[0].close
        move = abs(result.exit_price / result.entry_price - 1)
        assert move <= (1 + OTC_MAX_MOVE) ** 3 - 1


def test_default_clock_is_utc():
    assert M1SignalService()._clock().tzinfo == timezone.utc
