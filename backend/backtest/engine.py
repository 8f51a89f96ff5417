"""Candle-by-candle backtest of the technical signal generator.

For each candle after the first ``window`` ones:
1. Generate a signal from the previous ``window`` candles
2. Check the open trade's stop loss, then its take profit, on this candle
3. Open a trade at this candle's close when flat and the signal is confident
4. Record equity including the open trade's unrealised profit
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from core.models.kline import Candle
from core.models.signal import Direction, MarketData, TradingSignal
from core.signal_generator import generate_signal

from backtest.stats import BacktestResult, BacktestTrade, EquityPoint, StatisticsCalculator

logger = logging.getLogger(__name__)

WINDOW = 100
MIN_CONFIDENCE = 70
RISK_PER_TRADE = 0.02

SignalFn = Callable[..., TradingSignal]


class BacktestEngine:
    """Replay oldest-first candles through a signal function (``generate_signal`` by default)."""

    def __init__(
        self,
        symbol: str,
        market: str = "OTC",
        timeframe: str = "M1",
        window: int = WINDOW,
        min_confidence: int = MIN_CONFIDENCE,
        risk_per_trade: float = RISK_PER_TRADE,
        rng: np.random.Generator | None = None,
        signal_fn: SignalFn = generate_signal,
    ):
        self.symbol = symbol
        self.market = market
        self.timeframe = timeframe
        self.window = window
        self.min_confidence = min_confidence
        self.risk_per_trade = risk_per_trade
        self._rng = rng or np.random.default_rng()
        self._signal_fn = signal_fn

    def _market_data(self, candles: list[Candle]) -> MarketData:
        return MarketData(
            symbol=self.symbol,
            market=self.market,
            timeframe=self.timeframe,
            prices=[c.close for c in candles],
            highs=[c.high for c in candles],
            lows=[c.low for c in candles],
            volumes=[c.volume for c in candles],
        )

    @staticmethod
    def _check_exit(trade: BacktestTrade, candle: Candle) -> bool:
        """Close ``trade`` if this candle reaches its stop loss or take profit."""
        if trade.type == "BUY":
            if candle.low <= trade.stop_loss:
                trade.close(trade.stop_loss, candle.timestamp, "LOSS")
                return True
            if candle.high >= trade.take_profit:
                trade.close(trade.take_profit, candle.timestamp, "WIN")
                return True
        else:
            if candle.high >= trade.stop_loss:
                trade.close(trade.stop_loss, candle.timestamp, "LOSS")
                return True
            if candle.low <= trade.take_profit:
                trade.close(trade.take_profit, candle.timestamp, "WIN")
                return True
        return False

    def run(self, candles: list[Candle], initial_balance: float = 1000.0) -> BacktestResult:
        if not candles:
            raise ValueError("No candles to backtest")
        logger.debug("Backtesting %s over %d candles", self.symbol, len(candles))

        balance = initial_balance
        trades: list[BacktestTrade] = []
        equity = [EquityPoint(candles[0].timestamp, balance)]
        open_trade: BacktestTrade | None = None

        for i in range(self.window, len(candles)):
            candle = candles[i]
            signal = self._signal_fn(
                self._market_data(candles[i - self.window:i]),
                account_balance=balance,
                rng=self._rng,
            )

            if open_trade is not None and self._check_exit(open_trade, candle):
                balance += open_trade.profit
                trades.append(open_trade)
                open_trade = None

            if (
                open_trade is None
                and signal.signal in (Direction.BUY, Direction.SELL)
                and signal.confidence > self.min_confidence
            ):
                stop_loss = signal.risk_management.stop_loss
                risk_per_unit = abs(candle.close - stop_loss)
                if risk_per_unit > 0:
                    open_trade = BacktestTrade(
                        type=signal.signal.value,
                        entry_price=candle.close,
                        stop_loss=stop_loss,
                        take_profit=signal.risk_management.take_profit,
                        entry_time=candle.timestamp,
                        size=balance * self.risk_per_trade / risk_per_unit,
                        confidence=signal.confidence,
                    )

            unrealized = open_trade.unrealized(candle.close) if open_trade else 0.0
            equity.append(EquityPoint(candle.timestamp, balance + unrealized))

        if open_trade is not None:
            last = candles[-1]
            balance += open_trade.close(last.close, last.timestamp)
            trades.append(open_trade)

        return StatisticsCalculator().calculate(
            trades, equity, initial_balance, balance,
            symbol=self.symbol, market=self.market, timeframe=self.timeframe,
        )


def run_backtest(
    candles: list[Candle],
    initial_balance: float = 1000.0,
    symbol: str = "EUR/USD",
    market: str = "OTC",
    timeframe: str = "M1",
    rng: np.random.Generator | None = None,
) -> BacktestResult:
    """Backtest ``generate_signal`` over oldest-first ``candles``."""
    engine = BacktestEngine(symbol, market, timeframe, rng=rng)
    return engine.run(candles, initial_balance)
