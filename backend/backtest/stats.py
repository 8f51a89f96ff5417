"""Statistics calculator for backtest results.

Computes win/loss counts, win rate, profit factor, maximum drawdown and
a sampled equity curve from closed trades.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

logger = logging.getLogger(__name__)

# One equity point per hour of one-minute candles
EQUITY_SAMPLE_EVERY = 60


@dataclass
class BacktestTrade:
    """A simulated position, open until ``exit_price`` is set."""

    type: Literal["BUY", "SELL"]
    entry_price: float
    stop_loss: float
    take_profit: float
    entry_time: datetime
    size: float
    confidence: int
    exit_price: float | None = None
    exit_time: datetime | None = None
    profit: float = 0.0
    result: Literal["WIN", "LOSS"] | None = None

    def unrealized(self, price: float) -> float:
        if self.type == "BUY":
            return (price - self.entry_price) * self.size
        return (self.entry_price - price) * self.size

    def close(self, price: float, time: datetime, result: str | None = None) -> float:
        """Close at ``price``; the result defaults to the sign of the profit."""
        self.exit_price = price
        self.exit_time = time
        self.profit = self.unrealized(price)
        self.result = result or ("WIN" if self.profit > 0 else "LOSS")
        return self.profit


@dataclass
class EquityPoint:
    timestamp: datetime
    value: float


@dataclass
class BacktestResult:
    """Complete backtest results."""

    symbol: str
    market: str
    timeframe: str
    initial_balance: float
    final_balance: float

    trades: list[BacktestTrade] = field(default_factory=list)
    equity: list[EquityPoint] = field(default_factory=list)

    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0

    @property
    def profit(self) -> float:
        return self.final_balance - self.initial_balance

    @property
    def profit_percentage(self) -> float:
        if not self.initial_balance:
            return 0.0
        return self.profit / self.initial_balance * 100

    @property
    def total_trades(self) -> int:
        return len(self.trades)


def max_drawdown(equity: list[EquityPoint]) -> float:
    """Largest peak-to-trough decline of the curve, in percent of the peak."""
    if not equity:
        return 0.0

    worst = 0.0
    peak = equity[0].value
    for point in equity:
        if point.value > peak:
            peak = point.value
        if peak > 0:
            worst = max(worst, (peak - point.value) / peak * 100)
    return worst


def profit_factor(trades: list[BacktestTrade]) -> float:
    """Gross profit over gross loss; a loss-free run divides by 1."""
    gross_profit = sum(t.profit for t in trades if t.profit > 0)
    gross_loss = abs(sum(t.profit for t in trades if t.profit < 0))
    return gross_profit / (gross_loss or 1)


class StatisticsCalculator:
    """Calculate backtest statistics."""

    def calculate(
        self,
        trades: list[BacktestTrade],
        equity: list[EquityPoint],
        initial_balance: float,
        final_balance: float,
        symbol: str,
        market: str = "OTC",
        timeframe: str = "M1",
    ) -> BacktestResult:
        wins = sum(1 for t in trades if t.result == "WIN")
        losses = sum(1 for t in trades if t.result == "LOSS")

        result = BacktestResult(
            symbol=symbol,
            market=market,
            timeframe=timeframe,
            initial_balance=initial_balance,
            final_balance=final_balance,
            trades=trades,
            equity=equity[::EQUITY_SAMPLE_EVERY],
            wins=wins,
            losses=losses,
            win_rate=wins / len(trades) * 100 if trades else 0.0,
            profit_factor=profit_factor(trades),
            max_drawdown=max_drawdown(equity),
        )
        logger.info(
            "Backtest %s: %d trades, win rate %.1f%%, profit %.2f",
            symbol, result.total_trades, result.win_rate, result.profit,
        )
        return result
