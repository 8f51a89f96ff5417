"""Backtesting system for the technical signal generator.

Fully independent of app/ - only depends on core/ for business logic.

Usage:
    python -m backtest --symbol EUR/USD --days 30
"""

from backtest.engine import BacktestEngine, run_backtest
from backtest.report import ReportFormatter
from backtest.stats import BacktestResult, BacktestTrade, EquityPoint, StatisticsCalculator

__all__ = [
    "BacktestEngine",
    "run_backtest",
    "ReportFormatter",
    "BacktestResult",
    "BacktestTrade",
    "EquityPoint",
    "StatisticsCalculator",
]
