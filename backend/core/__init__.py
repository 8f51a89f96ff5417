"""Core signal logic: indicators, synthetic market data, and generators.

This package contains pure business logic with no I/O dependencies
(no network access, no timers). It is shared between the web
service (app/) and the backtesting system (backtest/).
"""
