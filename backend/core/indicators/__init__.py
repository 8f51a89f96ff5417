"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    ema,
    sma,
    true_range,
    latest_ema,
    latest_sma,
    rsi_simple,
    rsi_series,
    rsi_wilder,
    macd_simple,
    macd,
    bollinger_bands,
    volume_strength,
    rsi_divergence,
    average_true_range,
    dynamic_levels,
    stochastic,
    IndicatorCalculator,
)

__all__ = [
    "ema",
    "sma",
    "true_range",
    "latest_ema",
    "latest_sma",
    "rsi_simple",
    "rsi_series",
    "rsi_wilder",
    "macd_simple",
    "macd",
    "bollinger_bands",
    "volume_strength",
    "rsi_divergence",
    "average_true_range",
    "dynamic_levels",
    "stochastic",
    "IndicatorCalculator",
]
