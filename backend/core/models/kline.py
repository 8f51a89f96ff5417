"""Candlestick data model."""

from datetime import datetime

from pydantic import ConfigDict

from core.models.base import CamelModel


class Candle(CamelModel):
    """One-minute OHLCV candle."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low
