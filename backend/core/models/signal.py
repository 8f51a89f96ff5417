"""Technical signal data models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from core.models.base import CamelModel


class Direction(str, Enum):
    """Signal direction. HOLD is spelled NEUTRAL on the wire."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class Trend(str, Enum):
    """Higher-timeframe trend label."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketData(CamelModel):
    """Chronological OHLCV series for one symbol (oldest first)."""

    symbol: str
    market: str = "OTC"
    timeframe: str = "M1"
    prices: list[float]
    highs: list[float]
    lows: list[float]
    volumes: list[float]

    @property
    def last_price(self) -> float:
        return self.prices[-1]


class MACDValues(CamelModel):
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class BollingerBands(CamelModel):
    upper: float
    middle: float
    lower: float


class VolumeAnalysis(CamelModel):
    volume_strength: float = 50.0
    price_volume_correlation: float = 0.0


class Divergence(CamelModel):
    bullish_divergence: bool = False
    bearish_divergence: bool = False


class IndicatorSnapshot(CamelModel):
    """Indicator values attached to a technical signal."""

    rsi: float
    macd: MACDValues
    ema50: float
    bollinger_bands: BollingerBands
    volume_analysis: VolumeAnalysis | None = None
    divergence: Divergence | None = None


class RiskManagement(CamelModel):
    stop_loss: float = 0.0
    take_profit: float = 0.0
    risk_reward_ratio: float = 0.0
    position_size: float = 0.0


class MultiTimeframeConfirmation(CamelModel):
    m5_trend: Trend = Trend.NEUTRAL
    m15_trend: Trend = Trend.NEUTRAL
    m30_trend: Trend = Trend.NEUTRAL
    confirmed: bool = False

    def count(self, trend: Trend) -> int:
        """Number of higher timeframes showing ``trend``."""
        return sum(t == trend for t in (self.m5_trend, self.m15_trend, self.m30_trend))


class TradingSignal(CamelModel):
    """Technical signal for one symbol."""

    symbol: str
    market: str
    timeframe: str
    signal: Direction
    confidence: int
    reasons: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
    indicators: IndicatorSnapshot
    risk_management: RiskManagement = Field(default_factory=RiskManagement)
    multi_timeframe_confirmation: MultiTimeframeConfirmation
    price: float | None = None


class ModelFeatures(CamelModel):
    """Feature vector consumed by the weighted scoring model."""

    rsi: float
    macd_histogram: float
    price_to_ema: float
    price_to_bollinger_upper: float
    price_to_bollinger_lower: float
    volume_strength: float
    price_volume_correlation: float
    bullish_divergence: bool
    bearish_divergence: bool
    m5_trend: Trend
    m15_trend: Trend
    m30_trend: Trend


class MLPrediction(CamelModel):
    prediction: Direction
    probability: float
    confidence: int


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class AIAnalysis(CamelModel):
    """Rule-based market analysis."""

    signal: Direction
    confidence: int
    reasons: list[str]
    risk_level: RiskLevel
    analysis: str
    stop_loss: float
    take_profit: float
