"""OTC and M1 signal models."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from core.models.base import CamelModel
from core.models.signal import MACDValues

TradeDirection = Literal["BUY", "SELL"]


class OTCTechnicals(CamelModel):
    rsi: float
    macd: MACDValues
    ema9: float
    ema21: float
    sma50: float


class VolumeData(CamelModel):
    current: float = 0.0
    average: float = 0.0
    ratio: float = 1.0
    trend: Literal["increasing", "decreasing", "stable"] = "stable"
    anomaly: bool = False
    anomaly_score: float = 0.0


class Volatility(CamelModel):
    value: float
    description: str
    atr: float


class Sentiment(CamelModel):
    score: float = 0.0
    description: str = "Neutral pressure"
    keywords: list[str] = Field(default_factory=list)


class MarketInfo(CamelModel):
    volatility: Volatility
    asset_strength: str
    volume_metric: str
    volume_data: VolumeData
    sentiment: Sentiment


class Levels(CamelModel):
    support: float
    resistance: float


class OTCSignal(CamelModel):
    """Auto-generated OTC signal."""

    pair: str
    direction: TradeDirection
    price: float
    timestamp: datetime
    entry_time: datetime
    strength: float
    technical_indicators: OTCTechnicals
    market_info: MarketInfo
    levels: Levels
    market_conditions: str
    reasons: list[str]
    message: str


class TechnicalAtExit(CamelModel):
    rsi: float
    macd: MACDValues


class OTCTradeResult(CamelModel):
    """Outcome of an OTC signal evaluated after the holding period."""

    signal: OTCSignal
    result: Literal["Win", "Lose"]
    reason: str
    entry_price: float
    exit_price: float
    pnl: float
    pnl_percentage: float
    duration: int
    technical_at_exit: TechnicalAtExit
    volume_change: float
    sentiment_shift: float
    suggestions: list[str]
    message: str


class M1BollingerBands(CamelModel):
    upper: float
    middle: float
    lower: float
    percent_b: float


class M1TechnicalFactors(CamelModel):
    rsi: float
    macd: float
    ema: float
    bollinger_bands: M1BollingerBands


class M1MarketFactors(CamelModel):
    volatility: float
    volume_strength: float
    sentiment: float


class SupportResistance(CamelModel):
    nearest_support: float
    nearest_resistance: float
    distance_to_support: float
    distance_to_resistance: float


class M1Signal(CamelModel):
    """M1 scanner signal."""

    symbol: str
    name: str
    direction: TradeDirection
    entry_time: datetime
    strength: float
    technical_factors: M1TechnicalFactors
    market_factors: M1MarketFactors
    support_resistance: SupportResistance
    risk_reward: float
    timestamp: datetime
    price: float


class M1TradeResult(CamelModel):
    symbol: str
    direction: TradeDirection
    entry_time: datetime
    entry_price: float
    exit_time: datetime
    exit_price: float
    result: Literal["WIN", "LOSS", "BREAKEVEN"]
    pips: float
    technical_reasons: list[str]
    sentiment_reasons: list[str]
