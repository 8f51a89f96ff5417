"""ETHEREAL signal model."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from core.models.base import CamelModel

StrengthLevel = Literal["NORMAL", "STRONG", "VERY STRONG", "ETHEREAL", "TRANSCENDENT"]


class EtherealSignal(CamelModel):
    """Metaphysically-flavoured signal with fabricated cosmic metrics."""

    pair: str
    timeframe: str
    direction: Literal["BUY", "SELL"]
    timestamp: datetime
    confidence: float

    # cosmic market info
    quantum_volatility: str
    trader_energy_field: float
    market_sentiment: float
    astro_alignment: str
    dimensional_flux: str

    # technical overview
    rsi: float
    macd: float
    ema_status: str
    bollinger_status: str
    adx: float

    # AI insights
    probability_score: float
    sentiment_waveform: str
    causal_loop_score: str
    meta_conscious_feedback: str

    # risk management
    quantum_var: float = Field(alias="quantumVaR")
    adaptive_positioning: str
    stop_loss: float | None = None
    take_profit: float | None = None
    hedging_status: str

    strength_level: StrengthLevel
    market_condition: str
