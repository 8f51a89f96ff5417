"""Signal generator configuration models."""

from __future__ import annotations

from pydantic import BaseModel


OTC_CURRENCY_PAIRS = [
    "EUR/USD OTC",
    "GBP/USD OTC",
    "USD/JPY OTC",
    "AUD/USD OTC",
    "USD/CAD OTC",
    "USD/CHF OTC",
    "NZD/USD OTC",
    "EUR/GBP OTC",
    "EUR/JPY OTC",
    "GBP/JPY OTC",
    "EUR/CHF OTC",
    "GBP/AUD OTC",
    "AUD/JPY OTC",
    "NZD/JPY OTC",
    "USD/MXN OTC",
    "USD/SGD OTC",
    "EUR/NZD OTC",
    "GBP/NZD OTC",
    "AUD/CAD OTC",
    "CAD/JPY OTC",
]


class CurrencyPair(BaseModel):
    """M1 scanner pair."""

    symbol: str
    name: str


M1_CURRENCY_PAIRS = [
    CurrencyPair(symbol="EURUSD", name="Euro / US Dollar"),
    CurrencyPair(symbol="GBPUSD", name="British Pound / US Dollar"),
    CurrencyPair(symbol="USDJPY", name="US Dollar / Japanese Yen"),
    CurrencyPair(symbol="AUDUSD", name="Australian Dollar / US Dollar"),
    CurrencyPair(symbol="USDCAD", name="US Dollar / Canadian Dollar"),
    CurrencyPair(symbol="USDCHF", name="US Dollar / Swiss Franc"),
    CurrencyPair(symbol="NZDUSD", name="New Zealand Dollar / US Dollar"),
    CurrencyPair(symbol="EURJPY", name="Euro / Japanese Yen"),
    CurrencyPair(symbol="GBPJPY", name="British Pound / Japanese Yen"),
    CurrencyPair(symbol="EURGBP", name="Euro / British Pound"),
    CurrencyPair(symbol="AUDJPY", name="Australian Dollar / Japanese Yen"),
    CurrencyPair(symbol="CADJPY", name="Canadian Dollar / Japanese Yen"),
    CurrencyPair(symbol="CHFJPY", name="Swiss Franc / Japanese Yen"),
    CurrencyPair(symbol="EURAUD", name="Euro / Australian Dollar"),
    CurrencyPair(symbol="EURCAD", name="Euro / Canadian Dollar"),
    CurrencyPair(symbol="EURCHF", name="Euro / Swiss Franc"),
    CurrencyPair(symbol="GBPAUD", name="British Pound / Australian Dollar"),
    CurrencyPair(symbol="GBPCAD", name="British Pound / Canadian Dollar"),
    CurrencyPair(symbol="GBPCHF", name="British Pound / Swiss Franc"),
    CurrencyPair(symbol="AUDCAD", name="Australian Dollar / Canadian Dollar"),
]


class IndicatorWeights(BaseModel):
    """Weights of each evidence source in the OTC direction score."""

    rsi: float = 0.25
    macd: float = 0.2
    ema: float = 0.15
    sma: float = 0.1
    volume: float = 0.2
    sentiment: float = 0.1

    @property
    def total(self) -> float:
        return self.rsi + self.macd + self.ema + self.sma + self.volume + self.sentiment


class RSIThresholds(BaseModel):
    period: int = 14
    overbought: float = 70
    oversold: float = 30


class SignalTiming(BaseModel):
    """Second-of-minute schedule for the OTC generator."""

    send_at_second: int = 30
    entry_at_second: int = 30
    evaluation_delay_seconds: int = 300


class StrengthThresholds(BaseModel):
    minimum: float = 70
    strong: float = 85
    very_strong: float = 95


class OTCConfig(BaseModel):
    """OTC auto-signal tunables."""

    pairs: list[str] = list(OTC_CURRENCY_PAIRS)
    weights: IndicatorWeights = IndicatorWeights()
    rsi: RSIThresholds = RSIThresholds()
    timing: SignalTiming = SignalTiming()
    strength: StrengthThresholds = StrengthThresholds()

    # Synthetic candles generated per analysis (newest first)
    candle_count: int = 60
    volume_period: int = 20
    max_results: int = 200


class M1Config(BaseModel):
    """M1 scanner tunables."""

    pairs: list[CurrencyPair] = list(M1_CURRENCY_PAIRS)
    min_strength: float = 70
    scan_at_second: int = 30
    check_at_second: int = 5
    entry_at_second: int = 0
    candle_count: int = 100
    max_completed: int = 200

    def name_for(self, symbol: str) -> str:
        for pair in self.pairs:
            if pair.symbol == symbol:
                return pair.name
        return symbol
