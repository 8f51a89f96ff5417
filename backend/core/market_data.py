"""Synthetic market data.

Nothing here touches a real feed: every series is a seeded random walk so
callers (and tests) can inject a ``numpy.random.Generator``.
"""

import math
from datetime import datetime, timedelta, timezone

import numpy as np

from core.models.kline import Candle
from core.models.signal import MarketData

_BASE_PRICES = {
    "USD/JPY": 110.0,
    "EUR/USD": 1.1,
    "GBP/USD": 1.3,
}
_DEFAULT_BASE_PRICE = 0.7

# Largest relative one-minute move of an OTC close
OTC_MAX_MOVE = 0.001


def base_price(symbol: str) -> float:
    return _BASE_PRICES.get(symbol, _DEFAULT_BASE_PRICE)


def generate_mock_market_data(
    symbol: str,
    market: str = "OTC",
    timeframe: str = "M1",
    rng: np.random.Generator | None = None,
    points: int = 100,
) -> MarketData:
    """
    Random-walk series for the technical signal generator.

    Each step moves the price by at most +/-0.5 %; highs and lows sit within
    0.5 % of the price and volumes are integers in 500..1499.
    """
    rng = rng or np.random.default_rng()
    prices: list[float] = []
    highs: list[float] = []
    lows: list[float] = []
    volumes: list[float] = []

    for i in range(points):
        change = (rng.random() - 0.5) * 0.01
        price = base_price(symbol) if i == 0 else prices[-1] * (1 + change)
        prices.append(price)
        highs.append(price * (1 + rng.random() * 0.005))
        lows.append(price * (1 - rng.random() * 0.005))
        volumes.append(float(math.floor(rng.random() * 1000) + 500))

    return MarketData(
        symbol=symbol,
        market=market,
        timeframe=timeframe,
        prices=prices,
        highs=highs,
        lows=lows,
        volumes=volumes,
    )


def otc_base_price(pair: str, rng: np.random.Generator) -> float:
    """Starting price by pair family."""
    if "USD" in pair:
        return 0.5 + rng.random() * 1.5
    if "JPY" in pair:
        return 100 + rng.random() * 50
    if "BTC" in pair:
        return 30000 + rng.random() * 10000
    return 1 + rng.random() * 100


def _otc_candle(close: float, timestamp: datetime, rng: np.random.Generator) -> Candle:
    high = close * (1 + rng.random() * 0.001)
    low = close * (1 - rng.random() * 0.001)
    return Candle(
        timestamp=timestamp,
        open=low + rng.random() * (high - low),
        high=high,
        low=low,
        close=close,
        volume=float(math.floor(rng.random() * 1000) + 100),
    )


def _otc_step(rng: np.random.Generator) -> float:
    """Relative one-minute move, strictly inside +-0.1 %."""
    return (rng.random() - 0.5) * 2 * OTC_MAX_MOVE


def generate_otc_candles(
    pair: str,
    count: int = 60,
    now: datetime | None = None,
    rng: np.random.Generator | None = None,
    last_close: float | None = None,
    minutes: int = 1,
) -> list[Candle]:
    """
    One-minute candles for an OTC pair, newest first.

    Without ``last_close`` the close drifts linearly from a random base
    price by a per-candle change of up to 0.1 %. With it, the newest close
    is ``minutes`` moves of up to 0.1 % away from ``last_close`` and older
    closes walk back from there. Highs/lows stay within 0.1 % of the close.
    """
    rng = rng or np.random.default_rng()
    now = now or datetime.now(timezone.utc)
    candles = []

    if last_close is not None:
        close = last_close
        for _ in range(max(1, minutes)):
            close *= 1 + _otc_step(rng)
        for i in range(count):
            candles.append(_otc_candle(close, now - timedelta(minutes=i), rng))
            close /= 1 + _otc_step(rng)
        return candles

    base = otc_base_price(pair, rng)
    half = count // 2
    for i in range(count):
        change = _otc_step(rng) * base
        candles.append(_otc_candle(base + change * (half - i), now - timedelta(minutes=i), rng))
    return candles


class OTCFeed:
    """
    Synthetic per-pair candle source.

    The first request for a pair starts from a random base price; later
    requests continue from the previous newest close, one move per elapsed
    minute, so prices seen by a signal and by its evaluation belong to one
    series.
    """

    def __init__(self, rng: np.random.Generator | None = None):
        self._rng = rng or np.random.default_rng()
        self._last: dict[str, tuple[float, datetime]] = {}

    def last_close(self, pair: str) -> float | None:
        last = self._last.get(pair)
        return last[0] if last else None

    def __call__(self, pair: str, count: int, now: datetime) -> list[Candle]:
        last = self._last.get(pair)
        if last is None:
            candles = generate_otc_candles(pair, count=count, now=now, rng=self._rng)
        else:
            close, seen_at = last
            minutes = int((now - seen_at).total_seconds() // 60)
            candles = generate_otc_candles(
                pair, count=count, now=now, rng=self._rng, last_close=close, minutes=minutes
            )
        if candles:
            self._last[pair] = (candles[0].close, now)
        return candles


def generate_backtest_candles(
    symbol: str,
    days: int = 30,
    rng: np.random.Generator | None = None,
    end: datetime | None = None,
) -> list[Candle]:
    """``days * 1440`` one-minute candles (oldest first) with a slow sinusoidal drift."""
    rng = rng or np.random.default_rng()
    end = end or datetime.now(timezone.utc)
    count = days * 24 * 60
    price = base_price(symbol)
    candles = []

    for i in range(count):
        trend = math.sin(i / 1000) * 0.0001
        noise = (rng.random() - 0.5) * 0.001
        price = price * (1 + trend + noise)
        candles.append(Candle(
            timestamp=end - timedelta(minutes=count - i),
            open=price,
            high=price * (1 + rng.random() * 0.001),
            low=price * (1 - rng.random() * 0.001),
            close=price * (1 + (rng.random() - 0.5) * 0.0005),
            volume=float(math.floor(rng.random() * 1000) + 500),
        ))

    return candles
