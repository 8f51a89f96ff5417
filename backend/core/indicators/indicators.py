"""Technical indicators for signal generation.

Two flavours live here:
1. Series functions (``ema``, ``sma``, ``true_range``) return one value per
   input bar, NaN-padded until the lookback is filled.
2. Latest-value helpers return a single float for the newest bar and fall
   back to a neutral value when there is not enough history.

All inputs are chronological (oldest first).
"""

from typing import Sequence

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


# =============================================================================
# Series
# =============================================================================

def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (same length as input, with NaN for initial values)
    """
    arr = _as_array(values)
    if len(arr) < period:
        return [float("nan")] * len(arr)

    multiplier = 2.0 / (period + 1)
    result = np.empty_like(arr)
    result[:period - 1] = np.nan
    result[period - 1] = np.mean(arr[:period])

    for i in range(period, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result.tolist()


def sma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        List of SMA values
    """
    arr = _as_array(values)
    if len(arr) < period:
        return [float("nan")] * len(arr)

    result = np.full_like(arr, np.nan)
    cumsum = np.cumsum(arr)
    result[period - 1] = cumsum[period - 1] / period
    result[period:] = (cumsum[period:] - cumsum[:-period]) / period
    return result.tolist()


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    The first bar has no previous close and uses high - low.
    """
    h, l, c = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(h) == 0:
        return []

    tr = h - l
    if len(h) > 1:
        prev_close = c[:-1]
        tr[1:] = np.maximum.reduce([
            h[1:] - l[1:],
            np.abs(h[1:] - prev_close),
            np.abs(l[1:] - prev_close),
        ])
    return tr.tolist()


# =============================================================================
# Latest-value helpers
# =============================================================================

def latest_ema(prices: Sequence[float], period: int) -> float:
    """EMA of the newest bar, or the last price when history is too short."""
    if len(prices) == 0:
        return 0.0
    if len(prices) < period:
        return float(prices[-1])
    return ema(prices, period)[-1]


def latest_sma(prices: Sequence[float], period: int) -> float:
    """SMA of the newest bar, or the last price when history is too short."""
    if len(prices) == 0:
        return 0.0
    if len(prices) < period:
        return float(prices[-1])
    return float(np.mean(_as_array(prices)[-period:]))


def rsi_simple(prices: Sequence[float], period: int = 14) -> float:
    """
    RSI from the plain average gain/loss of the last ``period`` moves.

    Returns 50 when there are fewer than ``period + 1`` prices and 100 when
    there were no losing moves.
    """
    if len(prices) < period + 1:
        return 50.0

    diffs = np.diff(_as_array(prices)[-(period + 1):])
    gains = diffs[diffs >= 0].sum()
    losses = -diffs[diffs < 0].sum()

    if losses == 0:
        return 100.0

    rs = (gains / period) / (losses / period)
    return float(100 - 100 / (1 + rs))


def rsi_series(prices: Sequence[float], period: int = 14) -> list[float]:
    """``rsi_simple`` evaluated on every prefix of ``prices``."""
    arr = _as_array(prices)
    result = [50.0] * len(arr)
    if len(arr) < period + 1:
        return result

    diffs = np.diff(arr)
    gains = np.where(diffs >= 0, diffs, 0.0)
    losses = np.where(diffs < 0, -diffs, 0.0)
    kernel = np.ones(period)
    gain_sums = np.convolve(gains, kernel, mode="valid")
    loss_sums = np.convolve(losses, kernel, mode="valid")

    for i, (g, l) in enumerate(zip(gain_sums, loss_sums)):
        # window i covers diffs[i:i+period] -> prefix ending at price i+period
        if l == 0:
            result[i + period] = 100.0
        else:
            result[i + period] = float(100 - 100 / (1 + g / l))
    return result


def rsi_wilder(prices: Sequence[float], period: int = 14) -> float:
    """RSI using Wilder's smoothing after an initial simple average."""
    if len(prices) < period + 1:
        return 50.0

    diffs = np.diff(_as_array(prices))
    avg_gain = diffs[:period][diffs[:period] >= 0].sum() / period
    avg_loss = -diffs[:period][diffs[:period] < 0].sum() / period

    for diff in diffs[period:]:
        if diff >= 0:
            avg_gain = (avg_gain * (period - 1) + diff) / period
            avg_loss = (avg_loss * (period - 1)) / period
        else:
            avg_gain = (avg_gain * (period - 1)) / period
            avg_loss = (avg_loss * (period - 1) - diff) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def macd_simple(prices: Sequence[float]) -> dict[str, float]:
    """
    MACD line (EMA12 - EMA26) with the signal line approximated as 90 % of it.

    Returns zeros with fewer than 26 prices.
    """
    if len(prices) < 26:
        return {"macd": 0.0, "signal": 0.0, "histogram": 0.0}

    line = ema(prices, 12)[-1] - ema(prices, 26)[-1]
    signal = line * 0.9
    return {"macd": line, "signal": signal, "histogram": line - signal}


def macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> dict[str, float]:
    """
    MACD with a proper signal line (EMA of the MACD series).

    Returns zeros with fewer than ``slow_period + signal_period`` prices.
    """
    if len(prices) < slow_period + signal_period:
        return {"macd": 0.0, "signal": 0.0, "histogram": 0.0}

    fast = np.asarray(ema(prices, fast_period))
    slow = np.asarray(ema(prices, slow_period))
    line = (fast - slow)[slow_period - 1:]
    signal_line = ema(line, signal_period)

    value = float(line[-1])
    signal = float(signal_line[-1])
    return {"macd": value, "signal": signal, "histogram": value - signal}


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> dict[str, float]:
    """
    Bollinger Bands of the newest bar (population standard deviation).

    With fewer than ``period`` prices the bands are +/-2 % of the last price.
    """
    if len(prices) < period:
        last = float(prices[-1]) if len(prices) else 0.0
        return {"upper": last * 1.02, "middle": last, "lower": last * 0.98}

    window = _as_array(prices)[-period:]
    middle = float(window.mean())
    deviation = float(window.std())
    return {
        "upper": middle + std_dev * deviation,
        "middle": middle,
        "lower": middle - std_dev * deviation,
    }


def volume_strength(
    volumes: Sequence[float],
    prices: Sequence[float],
    period: int = 14,
) -> dict[str, float]:
    """
    Volume strength (0-100) and a price/volume agreement score.

    The agreement score counts bars where price and volume moved the same
    way (+1) or opposite ways (-1), divided by ``period``.
    """
    if len(volumes) < period or len(prices) < period:
        return {"volume_strength": 50.0, "price_volume_correlation": 0.0}

    vols = _as_array(volumes)
    avg_volume = vols[-period:].mean()
    strength = min(100.0, max(0.0, float(vols[-1] / avg_volume * 50))) if avg_volume else 50.0

    price_moves = np.diff(_as_array(prices)[-period:])
    volume_moves = np.diff(vols[-period:])
    same = ((price_moves > 0) & (volume_moves > 0)) | ((price_moves < 0) & (volume_moves < 0))
    opposite = ~same & (price_moves != 0) & (volume_moves != 0)
    correlation = (int(same.sum()) - int(opposite.sum())) / period

    return {"volume_strength": strength, "price_volume_correlation": correlation}


def rsi_divergence(
    prices: Sequence[float],
    rsi_values: Sequence[float],
    lookback: int = 5,
) -> dict[str, bool]:
    """
    Detect price/RSI divergence at the newest bar.

    Bullish: the newest price is the lowest of the lookback window but RSI
    is above its value at that low. Bearish is the mirror image.
    """
    if len(prices) < lookback or len(rsi_values) < lookback:
        return {"bullish_divergence": False, "bearish_divergence": False}

    window = list(prices[-lookback:])
    # first occurrence scanning newest -> oldest
    reversed_window = window[::-1]
    high_offset = int(np.argmax(reversed_window))
    low_offset = int(np.argmin(reversed_window))

    rsi_now = rsi_values[-1]
    rsi_at_high = rsi_values[-1 - high_offset]
    rsi_at_low = rsi_values[-1 - low_offset]

    return {
        "bullish_divergence": low_offset == 0 and rsi_now > rsi_at_low,
        "bearish_divergence": high_offset == 0 and rsi_now < rsi_at_high,
    }


def average_true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float:
    """Simple mean of the last ``period`` true ranges (0.001 when too short)."""
    if min(len(highs), len(lows), len(closes)) < period + 1:
        return 0.001
    return float(np.mean(true_range(highs, lows, closes)[-period:]))


def dynamic_levels(
    price: float,
    volatility: float,
    side: str,
    atr_value: float,
) -> dict[str, float]:
    """
    Volatility-scaled stop loss / take profit around ``price``.

    Args:
        price: Entry price
        volatility: Volatility score on a 0-100 scale
        side: "BUY" or "SELL"
        atr_value: Average true range

    Returns:
        Dict with stop_loss, take_profit and risk_reward_ratio
    """
    factor = volatility / 100
    stop_mult = 1.5 * (1 + factor)
    tp_mult = 2.5 * (1 + factor * 0.5)

    if side == "BUY":
        stop_loss = price - atr_value * stop_mult
        take_profit = price + atr_value * tp_mult
    else:
        stop_loss = price + atr_value * stop_mult
        take_profit = price - atr_value * tp_mult

    risk = abs(price - stop_loss)
    reward = abs(price - take_profit)
    return {
        "stop_loss": stop_loss,
        "take_profit": take_profit,
        "risk_reward_ratio": reward / risk if risk else 0.0,
    }


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> dict[str, float]:
    """Stochastic %K of the newest bar; %D is reported equal to %K."""
    if min(len(highs), len(lows), len(closes)) < period:
        return {"k": 50.0, "d": 50.0}

    highest_high = float(np.max(_as_array(highs)[-period:]))
    lowest_low = float(np.min(_as_array(lows)[-period:]))
    span = highest_high - lowest_low
    if span == 0:
        return {"k": 50.0, "d": 50.0}

    k = max(0.0, min(100.0, (closes[-1] - lowest_low) / span * 100))
    return {"k": k, "d": k}


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for the indicator snapshot used by the technical generator."""

    def __init__(
        self,
        rsi_period: int = 14,
        ema_period: int = 50,
        bb_period: int = 20,
        bb_std_dev: float = 2.0,
        volume_period: int = 14,
        atr_period: int = 14,
        divergence_lookback: int = 5,
    ):
        self.rsi_period = rsi_period
        self.ema_period = ema_period
        self.bb_period = bb_period
        self.bb_std_dev = bb_std_dev
        self.volume_period = volume_period
        self.atr_period = atr_period
        self.divergence_lookback = divergence_lookback

    def calculate_latest(
        self,
        prices: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        volumes: Sequence[float],
    ) -> dict:
        """
        Calculate indicators for the latest bar.

        Args:
            prices: Close prices (oldest first)
            highs: High prices
            lows: Low prices
            volumes: Volumes

        Returns:
            Dict with rsi, macd, ema50, bollinger_bands, volume_analysis,
            divergence and atr
        """
        rsi_values = rsi_series(prices, self.rsi_period)
        return {
            "rsi": rsi_simple(prices, self.rsi_period),
            "macd": macd_simple(prices),
            "ema50": latest_ema(prices, self.ema_period),
            "bollinger_bands": bollinger_bands(prices, self.bb_period, self.bb_std_dev),
            "volume_analysis": volume_strength(volumes, prices, self.volume_period),
            "divergence": rsi_divergence(prices, rsi_values, self.divergence_lookback),
            "atr": average_true_range(highs, lows, prices, self.atr_period),
        }
