"""M1 OTC scanner: vote-based direction, 50-based strength, pip outcomes.

Candles are newest first.
"""

import logging
from datetime import datetime, timedelta, timezone

import numpy as np

from core.indicators import bollinger_bands, latest_ema, macd, rsi_wilder
from core.models.config import M1Config
from core.models.kline import Candle
from core.models.otc import (
    M1BollingerBands,
    M1MarketFactors,
    M1Signal,
    M1TechnicalFactors,
    M1TradeResult,
    SupportResistance,
)
from core.models.signal import MACDValues

logger = logging.getLogger(__name__)

# Reference averages the volatility and volume ratios are measured against
REFERENCE_RANGE = 0.001
REFERENCE_VOLUME = 1000.0

PIP_FACTOR = 10000
BREAKEVEN_PIPS = 1.0


# =============================================================================
# Metrics
# =============================================================================

def percent_b(price: float, upper: float, middle: float, lower: float) -> float:
    width = upper - lower
    return (price - lower) / width if width else 0.5


def range_volatility(candles: list[Candle]) -> float:
    """Mean high-low range of the candles relative to a 0.001 reference range."""
    if not candles:
        return 0.0
    ranges = np.array([abs(c.high - c.low) for c in candles], dtype=np.float64)
    return float(ranges.mean()) / REFERENCE_RANGE


def relative_volume(candles: list[Candle]) -> float:
    if not candles:
        return 0.0
    volumes = np.array([c.volume or 1 for c in candles], dtype=np.float64)
    return float(volumes.mean()) / REFERENCE_VOLUME


def nearest_levels(candles: list[Candle], price: float) -> SupportResistance:
    """Closest low below and high above ``price``; +/-0.5 % when none exists."""
    below = [c.low for c in candles if c.low < price]
    above = [c.high for c in candles if c.high > price]
    support = max(below) if below else price * 0.995
    resistance = min(above) if above else price * 1.005

    return SupportResistance(
        nearest_support=support,
        nearest_resistance=resistance,
        distance_to_support=(price - support) / price,
        distance_to_resistance=(resistance - price) / price,
    )


def risk_reward(direction: str, price: float, support: float, resistance: float) -> float:
    if direction == "BUY":
        reward, risk = resistance - price, price - support
    elif direction == "SELL":
        reward, risk = price - support, resistance - price
    else:
        return 0.0
    return reward / risk if risk > 0 else 0.0


# =============================================================================
# Direction and strength
# =============================================================================

def determine_direction(
    rsi: float,
    macd_values: MACDValues,
    ema: float,
    bands: dict[str, float],
    price: float,
    sentiment: float,
    overbought: float = 70,
    oversold: float = 30,
) -> str:
    """
    Count bullish and bearish votes.

    A side wins with at least five votes and a lead of more than two.
    """
    bullish = 0
    bearish = 0

    if rsi < oversold:
        bullish += 2
    elif rsi < 40:
        bullish += 1
    elif rsi > overbought:
        bearish += 2
    elif rsi > 60:
        bearish += 1

    if macd_values.histogram > 0 and macd_values.macd > macd_values.signal:
        bullish += 2
    elif macd_values.histogram < 0 and macd_values.macd < macd_values.signal:
        bearish += 2

    if price > ema:
        bullish += 1
    elif price < ema:
        bearish += 1

    if price < bands["lower"]:
        bullish += 2
    elif price > bands["upper"]:
        bearish += 2

    if sentiment > 60:
        bullish += 1
    elif sentiment < -60:
        bearish += 1

    if bullish >= 5 and bullish > bearish + 2:
        return "BUY"
    if bearish >= 5 and bearish > bullish + 2:
        return "SELL"
    return "NEUTRAL"


def signal_strength(
    direction: str,
    rsi: float,
    histogram: float,
    bands: dict[str, float],
    volatility: float,
    volume_strength: float,
    sentiment: float,
    levels: SupportResistance,
) -> float:
    """Score from a neutral 50, clamped to 0..100. NEUTRAL scores 0."""
    if direction == "NEUTRAL":
        return 0.0

    buy = direction == "BUY"
    strength = 50.0

    if buy:
        if rsi < 20:
            strength += 20
        elif rsi < 30:
            strength += 15
        elif rsi < 40:
            strength += 10
        elif rsi < 50:
            strength += 5
    else:
        if rsi > 80:
            strength += 20
        elif rsi > 70:
            strength += 15
        elif rsi > 60:
            strength += 10
        elif rsi > 50:
            strength += 5

    if (buy and histogram > 0) or (not buy and histogram < 0):
        magnitude = abs(histogram) * 1000
        if magnitude > 0.5:
            strength += 20
        elif magnitude > 0.3:
            strength += 15
        elif magnitude > 0.1:
            strength += 10
        else:
            strength += 5

    # %B is measured at the band on the signal's side
    band_b = percent_b(bands["lower"] if buy else bands["upper"], **bands)
    if (buy and band_b < 0.1) or (not buy and band_b > 0.9):
        strength += 15
    elif (buy and band_b < 0.2) or (not buy and band_b > 0.8):
        strength += 10
    elif (buy and band_b < 0.3) or (not buy and band_b > 0.7):
        strength += 5

    if volatility > 1.5:
        strength += 10
    elif volatility > 1.2:
        strength += 7
    elif volatility > 1.0:
        strength += 5
    elif volatility < 0.5:
        strength -= 5

    if volume_strength > 2.0:
        strength += 15
    elif volume_strength > 1.5:
        strength += 10
    elif volume_strength > 1.0:
        strength += 5
    elif volume_strength < 0.8:
        strength -= 5

    if (buy and sentiment > 60) or (not buy and sentiment < -60):
        strength += 10
    elif (buy and sentiment > 30) or (not buy and sentiment < -30):
        strength += 5

    if buy and levels.distance_to_support < 0.1 and levels.distance_to_resistance > 0.5:
        strength += 10
    elif not buy and levels.distance_to_resistance < 0.1 and levels.distance_to_support > 0.5:
        strength += 10

    return max(0.0, min(100.0, strength))


def next_entry_time(now: datetime, entry_second: int = 0) -> datetime:
    """Second ``entry_second`` of the minute after ``now``."""
    return now.replace(second=entry_second, microsecond=0) + timedelta(minutes=1)


def build_m1_signal(
    symbol: str,
    candles: list[Candle],
    now: datetime | None = None,
    config: M1Config | None = None,
    sentiment: float = 0.0,
) -> M1Signal | None:
    """
    Analyse newest-first candles for one pair.

    Returns None unless the direction is BUY/SELL and the strength reaches
    the configured minimum.
    """
    config = config or M1Config()
    now = now or datetime.now(timezone.utc)

    if not candles:
        logger.warning("No candles for %s", symbol)
        return None

    price = candles[0].close
    closes = [c.close for c in reversed(candles)]
    rsi = rsi_wilder(closes, 14)
    macd_values = MACDValues(**macd(closes, 12, 26, 9))
    ema = latest_ema(closes, 9)
    bands = bollinger_bands(closes, 20, 2)

    volatility = range_volatility(candles[:20])
    volume = relative_volume(candles[:20])
    levels = nearest_levels(candles[:50], price)

    direction = determine_direction(rsi, macd_values, ema, bands, price, sentiment)
    strength = signal_strength(
        direction, rsi, macd_values.histogram, bands, volatility, volume, sentiment, levels
    )

    if direction == "NEUTRAL" or strength < config.min_strength:
        logger.debug("%s: %s with strength %.0f, skipped", symbol, direction, strength)
        return None

    return M1Signal(
        symbol=symbol,
        name=config.name_for(symbol),
        direction=direction,
        entry_time=next_entry_time(now, config.entry_at_second),
        strength=strength,
        technical_factors=M1TechnicalFactors(
            rsi=rsi,
            macd=macd_values.histogram,
            ema=ema,
            bollinger_bands=M1BollingerBands(
                **bands, percent_b=percent_b(price, **bands)
            ),
        ),
        market_factors=M1MarketFactors(
            volatility=volatility, volume_strength=volume, sentiment=sentiment
        ),
        support_resistance=levels,
        risk_reward=risk_reward(direction, price, levels.nearest_support, levels.nearest_resistance),
        timestamp=now,
        price=price,
    )


# =============================================================================
# Trade evaluation
# =============================================================================

def technical_reasons(signal: M1Signal, result: str) -> list[str]:
    tech = signal.technical_factors
    market = signal.market_factors
    reasons = []

    if result == "WIN":
        if signal.direction == "BUY":
            if tech.rsi < 30:
                reasons.append("RSI was oversold, indicating a potential reversal")
            if tech.macd > 0:
                reasons.append("Positive MACD histogram confirmed upward momentum")
            if tech.bollinger_bands.percent_b < 0.2:
                reasons.append("Price was near the lower Bollinger Band, suggesting a bounce")
        else:
            if tech.rsi > 70:
                reasons.append("RSI was overbought, indicating a potential reversal")
            if tech.macd < 0:
                reasons.append("Negative MACD histogram confirmed downward momentum")
            if tech.bollinger_bands.percent_b > 0.8:
                reasons.append("Price was near the upper Bollinger Band, suggesting a drop")
    elif result == "LOSS":
        if signal.direction == "BUY":
            if tech.rsi > 40:
                reasons.append("RSI was not deeply oversold, lacking strong reversal potential")
            if tech.macd < 0:
                reasons.append("MACD remained bearish despite buy signal")
        else:
            if tech.rsi < 60:
                reasons.append("RSI was not deeply overbought, lacking strong reversal potential")
            if tech.macd > 0:
                reasons.append("MACD remained bullish despite sell signal")
        if market.volatility < 1:
            reasons.append("Low volatility prevented sufficient price movement")

    if market.volume_strength > 1.5:
        reasons.append(
            f"Strong volume ({market.volume_strength:.1f}x) supported the price movement"
        )
    elif market.volume_strength < 0.8:
        reasons.append(
            f"Low volume ({market.volume_strength:.1f}x) failed to support the price movement"
        )

    return reasons


def _signed_percent(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.0f}%"


def sentiment_reasons(signal: M1Signal, result: str) -> list[str]:
    sentiment = signal.market_factors.sentiment
    levels = signal.support_resistance
    buy = signal.direction == "BUY"
    reasons = []

    if result == "WIN":
        if (buy and sentiment > 30) or (not buy and sentiment < -30):
            reasons.append(
                f"Market sentiment ({_signed_percent(sentiment)}) aligned with the trade direction"
            )
        if buy and levels.distance_to_support < 0.1:
            reasons.append(
                "Price was near a strong support level, providing a solid foundation for the upward move"
            )
        elif not buy and levels.distance_to_resistance < 0.1:
            reasons.append(
                "Price was near a strong resistance level, creating a ceiling for price action"
            )
    elif result == "LOSS":
        if (buy and sentiment < 0) or (not buy and sentiment > 0):
            reasons.append(
                f"Market sentiment ({_signed_percent(sentiment)}) opposed the trade direction"
            )
        if signal.risk_reward < 1:
            reasons.append(
                f"Unfavorable risk/reward ratio ({signal.risk_reward:.1f}) "
                "reduced the probability of success"
            )

    return reasons


def evaluate_m1_trade(signal: M1Signal, candles: list[Candle]) -> M1TradeResult | None:
    """
    Compare the entry candle's open with the newest close.

    The entry candle is the one whose hour and minute match the signal's
    entry time; the signal price is used when it is missing. Returns None
    without candles.
    """
    if not candles:
        logger.warning("Could not find candles for trade result calculation: %s", signal.symbol)
        return None

    exit_candle = candles[0]
    entry = signal.entry_time
    entry_candle = next(
        (
            c for c in candles
            if c.timestamp.hour == entry.hour and c.timestamp.minute == entry.minute
        ),
        None,
    )
    entry_price = entry_candle.open if entry_candle is not None else signal.price
    exit_price = exit_candle.close

    if signal.direction == "BUY":
        pips = (exit_price - entry_price) * PIP_FACTOR
    else:
        pips = (entry_price - exit_price) * PIP_FACTOR

    if pips > BREAKEVEN_PIPS:
        result = "WIN"
    elif pips < -BREAKEVEN_PIPS:
        result = "LOSS"
    else:
        result = "BREAKEVEN"

    return M1TradeResult(
        symbol=signal.symbol,
        direction=signal.direction,
        entry_time=signal.entry_time,
        entry_price=entry_price,
        exit_time=exit_candle.timestamp,
        exit_price=exit_price,
        result=result,
        pips=pips,
        technical_reasons=technical_reasons(signal, result),
        sentiment_reasons=sentiment_reasons(signal, result),
    )


# =============================================================================
# Telegram text
# =============================================================================

def describe_volatility(value: float) -> str:
    if value > 2:
        return "High"
    if value > 1.5:
        return "Above average"
    if value < 0.5:
        return "Low"
    if value < 0.8:
        return "Below average"
    return "Average"


def describe_volume(value: float) -> str:
    if value > 2:
        return "High"
    if value > 1.5:
        return "Above average"
    if value < 0.5:
        return "Low"
    if value < 0.8:
        return "Below average"
    return "Normal"


def describe_asset_strength(volume_strength: float, direction: str) -> str:
    side = "bullish" if direction == "BUY" else "bearish"
    if volume_strength > 1.5:
        return f"Strong {side}"
    if volume_strength > 1.2:
        return f"Moderately {side}"
    if volume_strength < 0.8:
        return "Weak"
    return "Neutral"


def describe_sentiment(value: float) -> str:
    if value > 60:
        return "Strong upward pressure"
    if value > 30:
        return "Upward pressure"
    if value < -60:
        return "Strong downward pressure"
    if value < -30:
        return "Downward pressure"
    return "Neutral pressure"


def format_m1_signal_message(signal: M1Signal) -> str:
    market = signal.market_factors
    tech = signal.technical_factors
    levels = signal.support_resistance
    ema_text = (
        "Price above EMA (bullish)" if signal.price > tech.ema else "Price below EMA (bearish)"
    )
    conditions = (
        "Bullish reversal potential" if signal.direction == "BUY" else "Bearish reversal potential"
    )

    lines = [
        f"{signal.symbol} | 1 minutes | {signal.direction.lower()}",
        "",
        "📡 Market info:",
        f"• Volatility: {describe_volatility(market.volatility)}",
        f"• Asset strength by volume: {describe_asset_strength(market.volume_strength, signal.direction)}",
        f"• Volume result: {describe_volume(market.volume_strength)}",
        f"• Sentiment: {describe_sentiment(market.sentiment)}",
        "",
        "💵 Technical overview:",
        f"• Current price: {signal.price:.5f} OTC",
        f"• Resistance (R1): {levels.nearest_resistance:.5f} OTC",
        f"• Support (S1): {levels.nearest_support:.5f} OTC",
        f"• RSI: {tech.rsi:.2f}",
        f"• MACD: {tech.macd:.5f}",
        f"• Moving Average: {ema_text}",
        "",
        "📇 Signal strength:",
        f"• Strength: {signal.strength:.0f}/100",
        f"• Market conditions: {conditions}",
    ]
    return "\n".join(lines) + "\n"


_RESULT_EMOJI = {"WIN": "✅", "LOSS": "❌", "BREAKEVEN": "⚖️"}


def format_m1_trade_result(result: M1TradeResult) -> str:
    direction_emoji = "🟢" if result.direction == "BUY" else "🔴"
    lines = [
        f"{_RESULT_EMOJI[result.result]} *Trade Result: {result.result}*",
        f"{direction_emoji} *{result.direction} {result.symbol}*",
        f"⏰ Entry: {result.entry_time:%H:%M:%S} @ {result.entry_price:.5f}",
        f"⌛ Exit: {result.exit_time:%H:%M:%S} @ {result.exit_price:.5f}",
        f"📊 Result: {result.pips:.1f} pips",
        "",
        "*Technical Analysis:*",
        *(f"• {reason}" for reason in result.technical_reasons),
        "",
        "*Market Sentiment:*",
        *(f"• {reason}" for reason in result.sentiment_reasons),
    ]
    return "\n".join(lines) + "\n"
