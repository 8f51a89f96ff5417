"""OTC auto-signal analysis.

Candles are newest first throughout this module; indicator helpers that
expect chronological input receive a reversed copy.
"""

import logging
from datetime import datetime, timedelta, timezone

import numpy as np

from core.indicators import latest_ema, latest_sma, macd, rsi_wilder
from core.models.config import OTCConfig
from core.models.kline import Candle
from core.models.otc import (
    Levels,
    MarketInfo,
    OTCSignal,
    OTCTechnicals,
    OTCTradeResult,
    Sentiment,
    TechnicalAtExit,
    Volatility,
    VolumeData,
)
from core.models.signal import MACDValues

logger = logging.getLogger(__name__)

MIN_INDICATOR_CANDLES = 50
MIN_LEVEL_CANDLES = 20
CLUSTER_TOLERANCE = 0.0005
LEVEL_PROXIMITY = 0.002

SIGNAL_MESSAGE_FORMAT = """{PAIR} OTC | 1 minutes | {DIRECTION} {ARROW}

📡 Market info:
• Volatility: {VOLATILITY}
• Asset strength by volume: {ASSET_STRENGTH}
• Volume result: {VOLUME_METRIC}
• Sentiment: {SENTIMENT}

💵 Technical overview:
• Current price: {PRICE} OTC
• Resistance (R1): {RESISTANCE}
• Support (S1): {SUPPORT}
• RSI: {RSI}
• MACD: {MACD}
• Moving Average: EMA9={EMA9}, EMA21={EMA21}, SMA50={SMA50}

📇 Signal strength:
• Strength: {STRENGTH}/100
• Market conditions: {MARKET_CONDITIONS}

🕒 Signal sent at: {SIGNAL_TIME} UTC for entry at {ENTRY_TIME} UTC
"""

TRADE_RESULT_FORMAT = """Result: {RESULT}
Reason: {REASON}

Technical Analysis:
• Entry Price: {ENTRY_PRICE}
• Exit Price: {EXIT_PRICE}
• RSI at Entry: {RSI_ENTRY}
• RSI at Exit: {RSI_EXIT}
• Volume Change: {VOLUME_CHANGE}%
• Sentiment Shift: {SENTIMENT_SHIFT}

Performance Metrics:
• Profit/Loss: {PNL}
• Duration: {DURATION}
• Market Volatility: {VOLATILITY}

Improvement Suggestions:
{SUGGESTIONS}
"""


# =============================================================================
# Market analysis
# =============================================================================

def analyze_volume(candles: list[Candle], period: int = 20) -> VolumeData:
    """Compare the newest volume against the mean of the newest ``period`` candles."""
    if not candles:
        return VolumeData()

    current = candles[0].volume
    volumes = np.array([c.volume for c in candles[:period]], dtype=np.float64)
    average = float(volumes.mean())
    ratio = current / (average or 1)

    if ratio > 1.2:
        trend = "increasing"
    elif ratio < 0.8:
        trend = "decreasing"
    else:
        trend = "stable"

    std = float(volumes.std())
    z_score = abs(current - average) / (std or 1)

    return VolumeData(
        current=current,
        average=average,
        ratio=ratio,
        trend=trend,
        anomaly=z_score > 2,
        anomaly_score=min(1.0, z_score / 4),
    )


def _price_clusters(prices: list[float]) -> list[tuple[float, int]]:
    """Group prices within 0.05 % of a running cluster mean, strongest first."""
    clusters: list[list[float]] = []  # [value, strength]
    for price in sorted(prices):
        for cluster in clusters:
            if abs(price - cluster[0]) / cluster[0] < CLUSTER_TOLERANCE:
                cluster[0] = (cluster[0] * cluster[1] + price) / (cluster[1] + 1)
                cluster[1] += 1
                break
        else:
            clusters.append([price, 1])

    # stable sort keeps the lowest price first among equal strengths
    clusters.sort(key=lambda c: c[1], reverse=True)
    return [(value, int(strength)) for value, strength in clusters]


def support_resistance(candles: list[Candle]) -> Levels:
    """Strongest low/high clusters of the newest 20 candles."""
    if len(candles) < MIN_LEVEL_CANDLES:
        last = candles[0].close if candles else 0.0
        return Levels(support=last * 0.995, resistance=last * 1.005)

    recent = candles[:MIN_LEVEL_CANDLES]
    lows = [c.low for c in recent]
    highs = [c.high for c in recent]
    support_clusters = _price_clusters(lows)
    resistance_clusters = _price_clusters(highs)

    return Levels(
        support=support_clusters[0][0] if support_clusters else min(lows),
        resistance=resistance_clusters[0][0] if resistance_clusters else max(highs),
    )


def describe_volatility(value: float) -> str:
    if value < 0.2:
        return "Very low"
    if value < 0.5:
        return "Low"
    if value < 0.8:
        return "Below average"
    if value < 1.2:
        return "Average"
    if value < 1.8:
        return "Above average"
    if value < 2.5:
        return "High"
    return "Very high"


def measure_volatility(candles: list[Candle]) -> Volatility:
    """19-interval ATR over the newest 20 candles, as a percentage of price."""
    if len(candles) < MIN_LEVEL_CANDLES:
        return Volatility(value=0.0, description="Unknown (insufficient data)", atr=0.0)

    total = 0.0
    for i in range(1, MIN_LEVEL_CANDLES):
        high, low = candles[i].high, candles[i].low
        prev_close = candles[i - 1].close
        total += max(high - low, abs(high - prev_close), abs(low - prev_close))

    atr = total / (MIN_LEVEL_CANDLES - 1)
    value = atr / candles[0].close * 100
    return Volatility(value=value, description=describe_volatility(value), atr=atr)


def technical_snapshot(candles: list[Candle], rsi_period: int = 14) -> OTCTechnicals:
    """RSI (Wilder), MACD, EMA9, EMA21 and SMA50 of the newest candle."""
    if len(candles) < MIN_INDICATOR_CANDLES:
        logger.warning(
            "Insufficient data to calculate technical indicators, only %d data points available",
            len(candles),
        )
        last = candles[0].close if candles else 0.0
        return OTCTechnicals(rsi=50.0, macd=MACDValues(), ema9=last, ema21=last, sma50=last)

    closes = [c.close for c in reversed(candles)]
    return OTCTechnicals(
        rsi=rsi_wilder(closes, rsi_period),
        macd=MACDValues(**macd(closes)),
        ema9=latest_ema(closes, 9),
        ema21=latest_ema(closes, 21),
        sma50=latest_sma(closes, 50),
    )


# =============================================================================
# Direction and strength
# =============================================================================

def determine_direction(
    technicals: OTCTechnicals,
    sentiment: Sentiment,
    volume: VolumeData,
    price: float,
    levels: Levels,
    volatility: Volatility,
    config: OTCConfig | None = None,
) -> tuple[str, float, list[str]]:
    """
    Weighted buy/sell scoring.

    Returns:
        Tuple of (direction, strength, reasons); strength is the winning score.
    """
    config = config or OTCConfig()
    w = config.weights
    rsi_cfg = config.rsi
    buy = 0.0
    sell = 0.0
    reasons: list[str] = []

    rsi = technicals.rsi
    if rsi < rsi_cfg.oversold:
        buy += 100 * w.rsi
        reasons.append(f"RSI oversold ({rsi:.2f})")
    elif rsi > rsi_cfg.overbought:
        sell += 100 * w.rsi
        reasons.append(f"RSI overbought ({rsi:.2f})")
    elif rsi < 40:
        buy += 50 * w.rsi
        reasons.append(f"RSI approaching oversold ({rsi:.2f})")
    elif rsi > 60:
        sell += 50 * w.rsi
        reasons.append(f"RSI approaching overbought ({rsi:.2f})")

    hist = technicals.macd.histogram
    if hist > 0 and hist > technicals.macd.signal:
        buy += 100 * w.macd
        reasons.append("MACD histogram positive and increasing")
    elif hist < 0 and hist < technicals.macd.signal:
        sell += 100 * w.macd
        reasons.append("MACD histogram negative and decreasing")
    elif hist > 0:
        buy += 50 * w.macd
        reasons.append("MACD histogram positive")
    elif hist < 0:
        sell += 50 * w.macd
        reasons.append("MACD histogram negative")

    if technicals.ema9 > technicals.ema21:
        buy += 100 * w.ema
        reasons.append("EMA9 above EMA21 (bullish)")
    elif technicals.ema9 < technicals.ema21:
        sell += 100 * w.ema
        reasons.append("EMA9 below EMA21 (bearish)")

    if price > technicals.sma50:
        buy += 100 * w.sma
        reasons.append("Price above SMA50 (bullish trend)")
    elif price < technicals.sma50:
        sell += 100 * w.sma
        reasons.append("Price below SMA50 (bearish trend)")

    if volume.ratio > 1.2 and volume.trend == "increasing":
        if buy > sell:
            buy += 100 * w.volume
            reasons.append(f"Increasing volume ({volume.ratio:.2f}x avg) confirms bullish momentum")
        elif sell > buy:
            sell += 100 * w.volume
            reasons.append(f"Increasing volume ({volume.ratio:.2f}x avg) confirms bearish momentum")

    if volume.anomaly:
        if buy > sell:
            buy += 50 * w.volume * volume.anomaly_score
            reasons.append(
                f"Anomalous volume spike ({volume.anomaly_score:.2f} score) suggests strong buying interest"
            )
        elif sell > buy:
            sell += 50 * w.volume * volume.anomaly_score
            reasons.append(
                f"Anomalous volume spike ({volume.anomaly_score:.2f} score) suggests strong selling pressure"
            )

    if sentiment.score > 0.1:
        buy += 100 * w.sentiment
        reasons.append(f"Positive market sentiment ({sentiment.score:.2f})")
        if sentiment.keywords:
            reasons.append(f"Positive keywords: {', '.join(sentiment.keywords[:3])}")
    elif sentiment.score < -0.1:
        sell += 100 * w.sentiment
        reasons.append(f"Negative market sentiment ({sentiment.score:.2f})")
        if sentiment.keywords:
            reasons.append(f"Negative keywords: {', '.join(sentiment.keywords[:3])}")

    to_support = (price - levels.support) / price
    to_resistance = (levels.resistance - price) / price
    if to_support < LEVEL_PROXIMITY:
        buy += 80 * w.sma
        reasons.append(f"Price at support level ({levels.support:.5f}, potential reversal)")
    elif to_resistance < LEVEL_PROXIMITY:
        sell += 80 * w.sma
        reasons.append(f"Price at resistance level ({levels.resistance:.5f}, potential reversal)")

    if volatility.value > 1.5:
        factor = 1 + (volatility.value - 1.5) * 0.1
        buy *= factor
        sell *= factor
        reasons.append(f"High volatility ({volatility.value:.2f}%) amplifies signal strength")
    elif volatility.value < 0.5:
        buy *= 0.9
        sell *= 0.9
        reasons.append(f"Low volatility ({volatility.value:.2f}%) reduces signal reliability")

    direction = "BUY" if buy > sell else "SELL"
    return direction, max(buy, sell), reasons


def asset_strength(volume_ratio: float, direction: str) -> str:
    side = "bullish" if direction == "BUY" else "bearish"
    if volume_ratio > 1.5:
        return f"Strong {side}"
    if volume_ratio > 1.2:
        return f"Moderately {side}"
    if volume_ratio < 0.8:
        return "Weak"
    return "Neutral"


def describe_sentiment(score: float) -> str:
    if score > 0.3:
        return "Strong upward pressure"
    if score > 0.1:
        return "Moderate upward pressure"
    if score < -0.3:
        return "Strong downward pressure"
    if score < -0.1:
        return "Moderate downward pressure"
    return "Neutral pressure"


def entry_time_for(now: datetime, entry_second: int = 30) -> datetime:
    """Second ``entry_second`` of the current minute, or of the next one once it has passed."""
    entry = now.replace(second=entry_second, microsecond=0)
    if now.second > entry_second:
        entry += timedelta(minutes=1)
    return entry


def _pair_base(pair: str) -> str:
    return pair.removesuffix(" OTC")


def format_signal_message(
    pair: str,
    direction: str,
    price: float,
    timestamp: datetime,
    entry_time: datetime,
    technicals: OTCTechnicals,
    volatility: str,
    asset_strength_text: str,
    volume_metric: str,
    sentiment: str,
    levels: Levels,
    strength: float,
    market_conditions: str,
) -> str:
    values = {
        "PAIR": _pair_base(pair),
        "DIRECTION": direction,
        "ARROW": "▲" if direction == "BUY" else "▼",
        "VOLATILITY": volatility,
        "ASSET_STRENGTH": asset_strength_text,
        "VOLUME_METRIC": volume_metric,
        "SENTIMENT": sentiment,
        "PRICE": f"{price:.5f}",
        "RESISTANCE": f"{levels.resistance:.5f}",
        "SUPPORT": f"{levels.support:.5f}",
        "RSI": f"{technicals.rsi:.2f}",
        "MACD": f"{technicals.macd.macd:.5f} (H: {technicals.macd.histogram:.5f})",
        "EMA9": f"{technicals.ema9:.5f}",
        "EMA21": f"{technicals.ema21:.5f}",
        "SMA50": f"{technicals.sma50:.5f}",
        "STRENGTH": f"{strength:.0f}",
        "MARKET_CONDITIONS": market_conditions,
        "SIGNAL_TIME": timestamp.astimezone(timezone.utc).strftime("%H.%M.%S"),
        "ENTRY_TIME": entry_time.astimezone(timezone.utc).strftime("%H.%M"),
    }
    message = SIGNAL_MESSAGE_FORMAT
    for key, value in values.items():
        message = message.replace(f"{{{key}}}", value)
    return message


def build_otc_signal(
    pair: str,
    candles: list[Candle],
    now: datetime | None = None,
    config: OTCConfig | None = None,
    sentiment: Sentiment | None = None,
) -> OTCSignal | None:
    """
    Analyse newest-first ``candles`` and build a signal.

    Returns None when there are no candles or the strength is below the
    configured minimum.
    """
    config = config or OTCConfig()
    now = now or datetime.now(timezone.utc)
    sentiment = sentiment or Sentiment()

    if not candles:
        logger.warning("No market data available for %s", pair)
        return None

    price = candles[0].close
    technicals = technical_snapshot(candles, config.rsi.period)
    volume = analyze_volume(candles, config.volume_period)
    levels = support_resistance(candles)
    volatility = measure_volatility(candles)

    direction, strength, reasons = determine_direction(
        technicals, sentiment, volume, price, levels, volatility, config
    )

    if strength < config.strength.minimum:
        logger.debug(
            "Signal strength %.0f for %s is below threshold %.0f",
            strength, pair, config.strength.minimum,
        )
        return None

    strength_text = asset_strength(volume.ratio, direction)
    sentiment_text = describe_sentiment(sentiment.score)
    volume_metric = (
        f"{volume.current:,.0f} ({volume.ratio:.2f}x avg{', anomalous' if volume.anomaly else ''})"
    )
    entry_time = entry_time_for(now, config.timing.entry_at_second)
    conditions = "; ".join(reasons)

    return OTCSignal(
        pair=pair,
        direction=direction,
        price=price,
        timestamp=now,
        entry_time=entry_time,
        strength=strength,
        technical_indicators=technicals,
        market_info=MarketInfo(
            volatility=volatility,
            asset_strength=strength_text,
            volume_metric=volume_metric,
            volume_data=volume,
            sentiment=Sentiment(
                score=sentiment.score,
                description=sentiment_text,
                keywords=sentiment.keywords,
            ),
        ),
        levels=levels,
        market_conditions=conditions,
        reasons=reasons,
        message=format_signal_message(
            pair, direction, price, now, entry_time, technicals,
            volatility.description, strength_text, volume_metric, sentiment_text,
            levels, strength, conditions,
        ),
    )


# =============================================================================
# Trade evaluation
# =============================================================================

def _shift_label(shift: float) -> str:
    return f"{'positive' if shift > 0 else 'negative'} shift of {abs(shift):.2f}"


def format_trade_result_message(
    result: str,
    reason: str,
    entry_price: float,
    exit_price: float,
    rsi_entry: float,
    rsi_exit: float,
    volume_change: float,
    sentiment_shift: float,
    pnl: float,
    pnl_percentage: float,
    duration: int,
    volatility: str,
    suggestions: list[str],
) -> str:
    values = {
        "RESULT": result,
        "REASON": reason,
        "ENTRY_PRICE": f"{entry_price:.5f}",
        "EXIT_PRICE": f"{exit_price:.5f}",
        "RSI_ENTRY": f"{rsi_entry:.2f}",
        "RSI_EXIT": f"{rsi_exit:.2f}",
        "VOLUME_CHANGE": f"{volume_change:.2f}",
        "SENTIMENT_SHIFT": f"{sentiment_shift:.2f}",
        "PNL": f"{'+' if pnl > 0 else ''}{pnl:.5f} ({pnl_percentage:.2f}%)",
        "DURATION": f"{duration} seconds",
        "VOLATILITY": volatility,
        "SUGGESTIONS": "\n".join(f"• {s}" for s in suggestions),
    }
    message = TRADE_RESULT_FORMAT
    for key, value in values.items():
        message = message.replace(f"{{{key}}}", value)
    return message


def evaluate_trade(
    signal: OTCSignal,
    candles: list[Candle],
    now: datetime | None = None,
    config: OTCConfig | None = None,
    sentiment: Sentiment | None = None,
) -> OTCTradeResult | None:
    """
    Score a signal against fresh newest-first candles.

    Returns None when no candles are available.
    """
    config = config or OTCConfig()
    now = now or datetime.now(timezone.utc)
    sentiment = sentiment or Sentiment()

    if not candles:
        logger.warning("No market data available for %s to evaluate trade result", signal.pair)
        return None

    exit_price = candles[0].close
    entry_price = signal.price
    technicals = technical_snapshot(candles, config.rsi.period)
    volume = analyze_volume(candles, config.volume_period)

    pnl = exit_price - entry_price if signal.direction == "BUY" else entry_price - exit_price
    pnl_percentage = pnl / entry_price * 100
    result = "Win" if pnl > 0 else "Lose"
    duration = round((now - signal.entry_time).total_seconds())

    entry_volume = signal.market_info.volume_data.current
    volume_change = (volume.current - entry_volume) / entry_volume * 100 if entry_volume else 0.0
    sentiment_shift = sentiment.score - signal.market_info.sentiment.score

    entry_rsi = signal.technical_indicators.rsi
    side = signal.direction
    suggestions: list[str] = []

    if result == "Win":
        if side == "BUY" and technicals.rsi > entry_rsi:
            reason = "RSI continued to strengthen, confirming bullish momentum"
        elif side == "SELL" and technicals.rsi < entry_rsi:
            reason = "RSI continued to weaken, confirming bearish momentum"
        elif abs(volume_change) > 20:
            reason = (
                f"Significant volume increase ({volume_change:.1f}%) supported the "
                f"{side.lower()} signal"
            )
        elif abs(sentiment_shift) > 0.2:
            reason = f"Market sentiment shifted strongly ({_shift_label(sentiment_shift)})"
        else:
            reason = f"Technical analysis correctly identified {side.lower()} opportunity"

        suggestions.append("Continue using similar entry criteria for this pair")
        suggestions.append(f"{side} signals with RSI at {entry_rsi:.1f} are effective")
    else:
        if (side == "BUY" and technicals.rsi < entry_rsi) or (side == "SELL" and technicals.rsi > entry_rsi):
            reason = "RSI reversed unexpectedly, momentum failed to continue"
            suggestions.append(f"Consider waiting for stronger RSI confirmation before {side} signals")
        elif volume_change < -20:
            reason = (
                f"Volume dropped significantly ({volume_change:.1f}%), "
                "insufficient to sustain the move"
            )
            suggestions.append("Add volume confirmation requirements to signal generation")
        elif abs(sentiment_shift) > 0.2:
            reason = f"Rapid sentiment shift ({_shift_label(sentiment_shift)})"
            suggestions.append("Consider adding sentiment stability checks to signal criteria")
        else:
            reason = "Market conditions changed rapidly after signal generation"
            suggestions.append("Consider shorter trade duration for this pair")

        suggestions.append(
            f"Avoid {side} signals when volatility is "
            f"{signal.market_info.volatility.description.lower()}"
        )

    return OTCTradeResult(
        signal=signal,
        result=result,
        reason=reason,
        entry_price=entry_price,
        exit_price=exit_price,
        pnl=pnl,
        pnl_percentage=pnl_percentage,
        duration=duration,
        technical_at_exit=TechnicalAtExit(rsi=technicals.rsi, macd=technicals.macd),
        volume_change=volume_change,
        sentiment_shift=sentiment_shift,
        suggestions=suggestions,
        message=format_trade_result_message(
            result, reason, entry_price, exit_price, entry_rsi, technicals.rsi,
            volume_change, sentiment_shift, pnl, pnl_percentage, duration,
            signal.market_info.volatility.description, suggestions,
        ),
    )
