"""Rule-based market analysis that simulates an AI assessment."""

from typing import Sequence

from core.models.signal import (
    AIAnalysis,
    Direction,
    IndicatorSnapshot,
    MultiTimeframeConfirmation,
    RiskLevel,
    Trend,
)

INSUFFICIENT_EVIDENCE = "Insufficient evidence for a strong trading signal"


def simulate_ai_analysis(
    symbol: str,
    prices: Sequence[float],
    indicators: IndicatorSnapshot,
    multi_timeframe: MultiTimeframeConfirmation | None = None,
) -> AIAnalysis:
    """
    Score indicator evidence starting from a neutral 50.

    Confidence below 40 after clamping falls back to NEUTRAL. Stop loss and
    take profit are scaled by the relative Bollinger Band width.
    """
    last_price = prices[-1]
    bands = indicators.bollinger_bands
    hist = indicators.macd.histogram
    signal = Direction.NEUTRAL
    confidence = 50
    reasons: list[str] = []
    risk = RiskLevel.MEDIUM

    if indicators.rsi < 30:
        signal = Direction.BUY
        confidence += 15
        reasons.append("RSI indicates oversold conditions (< 30)")
        risk = RiskLevel.LOW
    elif indicators.rsi > 70:
        signal = Direction.SELL
        confidence += 15
        reasons.append("RSI indicates overbought conditions (> 70)")
        risk = RiskLevel.LOW

    if hist > 0 and hist > indicators.macd.signal:
        if signal == Direction.BUY:
            confidence += 10
            reasons.append("MACD histogram is positive and increasing, confirming bullish momentum")
        elif signal == Direction.NEUTRAL:
            signal = Direction.BUY
            confidence += 10
            reasons.append("MACD histogram is positive, indicating bullish momentum")
    elif hist < 0 and hist < indicators.macd.signal:
        if signal == Direction.SELL:
            confidence += 10
            reasons.append("MACD histogram is negative and decreasing, confirming bearish momentum")
        elif signal == Direction.NEUTRAL:
            signal = Direction.SELL
            confidence += 10
            reasons.append("MACD histogram is negative, indicating bearish momentum")

    if last_price > indicators.ema50:
        if signal == Direction.BUY:
            confidence += 10
            reasons.append("Price is above EMA50, confirming uptrend")
        elif signal == Direction.SELL:
            confidence -= 5
            risk = RiskLevel.MEDIUM
        else:
            signal = Direction.BUY
            confidence += 5
            reasons.append("Price is above EMA50, suggesting uptrend")
    elif last_price < indicators.ema50:
        if signal == Direction.SELL:
            confidence += 10
            reasons.append("Price is below EMA50, confirming downtrend")
        elif signal == Direction.BUY:
            confidence -= 5
            risk = RiskLevel.MEDIUM
        else:
            signal = Direction.SELL
            confidence += 5
            reasons.append("Price is below EMA50, suggesting downtrend")

    if last_price < bands.lower:
        if signal == Direction.BUY:
            confidence += 15
            reasons.append("Price is below lower Bollinger Band, indicating potential reversal")
        elif signal == Direction.NEUTRAL:
            signal = Direction.BUY
            confidence += 15
            reasons.append("Price is below lower Bollinger Band, suggesting oversold conditions")
        else:
            confidence -= 10
            risk = RiskLevel.HIGH
    elif last_price > bands.upper:
        if signal == Direction.SELL:
            confidence += 15
            reasons.append("Price is above upper Bollinger Band, indicating potential reversal")
        elif signal == Direction.NEUTRAL:
            signal = Direction.SELL
            confidence += 15
            reasons.append("Price is above upper Bollinger Band, suggesting overbought conditions")
        else:
            confidence -= 10
            risk = RiskLevel.HIGH

    volume = indicators.volume_analysis
    if volume is not None:
        if volume.volume_strength > 70:
            confidence += 5
            reasons.append(
                f"Strong volume ({volume.volume_strength:.0f}) supports the current price movement"
            )
        if volume.price_volume_correlation > 0.7 and signal == Direction.BUY:
            confidence += 5
            reasons.append("High positive price-volume correlation confirms bullish momentum")
        elif volume.price_volume_correlation < -0.7 and signal == Direction.SELL:
            confidence += 5
            reasons.append("High negative price-volume correlation confirms bearish momentum")

    divergence = indicators.divergence
    if divergence is not None:
        if divergence.bullish_divergence and signal != Direction.SELL:
            signal = Direction.BUY
            confidence += 15
            reasons.append("Bullish RSI divergence detected, indicating potential upward reversal")
            risk = RiskLevel.LOW
        elif divergence.bearish_divergence and signal != Direction.BUY:
            signal = Direction.SELL
            confidence += 15
            reasons.append("Bearish RSI divergence detected, indicating potential downward reversal")
            risk = RiskLevel.LOW

    if multi_timeframe is not None:
        bullish = multi_timeframe.count(Trend.BULLISH)
        bearish = multi_timeframe.count(Trend.BEARISH)
        if bullish >= 2 and signal == Direction.BUY:
            confidence += 15
            reasons.append(f"Buy signal confirmed on {bullish} higher timeframes")
        elif bearish >= 2 and signal == Direction.SELL:
            confidence += 15
            reasons.append(f"Sell signal confirmed on {bearish} higher timeframes")
        elif bullish >= 2:
            confidence -= 10
            risk = RiskLevel.HIGH
            reasons.append("Warning: Signal contradicts bullish trend on higher timeframes")
        elif bearish >= 2:
            confidence -= 10
            risk = RiskLevel.HIGH
            reasons.append("Warning: Signal contradicts bearish trend on higher timeframes")

    confidence = max(0, min(100, confidence))

    if confidence < 40:
        signal = Direction.NEUTRAL
        reasons = [INSUFFICIENT_EVIDENCE]
        risk = RiskLevel.MEDIUM

    volatility = abs(bands.upper - bands.lower) / bands.middle if bands.middle else 0.0
    stop_mult = 1.5 * (1 + volatility)
    tp_mult = 2.5 * (1 + volatility * 0.5)

    if signal == Direction.BUY:
        stop_loss = last_price * (1 - stop_mult * 0.01)
        take_profit = last_price * (1 + tp_mult * 0.01)
    elif signal == Direction.SELL:
        stop_loss = last_price * (1 + stop_mult * 0.01)
        take_profit = last_price * (1 - tp_mult * 0.01)
    else:
        stop_loss = last_price * 0.99
        take_profit = last_price * 1.01

    lead = reasons[0].lower() if reasons else "the available indicators"
    if signal == Direction.BUY:
        analysis = (
            f"{symbol} is showing bullish momentum with {confidence}% confidence. "
            f"The combination of {lead} provides a favorable buying opportunity. "
            f"Risk is considered {risk.value.lower()} based on current market conditions."
        )
    elif signal == Direction.SELL:
        analysis = (
            f"{symbol} is displaying bearish momentum with {confidence}% confidence. "
            f"The combination of {lead} suggests a selling opportunity. "
            f"Risk is assessed as {risk.value.lower()} in the current market environment."
        )
    else:
        analysis = (
            f"{symbol} is currently in a neutral state with unclear directional bias. "
            "It's advisable to wait for stronger signals before entering a position. "
            "The market shows mixed indicators with no clear trend direction."
        )

    return AIAnalysis(
        signal=signal,
        confidence=confidence,
        reasons=reasons,
        risk_level=risk,
        analysis=analysis,
        stop_loss=stop_loss,
        take_profit=take_profit,
    )
