"""Rule-based technical signal generator.

This module is pure business logic with no I/O dependencies. Randomness
(the simulated higher-timeframe trends) comes from an injected
``numpy.random.Generator``.
"""

import logging

import numpy as np

from core.indicators import IndicatorCalculator, dynamic_levels
from core.models.signal import (
    BollingerBands,
    Direction,
    Divergence,
    IndicatorSnapshot,
    MACDValues,
    MarketData,
    MultiTimeframeConfirmation,
    RiskManagement,
    TradingSignal,
    Trend,
    VolumeAnalysis,
)

logger = logging.getLogger(__name__)

NO_SIGNAL_REASON = "No clear trading signal based on current indicators"
MIN_CONFIDENCE = 50
RISK_PER_TRADE = 0.02

_calculator = IndicatorCalculator()


def _random_trend(rng: np.random.Generator) -> Trend:
    if rng.random() > 0.6:
        return Trend.BULLISH
    if rng.random() > 0.3:
        return Trend.BEARISH
    return Trend.NEUTRAL


def simulate_multi_timeframe(rng: np.random.Generator) -> MultiTimeframeConfirmation:
    """Simulated m5/m15/m30 trends; ``confirmed`` is true 70 % of the time."""
    return MultiTimeframeConfirmation(
        m5_trend=_random_trend(rng),
        m15_trend=_random_trend(rng),
        m30_trend=_random_trend(rng),
        confirmed=bool(rng.random() > 0.3),
    )


def build_snapshot(values: dict) -> IndicatorSnapshot:
    """Wrap raw indicator values into the wire model."""
    volume = values["volume_analysis"]
    divergence = values["divergence"]
    return IndicatorSnapshot(
        rsi=values["rsi"],
        macd=MACDValues(**values["macd"]),
        ema50=values["ema50"],
        bollinger_bands=BollingerBands(**values["bollinger_bands"]),
        volume_analysis=VolumeAnalysis(
            volume_strength=volume["volume_strength"],
            price_volume_correlation=volume["price_volume_correlation"],
        ),
        divergence=Divergence(
            bullish_divergence=divergence["bullish_divergence"],
            bearish_divergence=divergence["bearish_divergence"],
        ),
    )


def generate_signal(
    data: MarketData,
    account_balance: float = 1000.0,
    rng: np.random.Generator | None = None,
) -> TradingSignal:
    """
    Generate a technical signal from a price series.

    Rules, applied in order:
    1. RSI < 30, positive MACD histogram and price above EMA50 -> BUY +30
       (mirrored for SELL).
    2. Price outside a Bollinger Band with volume strength > 60 -> +20.
    3. RSI divergence -> +15.
    4. Two or more agreeing higher timeframes -> +20, otherwise -10.

    A NEUTRAL direction or confidence below 50 yields a NEUTRAL signal with
    zeroed risk management.

    Args:
        data: Market series (oldest first)
        account_balance: Balance used for 2 % risk position sizing
        rng: Random generator for the simulated higher-timeframe trends

    Returns:
        TradingSignal
    """
    rng = rng or np.random.default_rng()
    last_price = data.last_price
    values = _calculator.calculate_latest(data.prices, data.highs, data.lows, data.volumes)
    snapshot = build_snapshot(values)
    mtf = simulate_multi_timeframe(rng)

    rsi = values["rsi"]
    histogram = values["macd"]["histogram"]
    ema50 = values["ema50"]
    bands = values["bollinger_bands"]
    volume_strength = values["volume_analysis"]["volume_strength"]
    divergence = values["divergence"]
    atr = values["atr"]

    direction = Direction.NEUTRAL
    confidence = 0
    reasons: list[str] = []

    if rsi < 30 and histogram > 0 and last_price > ema50:
        direction = Direction.BUY
        confidence += 30
        reasons += [
            "RSI indicates oversold conditions (< 30)",
            "MACD histogram is positive, confirming bullish momentum",
            "Price is above EMA50, confirming uptrend",
        ]
    elif rsi > 70 and histogram < 0 and last_price < ema50:
        direction = Direction.SELL
        confidence += 30
        reasons += [
            "RSI indicates overbought conditions (> 70)",
            "MACD histogram is negative, confirming bearish momentum",
            "Price is below EMA50, confirming downtrend",
        ]

    if last_price < bands["lower"] and volume_strength > 60:
        if direction == Direction.BUY:
            confidence += 20
            reasons.append(
                "Price is below lower Bollinger Band with strong volume, indicating potential reversal"
            )
        elif direction == Direction.NEUTRAL:
            direction = Direction.BUY
            confidence += 20
            reasons.append("Price is below lower Bollinger Band with strong volume")
    elif last_price > bands["upper"] and volume_strength > 60:
        if direction == Direction.SELL:
            confidence += 20
            reasons.append(
                "Price is above upper Bollinger Band with strong volume, indicating potential reversal"
            )
        elif direction == Direction.NEUTRAL:
            direction = Direction.SELL
            confidence += 20
            reasons.append("Price is above upper Bollinger Band with strong volume")

    if divergence["bullish_divergence"]:
        if direction == Direction.BUY:
            confidence += 15
            reasons.append("Bullish RSI divergence confirms buy signal")
        elif direction == Direction.NEUTRAL:
            direction = Direction.BUY
            confidence += 15
            reasons.append("Bullish RSI divergence detected")
    elif divergence["bearish_divergence"]:
        if direction == Direction.SELL:
            confidence += 15
            reasons.append("Bearish RSI divergence confirms sell signal")
        elif direction == Direction.NEUTRAL:
            direction = Direction.SELL
            confidence += 15
            reasons.append("Bearish RSI divergence detected")

    if direction != Direction.NEUTRAL:
        label = "Buy" if direction == Direction.BUY else "Sell"
        agreeing = mtf.count(Trend.BULLISH if direction == Direction.BUY else Trend.BEARISH)
        if agreeing >= 2:
            confidence += 20
            reasons.append(f"{label} signal confirmed on {agreeing} higher timeframes")
        else:
            confidence -= 10
            reasons.append(f"Warning: {label} signal not confirmed on higher timeframes")

    if direction == Direction.NEUTRAL or confidence < MIN_CONFIDENCE:
        return TradingSignal(
            symbol=data.symbol,
            market=data.market,
            timeframe=data.timeframe,
            signal=Direction.NEUTRAL,
            confidence=max(0, min(confidence, 100)),
            reasons=reasons if confidence > 0 else [NO_SIGNAL_REASON],
            indicators=snapshot,
            risk_management=RiskManagement(),
            multi_timeframe_confirmation=mtf,
        )

    volatility = min(100.0, max(0.0, atr * 1000))
    levels = dynamic_levels(last_price, volatility, direction.value, atr)
    risk_per_unit = abs(last_price - levels["stop_loss"])
    position_size = account_balance * RISK_PER_TRADE / risk_per_unit if risk_per_unit else 0.0

    return TradingSignal(
        symbol=data.symbol,
        market=data.market,
        timeframe=data.timeframe,
        signal=direction,
        confidence=min(confidence, 100),
        reasons=reasons,
        indicators=snapshot,
        risk_management=RiskManagement(
            stop_loss=levels["stop_loss"],
            take_profit=levels["take_profit"],
            risk_reward_ratio=levels["risk_reward_ratio"],
            position_size=position_size,
        ),
        multi_timeframe_confirmation=mtf,
    )
