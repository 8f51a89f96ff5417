"""Weighted scoring model that stands in for an ML classifier.

The weights are fixed; nothing is trained.
"""

import numpy as np

from core.models.signal import (
    Direction,
    MarketData,
    MLPrediction,
    ModelFeatures,
    MultiTimeframeConfirmation,
    TradingSignal,
    Trend,
)
from core.signal_generator import generate_signal

WEIGHTS = {
    "rsi": 0.15,
    "macd": 0.15,
    "price_to_ema": 0.1,
    "price_to_bollinger_upper": 0.1,
    "price_to_bollinger_lower": 0.1,
    "volume_strength": 0.05,
    "price_volume_correlation": 0.05,
    "bullish_divergence": 0.1,
    "bearish_divergence": 0.1,
    "m5_trend": 0.05,
    "m15_trend": 0.05,
    "m30_trend": 0.1,
}

DECISION_THRESHOLD = 0.6


def _normalize(value: float, low: float, high: float) -> float:
    return (value - low) / (high - low)


def prepare_features(
    last_price: float,
    signal: TradingSignal,
) -> ModelFeatures:
    """Build the model input from a technical signal's indicators."""
    ind = signal.indicators
    mtf: MultiTimeframeConfirmation = signal.multi_timeframe_confirmation
    volume = ind.volume_analysis
    divergence = ind.divergence
    return ModelFeatures(
        rsi=ind.rsi,
        macd_histogram=ind.macd.histogram,
        price_to_ema=last_price / ind.ema50 if ind.ema50 else 1.0,
        price_to_bollinger_upper=last_price / ind.bollinger_bands.upper if ind.bollinger_bands.upper else 1.0,
        price_to_bollinger_lower=last_price / ind.bollinger_bands.lower if ind.bollinger_bands.lower else 1.0,
        volume_strength=volume.volume_strength if volume else 50.0,
        price_volume_correlation=volume.price_volume_correlation if volume else 0.0,
        bullish_divergence=divergence.bullish_divergence if divergence else False,
        bearish_divergence=divergence.bearish_divergence if divergence else False,
        m5_trend=mtf.m5_trend,
        m15_trend=mtf.m15_trend,
        m30_trend=mtf.m30_trend,
    )


def predict_signal(features: ModelFeatures) -> MLPrediction:
    """
    Score buy and sell evidence and pick the side whose share exceeds 60 %.

    Returns:
        MLPrediction with confidence = round(probability * 100)
    """
    w = WEIGHTS
    n_rsi = _normalize(features.rsi, 0, 100)
    n_macd = _normalize(features.macd_histogram, -0.01, 0.01)
    n_ema = _normalize(features.price_to_ema, 0.95, 1.05)
    n_upper = _normalize(features.price_to_bollinger_upper, 0.95, 1.05)
    n_lower = _normalize(features.price_to_bollinger_lower, 0.95, 1.05)
    trends = {
        "m5_trend": features.m5_trend,
        "m15_trend": features.m15_trend,
        "m30_trend": features.m30_trend,
    }

    buy_score = (
        w["rsi"] * (1 - n_rsi)
        + w["macd"] * (n_macd if n_macd > 0.5 else 0)
        + w["price_to_ema"] * (n_ema if n_ema > 0.5 else 0)
        + w["price_to_bollinger_lower"] * (1 - n_lower)
        + w["volume_strength"] * features.volume_strength / 100
        + w["price_volume_correlation"] * max(features.price_volume_correlation, 0)
        + w["bullish_divergence"] * features.bullish_divergence
        + sum(w[name] for name, trend in trends.items() if trend == Trend.BULLISH)
    )

    sell_score = (
        w["rsi"] * n_rsi
        + w["macd"] * (1 - n_macd if n_macd < 0.5 else 0)
        + w["price_to_ema"] * (1 - n_ema if n_ema < 0.5 else 0)
        + w["price_to_bollinger_upper"] * n_upper
        + w["volume_strength"] * features.volume_strength / 100
        + w["price_volume_correlation"] * max(-features.price_volume_correlation, 0)
        + w["bearish_divergence"] * features.bearish_divergence
        + sum(w[name] for name, trend in trends.items() if trend == Trend.BEARISH)
    )

    total = buy_score + sell_score
    buy_probability = buy_score / total if total else 0.5
    sell_probability = sell_score / total if total else 0.5

    if buy_probability > DECISION_THRESHOLD:
        prediction, probability = Direction.BUY, buy_probability
    elif sell_probability > DECISION_THRESHOLD:
        prediction, probability = Direction.SELL, sell_probability
    else:
        prediction, probability = Direction.NEUTRAL, max(buy_probability, sell_probability)

    return MLPrediction(
        prediction=prediction,
        probability=probability,
        confidence=round(probability * 100),
    )


def enhance_signal(
    signal: TradingSignal,
    prediction: MLPrediction,
    last_price: float,
) -> TradingSignal:
    """
    Blend a technical signal with the model prediction.

    Agreement adds 10 confidence (capped at 100). A disagreeing prediction
    that is more than 20 points more confident overrides the direction.
    """
    enhanced = signal.model_copy(deep=True)

    if signal.signal == prediction.prediction:
        enhanced.confidence = min(100, signal.confidence + 10)
        enhanced.reasons.append("AI model confirms signal with high confidence")
    elif prediction.confidence > signal.confidence + 20:
        enhanced.signal = prediction.prediction
        enhanced.confidence = prediction.confidence - 10
        enhanced.reasons = [
            "AI model override: stronger signal detected",
            *(r for r in signal.reasons if "confirmed" not in r),
        ]

    enhanced.price = last_price
    return enhanced


def generate_enhanced_signal(
    data: MarketData,
    account_balance: float = 1000.0,
    rng: np.random.Generator | None = None,
) -> TradingSignal:
    """Technical signal blended with the model prediction."""
    signal = generate_signal(data, account_balance=account_balance, rng=rng)
    prediction = predict_signal(prepare_features(data.last_price, signal))
    return enhance_signal(signal, prediction, data.last_price)
