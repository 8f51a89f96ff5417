"""Tests for the rule-based AI analysis."""

import pytest

from core.ai_analysis import INSUFFICIENT_EVIDENCE, simulate_ai_analysis
from core.models.signal import (
    BollingerBands,
    Direction,
    Divergence,
    IndicatorSnapshot,
    MACDValues,
    MultiTimeframeConfirmation,
    RiskLevel,
    Trend,
    VolumeAnalysis,
)

INSIDE = BollingerBands(upper=1.05, middle=1.0, lower=0.95)


def snapshot(
    rsi: float = 50.0,
    histogram: float = 0.0,
    signal: float = 0.0,
    ema50: float = 1.0,
    bands: BollingerBands = INSIDE,
    volume: VolumeAnalysis | None = None,
    divergence: Divergence | None = None,
) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi=rsi,
        macd=MACDValues(macd=histogram + signal, signal=signal, histogram=histogram),
        ema50=ema50,
        bollinger_bands=bands,
        volume_analysis=volume,
        divergence=divergence,
    )


def mtf(*trends: Trend) -> MultiTimeframeConfirmation:
    m5, m15, m30 = trends
    return MultiTimeframeConfirmation(m5_trend=m5, m15_trend=m15, m30_trend=m30)


class TestSimulateAIAnalysis:
    """Confidence scoring from a neutral 50."""

    def test_neutral_inputs(self):
        result = simulate_ai_analysis("EUR/USD", [1.0], snapshot())

        assert result.signal == Direction.NEUTRAL
        assert result.confidence == 50
        assert result.reasons == []
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.stop_loss == pytest.approx(0.99)
        assert result.take_profit == pytest.approx(1.01)
        assert result.analysis.startswith("EUR/USD is currently in a neutral state")

    def test_strong_buy_is_clamped(self):
        bands = BollingerBands(upper=1.05, middle=1.03, lower=1.01)
        result = simulate_ai_analysis(
            "EUR/USD", [1.0],
            snapshot(rsi=25, histogram=0.002, signal=0.001, ema50=0.99, bands=bands),
        )

        assert result.signal == Direction.BUY
        assert result.confidence == 100
        assert result.risk_level == RiskLevel.LOW
        assert result.reasons[0] == "RSI indicates oversold conditions (< 30)"
        assert "Price is below lower Bollinger Band, indicating potential reversal" in result.reasons

        volatility = 0.04 / 1.03
        assert result.stop_loss == pytest.approx(1 - 1.5 * (1 + volatility) * 0.01)
        assert result.take_profit == pytest.approx(1 + 2.5 * (1 + volatility * 0.5) * 0.01)

    def test_buy_analysis_text(self):
        result = simulate_ai_analysis("GBP/USD", [1.0], snapshot(rsi=25))

        assert result.analysis.startswith("GBP/USD is showing bullish momentum with 65% confidence.")
        assert "rsi indicates oversold conditions (< 30)" in result.analysis
        assert "Risk is considered low" in result.analysis

    def test_strong_sell(self):
        bands = BollingerBands(upper=0.99, middle=0.97, lower=0.95)
        result = simulate_ai_analysis(
            "EUR/USD", [1.0],
            snapshot(rsi=75, histogram=-0.002, signal=-0.001, ema50=1.01, bands=bands),
            mtf(Trend.BEARISH, Trend.BEARISH, Trend.NEUTRAL),
        )

        assert result.signal == Direction.SELL
        assert result.confidence == 100
        assert result.stop_loss > 1.0 > result.take_profit
        assert "Sell signal confirmed on 2 higher timeframes" in result.reasons
        assert "displaying bearish momentum" in result.analysis

    def test_contradictions_raise_risk(self):
        bands = BollingerBands(upper=0.99, middle=0.97, lower=0.95)
        result = simulate_ai_analysis(
            "EUR/USD", [1.0],
            snapshot(rsi=25, ema50=1.01, bands=bands),
            mtf(Trend.BEARISH, Trend.BEARISH, Trend.NEUTRAL),
        )

        # 50 + 15 (rsi) - 5 (ema) - 10 (band) - 10 (timeframes)
        assert result.signal == Direction.BUY
        assert result.confidence == 40
        assert result.risk_level == RiskLevel.HIGH
        assert result.reasons[-1] == "Warning: Signal contradicts bearish trend on higher timeframes"

    def test_low_confidence_falls_back_to_neutral(self):
        bands = BollingerBands(upper=0.99, middle=0.98, lower=0.97)
        result = simulate_ai_analysis(
            "EUR/USD", [1.0],
            snapshot(histogram=0.002, signal=0.001, ema50=1.1, bands=bands),
            mtf(Trend.BEARISH, Trend.BEARISH, Trend.NEUTRAL),
        )

        # 50 + 10 (macd) - 5 (ema) - 10 (band) - 10 (timeframes) = 35
        assert result.signal == Direction.NEUTRAL
        assert result.confidence == 35
        assert result.reasons == [INSUFFICIENT_EVIDENCE]
        assert result.risk_level == RiskLevel.MEDIUM

    def test_volume_evidence(self):
        volume = VolumeAnalysis(volume_strength=80, price_volume_correlation=0.8)
        result = simulate_ai_analysis("EUR/USD", [1.0], snapshot(rsi=25, volume=volume))

        assert result.confidence == 75
        assert "Strong volume (80) supports the current price movement" in result.reasons
        assert "High positive price-volume correlation confirms bullish momentum" in result.reasons

    def test_bullish_divergence_turns_neutral_into_buy(self):
        result = simulate_ai_analysis(
            "EUR/USD", [1.0], snapshot(divergence=Divergence(bullish_divergence=True)),
        )

        assert result.signal == Direction.BUY
        assert result.confidence == 65
        assert result.risk_level == RiskLevel.LOW

    def test_wire_format(self):
        data = simulate_ai_analysis("EUR/USD", [1.0], snapshot()).model_dump(by_alias=True, mode="json")

        assert data["signal"] == "NEUTRAL"
        assert data["riskLevel"] == "Medium"
        assert "stopLoss" in data
        assert "takeProfit" in data
