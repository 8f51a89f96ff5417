"""Tests for technical indicators."""

import math

import pytest

from core.indicators import (
    ema,
    sma,
    true_range,
    latest_ema,
    latest_sma,
    rsi_simple,
    rsi_series,
    rsi_wilder,
    macd_simple,
    macd,
    bollinger_bands,
    volume_strength,
    rsi_divergence,
    average_true_range,
    dynamic_levels,
    stochastic,
    IndicatorCalculator,
)


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_basic(self):
        """Seeded with the SMA, then rises with rising input."""
        values = [float(i) for i in range(1, 11)]  # 1-10
        result = ema(values, 5)

        # First 4 values should be NaN
        assert math.isnan(result[0])
        assert math.isnan(result[3])

        # 5th value should be SMA of first 5 = 3
        assert result[4] == pytest.approx(3.0)

        # 6th = 6 * (2/6) + 3 * (4/6) = 4
        assert result[5] == pytest.approx(4.0)

    def test_ema_insufficient_data(self):
        result = ema([100.0, 101.0, 102.0], 10)

        assert len(result) == 3
        assert all(math.isnan(v) for v in result)

    def test_latest_ema_falls_back_to_last_price(self):
        assert latest_ema([1.0, 2.0, 3.0], 50) == 3.0
        assert latest_ema([], 50) == 0.0


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        values = [float(i) for i in range(1, 11)]
        result = sma(values, 3)

        assert math.isnan(result[0])
        assert math.isnan(result[1])
        assert result[2] == pytest.approx(2.0)
        assert result[3] == pytest.approx(3.0)
        assert result[-1] == pytest.approx(9.0)

    def test_latest_sma(self):
        assert latest_sma([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx(3.5)
        assert latest_sma([5.0], 3) == 5.0


class TestTrueRange:
    """Tests for true range."""

    def test_first_bar_is_high_minus_low(self):
        result = true_range([11.0], [9.0], [10.0])
        assert result == [pytest.approx(2.0)]

    def test_gap_uses_previous_close(self):
        # Gap up: |high - prev_close| = 15 - 10 = 5 beats high - low = 1
        result = true_range([11.0, 15.0], [9.0, 14.0], [10.0, 14.5])
        assert result[1] == pytest.approx(5.0)

    def test_empty(self):
        assert true_range([], [], []) == []

    def test_average_true_range(self):
        highs = [11.0] * 20
        lows = [9.0] * 20
        closes = [10.0] * 20
        assert average_true_range(highs, lows, closes, 14) == pytest.approx(2.0)

    def test_average_true_range_insufficient(self):
        assert average_true_range([1.0], [1.0], [1.0], 14) == 0.001


class TestRSI:
    """Tests for the RSI variants."""

    def test_insufficient_data_is_neutral(self):
        prices = [float(i) for i in range(10)]
        assert rsi_simple(prices, 14) == 50.0
        assert rsi_wilder(prices, 14) == 50.0

    def test_only_gains_is_100(self):
        prices = [float(i) for i in range(30)]
        assert rsi_simple(prices) == 100.0
        assert rsi_wilder(prices) == 100.0

    def test_only_losses_is_0(self):
        prices = [float(30 - i) for i in range(30)]
        assert rsi_simple(prices) == pytest.approx(0.0)
        assert rsi_wilder(prices) == pytest.approx(0.0)

    def test_balanced_moves(self):
        # Alternating +1 / -1: equal gains and losses -> 50
        prices = [10.0 + (i % 2) for i in range(15)]
        assert rsi_simple(prices) == pytest.approx(50.0)

    def test_series_matches_prefixes(self):
        prices = [10.0, 11.0, 10.5, 11.5, 12.0, 11.0, 11.2, 11.8, 12.5, 12.1,
                  12.9, 13.0, 12.4, 12.8, 13.5, 13.1, 13.9, 14.2]
        series = rsi_series(prices, 14)

        assert len(series) == len(prices)
        assert series[:14] == [50.0] * 14
        for end in range(15, len(prices) + 1):
            assert series[end - 1] == pytest.approx(rsi_simple(prices[:end], 14))


class TestMACD:
    """Tests for both MACD flavours."""

    def test_simple_insufficient_data(self):
        assert macd_simple([1.0] * 10) == {"macd": 0.0, "signal": 0.0, "histogram": 0.0}

    def test_simple_signal_is_ninety_percent(self):
        prices = [100.0 + i for i in range(40)]
        result = macd_simple(prices)

        assert result["macd"] > 0
        assert result["signal"] == pytest.approx(result["macd"] * 0.9)
        assert result["histogram"] == pytest.approx(result["macd"] * 0.1)

    def test_full_insufficient_data(self):
        assert macd([1.0] * 34) == {"macd": 0.0, "signal": 0.0, "histogram": 0.0}

    def test_full_flat_series_is_zero(self):
        result = macd([5.0] * 60)
        assert result["macd"] == pytest.approx(0.0)
        assert result["signal"] == pytest.approx(0.0)

    def test_full_histogram(self):
        prices = [100.0 + i * 0.5 for i in range(60)]
        result = macd(prices)
        assert result["histogram"] == pytest.approx(result["macd"] - result["signal"])


class TestBollingerBands:
    """Tests for Bollinger Bands."""

    def test_flat_prices_collapse(self):
        bands = bollinger_bands([10.0] * 25)
        assert bands["upper"] == pytest.approx(10.0)
        assert bands["middle"] == pytest.approx(10.0)
        assert bands["lower"] == pytest.approx(10.0)

    def test_short_history_uses_two_percent(self):
        bands = bollinger_bands([100.0], period=20)
        assert bands == {"upper": pytest.approx(102.0), "middle": 100.0, "lower": pytest.approx(98.0)}

    def test_symmetric_around_middle(self):
        prices = [float(i % 5) for i in range(40)]
        bands = bollinger_bands(prices)
        assert bands["upper"] - bands["middle"] == pytest.approx(bands["middle"] - bands["lower"])


class TestVolumeStrength:
    """Tests for volume strength."""

    def test_insufficient_data(self):
        assert volume_strength([1.0], [1.0]) == {
            "volume_strength": 50.0,
            "price_volume_correlation": 0.0,
        }

    def test_average_volume_is_fifty(self):
        result = volume_strength([100.0] * 20, [1.0] * 20)
        assert result["volume_strength"] == pytest.approx(50.0)

    def test_capped_at_100(self):
        volumes = [1.0] * 19 + [1000.0]
        result = volume_strength(volumes, [1.0] * 20)
        assert result["volume_strength"] == 100.0

    def test_agreeing_moves_are_positive(self):
        prices = [float(i) for i in range(20)]
        volumes = [float(100 + i) for i in range(20)]
        result = volume_strength(volumes, prices)
        assert result["price_volume_correlation"] == pytest.approx(13 / 14)


class TestDivergence:
    """Tests for RSI divergence."""

    def test_new_low_compares_rsi_at_that_low(self):
        # The newest bar is the low, so the RSI at the low is the current RSI
        prices = [10.0, 9.5, 9.0, 9.2, 8.5]
        rsi = [40.0, 35.0, 30.0, 33.0, 35.0]
        assert rsi_divergence(prices, rsi, 5) == {
            "bullish_divergence": False,
            "bearish_divergence": False,
        }

    def test_new_high_compares_rsi_at_that_high(self):
        prices = [10.0, 10.5, 11.0, 10.8, 11.5]
        rsi = [60.0, 65.0, 70.0, 68.0, 66.0]
        assert rsi_divergence(prices, rsi, 5) == {
            "bullish_divergence": False,
            "bearish_divergence": False,
        }

    def test_insufficient_data(self):
        assert rsi_divergence([1.0], [50.0], 5) == {
            "bullish_divergence": False,
            "bearish_divergence": False,
        }


class TestDynamicLevels:
    """Tests for volatility-scaled stop loss / take profit."""

    def test_buy_levels(self):
        levels = dynamic_levels(1.0, 0.0, "BUY", 0.01)
        assert levels["stop_loss"] == pytest.approx(0.985)
        assert levels["take_profit"] == pytest.approx(1.025)
        assert levels["risk_reward_ratio"] == pytest.approx(2.5 / 1.5)

    def test_sell_levels_mirror(self):
        levels = dynamic_levels(1.0, 0.0, "SELL", 0.01)
        assert levels["stop_loss"] == pytest.approx(1.015)
        assert levels["take_profit"] == pytest.approx(0.975)

    def test_zero_atr_has_zero_ratio(self):
        assert dynamic_levels(1.0, 50.0, "BUY", 0.0)["risk_reward_ratio"] == 0.0


class TestStochastic:
    """Tests for stochastic %K."""

    def test_close_at_high(self):
        highs = [float(i + 1) for i in range(14)]
        lows = [float(i) for i in range(14)]
        closes = [float(i + 1) for i in range(14)]
        assert stochastic(highs, lows, closes)["k"] == pytest.approx(100.0)

    def test_flat_range_is_neutral(self):
        assert stochastic([1.0] * 14, [1.0] * 14, [1.0] * 14) == {"k": 50.0, "d": 50.0}


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator class."""

    def test_calculate_latest(self):
        prices = [1.1 + 0.001 * ((i * 7) % 11) for i in range(100)]
        highs = [p * 1.001 for p in prices]
        lows = [p * 0.999 for p in prices]
        volumes = [1000.0 + (i % 5) * 10 for i in range(100)]

        result = IndicatorCalculator().calculate_latest(prices, highs, lows, volumes)

        assert set(result) == {
            "rsi", "macd", "ema50", "bollinger_bands",
            "volume_analysis", "divergence", "atr",
        }
        assert 0 <= result["rsi"] <= 100
        assert result["bollinger_bands"]["lower"] <= result["bollinger_bands"]["upper"]
        assert result["atr"] > 0

    def test_calculate_latest_insufficient_data(self):
        result = IndicatorCalculator().calculate_latest([1.0], [1.0], [1.0], [1.0])

        assert result["rsi"] == 50.0
        assert result["macd"]["macd"] == 0.0
        assert result["ema50"] == 1.0
        assert result["atr"] == 0.001
