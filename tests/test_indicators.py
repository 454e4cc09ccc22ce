"""Tests for technical indicator math."""

import math

import pytest

from tradepulse.components.errors import IndicatorComputationError
from tradepulse.components.tools.indicators import (
    Indicators,
    bollinger_bands,
    compute_indicators,
    ema,
    ema_series,
    macd,
    rsi,
    sma,
)


class TestMovingAverages:
    """SMA / EMA behaviour."""

    def test_sma_uses_last_window(self):
        """SMA(3) of [42,44,43,45,47] averages the last three values."""
        assert sma([42, 44, 43, 45, 47], 3) == 45.0

    def test_sma_short_series_raises(self):
        with pytest.raises(IndicatorComputationError):
            sma([1.0, 2.0], 3)

    def test_sma_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            sma([1.0, 2.0], 0)

    def test_ema_series_seeded_with_sma(self):
        """First EMA value is the SMA of the first period values."""
        assert ema_series([1, 2, 3, 4], 2) == pytest.approx([1.5, 2.5, 3.5])

    def test_ema_is_last_value(self):
        assert ema([1, 2, 3, 4], 2) == pytest.approx(3.5)

    def test_ema_of_constant_series(self):
        assert ema([7.0] * 30, 12) == pytest.approx(7.0)


class TestRsi:
    """RSI conventions."""

    def test_only_gains_is_100(self):
        assert rsi([float(i) for i in range(20)]) == 100.0

    def test_only_losses_is_0(self):
        assert rsi([float(20 - i) for i in range(20)]) == 0.0

    def test_flat_series_is_neutral(self):
        assert rsi([10.0] * 20) == 50.0

    def test_alternating_series_is_balanced(self):
        """Equal gains and losses over the window give 50."""
        closes = [10.0 if i % 2 == 0 else 11.0 for i in range(15)]
        assert rsi(closes) == pytest.approx(50.0)

    def test_uses_only_last_period_changes(self):
        """Old losses outside the window do not count."""
        closes = [float(100 - i) for i in range(30)] + [float(70 + i) for i in range(15)]
        assert rsi(closes) == 100.0

    def test_short_series_raises(self):
        with pytest.raises(IndicatorComputationError):
            rsi([1.0] * 14)

    def test_bounded(self):
        closes = [100 + math.sin(i) * 5 for i in range(40)]
        assert 0.0 <= rsi(closes) <= 100.0


class TestMacd:
    """MACD line, signal and histogram."""

    def test_uptrend_has_positive_histogram(self):
        """Accelerating prices keep the MACD line above its signal line."""
        closes = [100 * 1.02 ** i for i in range(60)]
        result = macd(closes)
        assert result.value > 0
        assert result.histogram > 0
        assert result.histogram == pytest.approx(result.value - result.signal)

    def test_downtrend_has_negative_value(self):
        closes = [100 * 0.98 ** i for i in range(60)]
        assert macd(closes).value < 0

    def test_flat_series_is_zero(self):
        result = macd([50.0] * 40)
        assert result.value == pytest.approx(0.0)
        assert result.signal == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)

    def test_needs_slow_plus_signal_samples(self):
        with pytest.raises(IndicatorComputationError):
            macd([1.0] * 33)
        macd([1.0] * 34)

    def test_fast_must_be_shorter_than_slow(self):
        with pytest.raises(ValueError):
            macd([1.0] * 60, fast=26, slow=12)


class TestBollingerBands:
    """Bands around SMA20."""

    def test_constant_series_collapses(self):
        bands = bollinger_bands([5.0] * 20)
        assert bands.upper == bands.middle == bands.lower == 5.0

    def test_population_stddev(self):
        closes = [float(i) for i in range(1, 21)]
        bands = bollinger_bands(closes)
        std = math.sqrt((20 ** 2 - 1) / 12)
        assert bands.middle == pytest.approx(10.5)
        assert bands.upper == pytest.approx(10.5 + 2 * std)
        assert bands.lower == pytest.approx(10.5 - 2 * std)

    def test_symmetric_around_middle(self):
        closes = [100 + (i % 5) for i in range(30)]
        bands = bollinger_bands(closes)
        assert bands.upper - bands.middle == pytest.approx(bands.middle - bands.lower)


class TestComputeIndicators:
    """Full snapshot."""

    def test_needs_50_closes(self):
        with pytest.raises(IndicatorComputationError):
            compute_indicators([1.0] * 49)

    def test_rising_series(self):
        closes = [100 * 1.01 ** i for i in range(100)]
        ind = compute_indicators(closes)
        assert ind.rsi == 100.0
        assert ind.moving_averages.sma20 > ind.moving_averages.sma50
        assert ind.moving_averages.ema12 > ind.moving_averages.ema26
        assert ind.bollinger_bands.lower < ind.bollinger_bands.middle < ind.bollinger_bands.upper
        assert ind.macd.histogram > 0

    def test_dict_form_restores_snapshot(self):
        ind = compute_indicators([100 + (i % 7) for i in range(60)])
        data = ind.to_dict()
        assert set(data) == {"rsi", "macd", "moving_averages", "bollinger_bands"}
        assert Indicators.from_dict(data) == ind
