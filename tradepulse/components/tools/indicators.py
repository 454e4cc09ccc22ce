"""
Technical indicator utilities: SMA, EMA, RSI, MACD, Bollinger Bands.

Pure functions over a close-price sequence ordered oldest -> newest. No I/O, no rounding;
callers format for display. A series shorter than the requested window raises
IndicatorComputationError instead of returning a placeholder value.

Classes:
    MacdValues, MovingAverages, BollingerBands, Indicators   Frozen result types

Functions:
    sma(values, period) -> float
        Mean of the last `period` values
    ema_series(values, period) -> list[float]
        EMA seeded with the SMA of the first `period` values; one value per sample from index period-1
    ema(values, period) -> float
        Last value of ema_series
    rsi(closes, period=14) -> float
        Average gain / average loss over the last `period` deltas; 0..100
        (no losses -> 100, flat series -> 50)
    macd(closes, fast=12, slow=26, signal=9) -> MacdValues
        value = EMA(fast) - EMA(slow); signal = EMA(signal) of the value series; histogram = value - signal
    bollinger_bands(closes, period=20, num_std=2.0) -> BollingerBands
        middle = SMA(period); upper/lower = middle +/- num_std * population stddev of the same window
    compute_indicators(closes) -> Indicators
        RSI(14), MACD(12, 26, 9), SMA20, SMA50, EMA12, EMA26, BB(20, 2); needs at least 50 closes
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Sequence

from ..errors import IndicatorComputationError

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
BB_PERIOD = 20
BB_STD = 2.0


@dataclass(frozen=True)
class MacdValues:
    value: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class MovingAverages:
    sma20: float
    sma50: float
    ema12: float
    ema26: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class Indicators:
    """Indicator snapshot derived from one history series."""
    rsi: float
    macd: MacdValues
    moving_averages: MovingAverages
    bollinger_bands: BollingerBands

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Indicators":
        return cls(
            rsi=float(data["rsi"]),
            macd=MacdValues(**data["macd"]),
            moving_averages=MovingAverages(**data["moving_averages"]),
            bollinger_bands=BollingerBands(**data["bollinger_bands"]),
        )


def _require(values: Sequence[float], needed: int, what: str) -> None:
    if needed <= 0:
        raise ValueError(f"{what}: period must be positive")
    if len(values) < needed:
        raise IndicatorComputationError(
            f"{what} needs at least {needed} samples, got {len(values)}"
        )


def sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last `period` values."""
    _require(values, period, f"SMA({period})")
    window = values[-period:]
    return sum(window) / period


def ema_series(values: Sequence[float], period: int) -> list[float]:
    """EMA with smoothing 2/(period+1), seeded from the SMA of the first `period` values."""
    _require(values, period, f"EMA({period})")
    multiplier = 2 / (period + 1)
    out = [sum(values[:period]) / period]
    for price in values[period:]:
        out.append((price - out[-1]) * multiplier + out[-1])
    return out


def ema(values: Sequence[float], period: int) -> float:
    """Latest EMA value."""
    return ema_series(values, period)[-1]


def rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """
    Relative Strength Index over the last `period` period-over-period changes.

    Conventions:
        avg loss == 0 and avg gain > 0  -> 100
        avg loss == 0 and avg gain == 0 -> 50 (flat series is neutral)
    """
    _require(closes, period + 1, f"RSI({period})")
    window = closes[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for prev, cur in zip(window, window[1:]):
        change = cur - prev
        if change > 0:
            gains += change
        else:
            losses -= change
    avg_gain = gains / period
    avg_loss = losses / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    value = 100 - (100 / (1 + rs))
    return min(100.0, max(0.0, value))


def macd(
    closes: Sequence[float],
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> MacdValues:
    """MACD line, signal line (EMA of the MACD line) and histogram at the latest sample."""
    if fast >= slow:
        raise ValueError("MACD: fast period must be shorter than slow period")
    _require(closes, slow + signal - 1, f"MACD({fast},{slow},{signal})")
    ema_fast = ema_series(closes, fast)
    ema_slow = ema_series(closes, slow)
    # Align on the samples where both EMAs exist
    ema_fast = ema_fast[-len(ema_slow):]
    macd_line = [f - s for f, s in zip(ema_fast, ema_slow)]
    signal_line = ema_series(macd_line, signal)
    value = macd_line[-1]
    signal_value = signal_line[-1]
    return MacdValues(value=value, signal=signal_value, histogram=value - signal_value)


def bollinger_bands(
    closes: Sequence[float],
    period: int = BB_PERIOD,
    num_std: float = BB_STD,
) -> BollingerBands:
    """Bollinger Bands over the trailing `period` window (population standard deviation)."""
    middle = sma(closes, period)
    window = closes[-period:]
    variance = sum((x - middle) ** 2 for x in window) / period
    std = math.sqrt(variance)
    return BollingerBands(
        upper=middle + num_std * std,
        middle=middle,
        lower=middle - num_std * std,
    )


def compute_indicators(closes: Sequence[float]) -> Indicators:
    """
    Compute the full indicator snapshot used by the signal scorer.

    Args:
        closes: Close prices, oldest first (at least 50)

    Returns:
        Indicators

    Raises:
        IndicatorComputationError: Fewer closes than the longest window (SMA50)
    """
    closes = list(closes)
    return Indicators(
        rsi=rsi(closes, RSI_PERIOD),
        macd=macd(closes, MACD_FAST, MACD_SLOW, MACD_SIGNAL),
        moving_averages=MovingAverages(
            sma20=sma(closes, 20),
            sma50=sma(closes, 50),
            ema12=ema(closes, MACD_FAST),
            ema26=ema(closes, MACD_SLOW),
        ),
        bollinger_bands=bollinger_bands(closes, BB_PERIOD, BB_STD),
    )
