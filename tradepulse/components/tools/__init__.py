"""
TradePulse tools: technical indicators.

Functions:
    sma, ema, ema_series, rsi, macd, bollinger_bands, compute_indicators   See indicators.py
"""

from .indicators import (
    Indicators,
    MacdValues,
    MovingAverages,
    BollingerBands,
    sma,
    ema,
    ema_series,
    rsi,
    macd,
    bollinger_bands,
    compute_indicators,
)

__all__ = [
    "Indicators",
    "MacdValues",
    "MovingAverages",
    "BollingerBands",
    "sma",
    "ema",
    "ema_series",
    "rsi",
    "macd",
    "bollinger_bands",
    "compute_indicators",
]
