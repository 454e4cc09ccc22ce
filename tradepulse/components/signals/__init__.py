"""
Trading signals: model, scorer and generator.

Scoring is pure (quote + indicators -> assessment); the generator adds market data access,
id and timestamp. Storage lives in signal_store.py (import it from there; it depends on the
workflow step-log models).

Classes:
    TradingSignal, SignalAction, RiskLevel, SignalAssessment, DailyPerformance   See signal_models.py
    SignalGenerator   See generator.py

Functions:
    score(quote, indicators) -> SignalAssessment   See scorer.py
"""

from .signal_models import (
    TradingSignal,
    SignalAction,
    RiskLevel,
    SignalAssessment,
    DailyPerformance,
)
from .scorer import score
from .generator import SignalGenerator

__all__ = [
    "TradingSignal",
    "SignalAction",
    "RiskLevel",
    "SignalAssessment",
    "DailyPerformance",
    "score",
    "SignalGenerator",
]
