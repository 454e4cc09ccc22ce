"""
TradePulse briefing: plain-text briefings over trading signals.

Classes:
    Briefing, BriefingType, AlertType, BriefingGenerator   See briefing.py
"""

from .briefing import AlertType, Briefing, BriefingGenerator, BriefingType

__all__ = ["AlertType", "Briefing", "BriefingGenerator", "BriefingType"]
