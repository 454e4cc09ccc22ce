"""
TradePulse control: clock and id generation.

Classes:
    Clock, ManualClock   See clock.py
"""

from .clock import (
    Clock,
    ManualClock,
    get_clock,
    set_clock,
    get_current_dt,
    get_current_time_iso,
    make_signal_id,
    make_briefing_id,
)

__all__ = [
    "Clock",
    "ManualClock",
    "get_clock",
    "set_clock",
    "get_current_dt",
    "get_current_time_iso",
    "make_signal_id",
    "make_briefing_id",
]
