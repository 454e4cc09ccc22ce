"""
Clock and id control: single place for "now", monotonic time, sleeping and id generation.

Components take a Clock instead of calling datetime.now() / time.sleep() directly, so tests can
drive TTL expiry and throttle waits deterministically.

Classes:
    Clock        Wall clock (UTC), monotonic seconds, sleep
    ManualClock  Clock whose time only moves when advanced or slept on (tests, replay)

Functions:
    get_clock() -> Clock
    set_clock(clock: Optional[Clock]) -> None
    get_current_dt() -> datetime        Current UTC datetime from the global clock
    get_current_time_iso() -> str       Same as ISO string
    make_signal_id(symbol, now) -> str  "signal-{SYMBOL}-{epoch ms}"
    make_briefing_id(kind, now) -> str  "briefing-{kind}-{epoch ms}"
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock:
    """System clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    sleep() advances time instead of blocking and records each wait in .sleeps.
    """

    def __init__(self, start: Optional[datetime] = None, monotonic_start: float = 1000.0):
        self._now = start or datetime(2024, 1, 2, 15, 30, tzinfo=timezone.utc)
        self._mono = monotonic_start
        self._lock = threading.Lock()
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def monotonic(self) -> float:
        with self._lock:
            return self._mono

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._mono += seconds
            self._now = self._now + timedelta(seconds=seconds)

    def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self.sleeps.append(seconds)
        self.advance(seconds)


_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """Get global clock instance."""
    global _clock
    if _clock is None:
        _clock = Clock()
    return _clock


def set_clock(clock: Optional[Clock]) -> None:
    """Set global clock (None resets to system clock)."""
    global _clock
    _clock = clock


def get_current_dt() -> datetime:
    return get_clock().now()


def get_current_time_iso() -> str:
    return get_clock().now().isoformat()


def _epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def make_signal_id(symbol: str, now: datetime) -> str:
    return f"signal-{symbol.upper()}-{_epoch_ms(now)}"


def make_briefing_id(kind: str, now: datetime) -> str:
    return f"briefing-{kind}-{_epoch_ms(now)}"
