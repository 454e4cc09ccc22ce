"""
Request throttling: minimum interval between outbound requests, shared process-wide.

Classes:
    RequestThrottle   .wait() blocks until min_interval has passed since the previous request

RequestThrottle:
    RequestThrottle(min_interval: float = 2.0, clock: Optional[Clock] = None)
    .wait() -> float   Block (if needed) and mark a request as started; returns seconds waited
    .stats -> dict     (min_interval, total_requests, total_waits, total_wait_time)
    .reset() -> None

Functions:
    get_default_throttle() -> RequestThrottle   Process-wide throttle for the market-data provider
    set_default_throttle(throttle) -> None
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

from ..control.clock import Clock, get_clock

logger = logging.getLogger(__name__)


class RequestThrottle:
    """
    Minimum-interval throttle.

    The lock is held across the wait, so concurrent callers are serialized and each one
    gets its own full interval after the previous request.
    """

    def __init__(self, min_interval: float = 2.0, clock: Optional[Clock] = None):
        """
        Args:
            min_interval: Minimum seconds between two requests
            clock: Time source (default: global clock)
        """
        self.min_interval = min_interval
        self._clock = clock or get_clock()
        self._lock = Lock()
        self._last_request: Optional[float] = None
        self._total_requests = 0
        self._total_waits = 0
        self._total_wait_time = 0.0

    def wait(self) -> float:
        """Block until the interval since the last request has elapsed, then mark a new request."""
        with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock.monotonic() - self._last_request
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug("Rate limiting: waiting %.2fs", waited)
                    self._clock.sleep(waited)
                    self._total_waits += 1
                    self._total_wait_time += waited
            self._last_request = self._clock.monotonic()
            self._total_requests += 1
            return waited

    @property
    def last_request(self) -> Optional[float]:
        """Monotonic time of the last request (None before the first)."""
        with self._lock:
            return self._last_request

    @property
    def stats(self) -> dict[str, Any]:
        """Throttle stats."""
        with self._lock:
            return {
                "min_interval": f"{self.min_interval}s",
                "total_requests": self._total_requests,
                "total_waits": self._total_waits,
                "total_wait_time": f"{self._total_wait_time:.1f}s",
            }

    def reset(self) -> None:
        """Reset throttle."""
        with self._lock:
            self._last_request = None
            self._total_requests = 0
            self._total_waits = 0
            self._total_wait_time = 0.0


_default_throttle: RequestThrottle | None = None


def get_default_throttle() -> RequestThrottle:
    """Get process-wide throttle instance."""
    global _default_throttle
    if _default_throttle is None:
        _default_throttle = RequestThrottle()
    return _default_throttle


def set_default_throttle(throttle: RequestThrottle | None) -> None:
    """Set process-wide throttle (None resets)."""
    global _default_throttle
    _default_throttle = throttle
