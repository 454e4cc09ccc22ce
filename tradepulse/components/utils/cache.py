"""
In-memory TTL cache for market data, with stale reads for provider-outage fallback.

Classes:
    CacheConfig   max_size (default 500), default_ttl (seconds), enabled
    CacheEntry    value, fetched_at, ttl, hits; .age(now), .is_fresh(now)
    TTLCache      LRU eviction; per-entry TTL; expired entries are kept for stale reads

TTLCache methods:
    .get(key: str) -> Optional[Any]          Fresh value only (younger than its TTL)
    .get_stale(key: str) -> Optional[Any]    Any stored value regardless of age
    .set(key: str, value: Any, ttl: Optional[float] = None) -> None
    .delete(key: str) -> bool
    .clear() -> None
    .stats -> dict   (size, hits, misses, stale_hits, hit_rate)

CacheConfig:
    max_size: int = 500
    default_ttl: float = 60.0   (seconds)
    enabled: bool = True
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Optional

from ..control.clock import Clock, get_clock


@dataclass
class CacheConfig:
    """Cache config."""
    max_size: int = 500           # Max entries
    default_ttl: float = 60.0     # Default TTL (seconds), 1 min
    enabled: bool = True


@dataclass
class CacheEntry:
    """Cache entry."""
    value: Any
    fetched_at: float             # Clock.monotonic() at fetch
    ttl: float
    hits: int = 0

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float) -> bool:
        return self.age(now) < self.ttl


class TTLCache:
    """
    TTL cache keyed by string.

    - Thread-safe
    - Entries past their TTL are not served by get() but stay readable via get_stale()
      until evicted (LRU, max_size)
    """

    def __init__(
        self,
        max_size: int = 500,
        default_ttl: float = 60.0,
        config: CacheConfig | None = None,
        clock: Clock | None = None,
    ):
        if config:
            self.max_size = config.max_size
            self.default_ttl = config.default_ttl
            self.enabled = config.enabled
        else:
            self.max_size = max_size
            self.default_ttl = default_ttl
            self.enabled = True

        self._clock = clock or get_clock()
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._stale_hits = 0

    def get(self, key: str) -> Any | None:
        """Get fresh cached value; None if missing or older than its TTL."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._cache.get(key)
            if entry is None or not entry.is_fresh(self._clock.monotonic()):
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            entry.hits += 1
            self._hits += 1
            return entry.value

    def get_stale(self, key: str) -> Any | None:
        """Get cached value regardless of age; None if never stored (or evicted)."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            self._stale_hits += 1
            return entry.value

    def age(self, key: str) -> Optional[float]:
        """Seconds since the entry was stored; None if missing."""
        with self._lock:
            entry = self._cache.get(key)
            return entry.age(self._clock.monotonic()) if entry else None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value with a fresh fetch timestamp."""
        if not self.enabled:
            return

        ttl = ttl if ttl is not None else self.default_ttl

        with self._lock:
            if key in self._cache:
                del self._cache[key]
            while len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = CacheEntry(
                value=value,
                fetched_at=self._clock.monotonic(),
                ttl=ttl,
            )

    def delete(self, key: str) -> bool:
        """Delete cache entry."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def clear(self) -> None:
        """Clear cache."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._stale_hits = 0

    @property
    def stats(self) -> dict[str, Any]:
        """Cache stats."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0.0
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "stale_hits": self._stale_hits,
                "hit_rate": f"{hit_rate:.1%}",
                "enabled": self.enabled,
            }

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._cache)
