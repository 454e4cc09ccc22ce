"""
Market data fetcher: TTL cache + process-wide request throttle + stale-cache fallback over a MarketDataSource.

This is the only component that reads or writes the quote/history cache and advances the
"last external request" marker.

Classes:
    MarketDataFetcher   Cached, throttled access to quotes, history and indicators

MarketDataFetcher methods:
    .get_quote(symbol: str) -> Quote
    .get_history(symbol: str, interval: str = "5min", periods: int = 100) -> HistorySeries
    .get_indicators(symbol: str, interval: str = "5min", periods: int = 100) -> Indicators
    .clear_cache() -> None
    .cache_stats() -> dict
    .throttle_stats() -> dict

MarketDataFetcher config:
    DEFAULT_QUOTE_TTL = 60.0     # Quote cache TTL (seconds)
    DEFAULT_HISTORY_TTL = 60.0   # History cache TTL (seconds)

Fetch policy:
    1. Fresh cache entry (younger than TTL) -> return it, no network
    2. Otherwise wait on the shared throttle, then fetch
    3. Success -> store (value + fresh timestamp) and return
    4. Failure (network, 429, bad payload) -> stale entry for the key if any, else DataFetchError
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests

from ..control.clock import Clock, get_clock
from ..errors import DataFetchError
from ..tools.indicators import Indicators, compute_indicators
from ..utils.cache import TTLCache
from ..utils.throttle import RequestThrottle, get_default_throttle
from .base import HISTORY_INTERVALS, HistorySeries, MarketDataSource, Quote
from .source import YahooChartSource

logger = logging.getLogger(__name__)


class MarketDataFetcher:
    """
    Cached, throttled market data access.

    Features:
    - Quote cache keyed by symbol; history cache keyed by (symbol, interval)
    - One throttle shared by all symbols (and, by default, all fetchers in the process)
    - Stale-cache fallback keeps the pipeline running through transient provider outages
    """

    DEFAULT_QUOTE_TTL = 60.0
    DEFAULT_HISTORY_TTL = 60.0

    def __init__(
        self,
        source: Optional[MarketDataSource] = None,
        cache: Optional[TTLCache] = None,
        throttle: Optional[RequestThrottle] = None,
        clock: Optional[Clock] = None,
        quote_ttl: float = DEFAULT_QUOTE_TTL,
        history_ttl: float = DEFAULT_HISTORY_TTL,
    ):
        self._clock = clock or get_clock()
        self._source = source or YahooChartSource()
        self._cache = cache if cache is not None else TTLCache(max_size=500, default_ttl=quote_ttl, clock=self._clock)
        self._throttle = throttle or get_default_throttle()
        self.quote_ttl = quote_ttl
        self.history_ttl = history_ttl

    @property
    def source(self) -> MarketDataSource:
        return self._source

    def _cache_key(self, prefix: str, *args) -> str:
        """Build cache key."""
        return f"{self._source.name}:{prefix}:{':'.join(str(a) for a in args)}"

    def _fetch(
        self,
        key: str,
        ttl: float,
        fetch: Callable[[], Any],
        cached: Any = None,
    ) -> Any:
        """Throttled fetch with stale fallback; `cached` is the fresh value when the caller already has one."""
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached

        self._throttle.wait()
        try:
            value = fetch()
        except (DataFetchError, requests.RequestException) as e:
            stale = self._cache.get_stale(key)
            if stale is not None:
                age = self._cache.age(key) or 0.0
                logger.warning("Fetch failed for %s (%s); using stale cache (age %.0fs)", key, e, age)
                return stale
            logger.error("Fetch failed for %s with no cache fallback: %s", key, e)
            if isinstance(e, DataFetchError):
                raise
            raise DataFetchError(str(e)) from e

        self._cache.set(key, value, ttl=ttl)
        return value

    def get_quote(self, symbol: str) -> Quote:
        """
        Get current quote (cached and throttled).

        Args:
            symbol: Symbol (case-insensitive)

        Returns:
            Quote

        Raises:
            DataFetchError: Provider failed and nothing is cached for the symbol
        """
        symbol = symbol.upper()
        key = self._cache_key("quote", symbol)
        return self._fetch(
            key,
            self.quote_ttl,
            lambda: self._source.fetch_quote(symbol),
            cached=self._cache.get(key),
        )

    def get_history(self, symbol: str, interval: str = "5min", periods: int = 100) -> HistorySeries:
        """
        Get history bars (cached and throttled), at most `periods` most recent.

        The cache holds (requested periods, series); a fresh entry fetched for fewer periods
        than now requested counts as a miss.

        Raises:
            ValueError: Unsupported interval
            DataFetchError: Provider failed and nothing is cached for the key
        """
        symbol = symbol.upper()
        if interval not in HISTORY_INTERVALS:
            raise ValueError(f"Unsupported interval: {interval} (expected one of {', '.join(HISTORY_INTERVALS)})")
        key = self._cache_key("history", symbol, interval)
        entry = self._cache.get(key)
        if entry is not None and entry[0] < periods:
            entry = None
        requested, series = self._fetch(
            key,
            self.history_ttl,
            lambda: (periods, self._source.fetch_history(symbol, interval, periods)),
            cached=entry,
        )
        return series.tail(periods)

    def get_indicators(self, symbol: str, interval: str = "5min", periods: int = 100) -> Indicators:
        """Compute indicators from the close series of get_history()."""
        history = self.get_history(symbol, interval, periods)
        return compute_indicators(history.closes)

    def clear_cache(self) -> None:
        """Clear cache."""
        self._cache.clear()
        logger.info("MarketDataFetcher cache cleared")

    def cache_stats(self) -> dict:
        """Get cache stats."""
        return self._cache.stats

    def throttle_stats(self) -> dict:
        """Get throttle stats."""
        return self._throttle.stats
