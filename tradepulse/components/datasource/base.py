"""
Data source base: market-data value types and the abstract provider interface.

Classes:
    Quote              Immutable quote snapshot
    PriceBar           One OHLCV bar
    HistorySeries      Ordered bars (oldest -> newest) for one symbol/interval
    MarketDataSource   Abstract provider: fetch_quote / fetch_history (no caching, no throttling)

Constants:
    HISTORY_INTERVALS  Supported history intervals: 1min, 5min, 15min, 30min, 60min, daily

MarketDataSource methods (abstract):
    .fetch_quote(symbol: str) -> Quote
    .fetch_history(symbol: str, interval: str, periods: int) -> HistorySeries
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

HISTORY_INTERVALS = ("1min", "5min", "15min", "30min", "60min", "daily")


@dataclass(frozen=True)
class Quote:
    """Current quote for one symbol."""
    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int
    open: float
    high: float
    low: float
    previous_close: float
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "previous_close": self.previous_close,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Quote":
        return cls(
            symbol=data["symbol"],
            price=float(data["price"]),
            change=float(data.get("change", 0.0)),
            change_percent=float(data.get("change_percent", 0.0)),
            volume=int(data.get("volume", 0)),
            open=float(data.get("open", 0.0)),
            high=float(data.get("high", 0.0)),
            low=float(data.get("low", 0.0)),
            previous_close=float(data.get("previous_close", 0.0)),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class PriceBar:
    """OHLCV bar."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int


@dataclass(frozen=True)
class HistorySeries:
    """Historical bars, oldest first."""
    symbol: str
    interval: str
    bars: tuple[PriceBar, ...] = field(default_factory=tuple)

    @property
    def closes(self) -> list[float]:
        return [b.close for b in self.bars]

    def tail(self, periods: int) -> "HistorySeries":
        """Keep the `periods` most recent bars."""
        if periods <= 0:
            return HistorySeries(self.symbol, self.interval, ())
        return HistorySeries(self.symbol, self.interval, self.bars[-periods:])

    def __len__(self) -> int:
        return len(self.bars)


class MarketDataSource(ABC):
    """
    Abstract market-data provider.

    Implementations do one network round-trip per call and raise DataFetchError on any failure.
    Caching, throttling and stale fallback live in MarketDataFetcher.
    """

    name: str = "base"

    @abstractmethod
    def fetch_quote(self, symbol: str) -> Quote:
        """Fetch current quote."""

    @abstractmethod
    def fetch_history(self, symbol: str, interval: str, periods: int) -> HistorySeries:
        """Fetch up to `periods` most recent bars."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"
