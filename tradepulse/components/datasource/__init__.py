"""
TradePulse data source: market data access for one tracked instrument at a time.

Classes:
    Quote, PriceBar, HistorySeries, MarketDataSource   Base types (see base.py)
    YahooChartSource                                   Yahoo chart endpoint (see source/)
    MarketDataFetcher                                  Cache + throttle + stale fallback (see fetcher.py)
"""

from .base import HISTORY_INTERVALS, Quote, PriceBar, HistorySeries, MarketDataSource
from .source import YahooChartSource
from .fetcher import MarketDataFetcher

__all__ = [
    "HISTORY_INTERVALS",
    "Quote",
    "PriceBar",
    "HistorySeries",
    "MarketDataSource",
    "YahooChartSource",
    "MarketDataFetcher",
]
