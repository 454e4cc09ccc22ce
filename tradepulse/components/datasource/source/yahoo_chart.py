"""
Yahoo Finance chart API data source (v8 chart endpoint, no API key).

One HTTP GET per call; the JSON payload is validated right after the request and any shape
deviation becomes a DataFetchError, so no undefined values reach the indicator math.

Classes:
    YahooChartSource   MarketDataSource implementation over requests

YahooChartSource methods:
    .fetch_quote(symbol: str) -> Quote                                  (interval=1m, range=1d)
    .fetch_history(symbol: str, interval: str, periods: int) -> HistorySeries

Functions:
    extract_chart_result(payload: Any) -> dict       Validate {chart: {result: [{meta, timestamp, indicators}]}}
    chart_to_frame(result: dict) -> DataFrame        OHLCV frame indexed by UTC timestamp, null closes dropped
    quote_from_chart(symbol, result) -> Quote
    history_from_chart(symbol, interval, result, periods) -> HistorySeries

Expected payload:
    {"chart": {"result": [{"meta": {...},
                           "timestamp": [epoch seconds, ...],
                           "indicators": {"quote": [{"open": [...], "high": [...], "low": [...],
                                                     "close": [...], "volume": [...]}]}}],
               "error": null}}
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote as url_quote

import pandas as pd
import requests

from ...errors import DataFetchError
from ..base import HISTORY_INTERVALS, HistorySeries, MarketDataSource, PriceBar, Quote

logger = logging.getLogger(__name__)

_OHLCV = ("open", "high", "low", "close", "volume")


def _num(value: Any) -> Optional[float]:
    """Float or None for missing / NaN / non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(f) else f


def extract_chart_result(payload: Any) -> dict:
    """
    Validate provider payload and return chart.result[0].

    Raises:
        DataFetchError: On provider error object or any shape deviation
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("chart"), dict):
        raise DataFetchError("Malformed chart payload: missing 'chart'")
    chart = payload["chart"]
    if chart.get("error"):
        err = chart["error"]
        desc = err.get("description") if isinstance(err, dict) else err
        raise DataFetchError(f"Provider error: {desc}")

    results = chart.get("result")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        raise DataFetchError("Malformed chart payload: empty 'result'")
    result = results[0]

    if not isinstance(result.get("meta"), dict):
        raise DataFetchError("Malformed chart payload: missing 'meta'")
    timestamps = result.get("timestamp")
    if not isinstance(timestamps, list) or not timestamps:
        raise DataFetchError("Malformed chart payload: missing 'timestamp'")
    if not all(isinstance(t, (int, float)) and not isinstance(t, bool) and math.isfinite(t) for t in timestamps):
        raise DataFetchError("Malformed chart payload: non-numeric 'timestamp'")

    indicators = result.get("indicators")
    quotes = indicators.get("quote") if isinstance(indicators, dict) else None
    if not isinstance(quotes, list) or not quotes or not isinstance(quotes[0], dict):
        raise DataFetchError("Malformed chart payload: missing 'indicators.quote'")
    for key in _OHLCV:
        column = quotes[0].get(key)
        if not isinstance(column, list) or len(column) != len(timestamps):
            raise DataFetchError(f"Malformed chart payload: bad '{key}' array")
    return result


def chart_to_frame(result: dict) -> pd.DataFrame:
    """
    Build OHLCV DataFrame from a validated chart result.

    Rows with a null close are dropped; missing open/high/low fall back to close, missing volume to 0.
    Index is a sorted, de-duplicated UTC DatetimeIndex.
    """
    quote = result["indicators"]["quote"][0]
    try:
        index = pd.to_datetime(result["timestamp"], unit="s", utc=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise DataFetchError(f"Malformed chart payload: bad 'timestamp' ({e})") from e
    df = pd.DataFrame({key: pd.to_numeric(pd.Series(quote[key]), errors="coerce").to_numpy()
                       for key in _OHLCV}, index=index)
    df = df.dropna(subset=["close"])
    for key in ("open", "high", "low"):
        df[key] = df[key].fillna(df["close"])
    df["volume"] = df["volume"].fillna(0)
    df = df[~df.index.duplicated(keep="last")].sort_index()
    return df


def quote_from_chart(symbol: str, result: dict) -> Quote:
    """Build Quote from a validated chart result (latest bar + meta)."""
    meta = result["meta"]
    df = chart_to_frame(result)
    last = df.iloc[-1] if not df.empty else None

    price = _num(meta.get("regularMarketPrice"))
    if price is None and last is not None:
        price = float(last["close"])
    previous_close = _num(meta.get("previousClose"))
    if previous_close is None:
        previous_close = _num(meta.get("chartPreviousClose"))
    if price is None or previous_close is None:
        raise DataFetchError(f"Malformed chart payload for {symbol}: missing price or previous close")

    def _field(col: str, meta_key: str) -> float:
        if last is not None:
            return float(last[col])
        return _num(meta.get(meta_key)) or price

    if last is not None:
        ts = df.index[-1].to_pydatetime()
    else:
        ts = datetime.fromtimestamp(int(meta.get("regularMarketTime") or 0), tz=timezone.utc)

    change = price - previous_close
    return Quote(
        symbol=symbol.upper(),
        price=price,
        change=change,
        change_percent=(change / previous_close * 100) if previous_close else 0.0,
        volume=int(_num(meta.get("regularMarketVolume")) or 0),
        open=_field("open", "regularMarketOpen"),
        high=_field("high", "regularMarketDayHigh"),
        low=_field("low", "regularMarketDayLow"),
        previous_close=previous_close,
        timestamp=ts,
    )


def history_from_chart(symbol: str, interval: str, result: dict, periods: int) -> HistorySeries:
    """Build HistorySeries (at most `periods` most recent bars) from a validated chart result."""
    df = chart_to_frame(result)
    if df.empty:
        raise DataFetchError(f"No bars returned for {symbol} ({interval})")
    df = df.tail(periods)
    bars = tuple(
        PriceBar(
            timestamp=ts.to_pydatetime(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=int(row.volume),
        )
        for ts, row in zip(df.index, df.itertuples(index=False))
    )
    return HistorySeries(symbol=symbol.upper(), interval=interval, bars=bars)


class YahooChartSource(MarketDataSource):
    """
    Yahoo Finance chart endpoint.

    Supports:
    - US stocks (AAPL, TSLA, ...), HK (0700.HK), indices (^GSPC)
    - Quote from 1m bars of the current day plus meta
    - History at 1min/5min/15min/30min/60min (range 1d) or daily (range 1mo)
    """

    name = "yahoo"

    DEFAULT_BASE_URL = "https://query1.finance.yahoo.com"
    DEFAULT_TIMEOUT = 10.0

    INTERVAL_MAP = {
        "1min": "1m",
        "5min": "5m",
        "15min": "15m",
        "30min": "30m",
        "60min": "60m",
        "daily": "1d",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        headers: Optional[dict] = None,
    ):
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = headers or {"User-Agent": "Mozilla/5.0 (tradepulse)"}

    def _chart_url(self, symbol: str) -> str:
        return f"{self.base_url}/v8/finance/chart/{url_quote(symbol.upper(), safe='^.-=')}"

    def _get_chart(self, symbol: str, interval: str, range_: str) -> dict:
        """GET chart JSON and return the validated result."""
        url = self._chart_url(symbol)
        params = {"interval": interval, "range": range_}
        try:
            response = self._session.get(url, params=params, headers=self._headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise DataFetchError(f"Timed out fetching {symbol}: {e}") from e
        except requests.RequestException as e:
            raise DataFetchError(f"Request failed for {symbol}: {e}") from e

        if response.status_code == 429:
            raise DataFetchError(f"Too Many Requests (429) for {symbol}")
        if not response.ok:
            raise DataFetchError(f"Failed to fetch chart for {symbol}: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise DataFetchError(f"Invalid JSON for {symbol}: {e}") from e
        return extract_chart_result(payload)

    def fetch_quote(self, symbol: str) -> Quote:
        result = self._get_chart(symbol, "1m", "1d")
        quote = quote_from_chart(symbol, result)
        logger.debug("Fetched quote %s: %.2f", quote.symbol, quote.price)
        return quote

    def fetch_history(self, symbol: str, interval: str = "5min", periods: int = 100) -> HistorySeries:
        if interval not in HISTORY_INTERVALS:
            raise ValueError(f"Unsupported interval: {interval} (expected one of {', '.join(HISTORY_INTERVALS)})")
        range_ = "1mo" if interval == "daily" else "1d"
        result = self._get_chart(symbol, self.INTERVAL_MAP[interval], range_)
        history = history_from_chart(symbol, interval, result, periods)
        logger.debug("Fetched history %s %s: %d bars", history.symbol, interval, len(history))
        return history
