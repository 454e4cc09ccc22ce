"""Shared fixtures: manual clock, synthetic market data, fake source/channels, temp store."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from tradepulse.components.briefing import Briefing, BriefingGenerator
from tradepulse.components.config import set_settings
from tradepulse.components.control.clock import ManualClock, set_clock
from tradepulse.components.datasource.base import HistorySeries, MarketDataSource, PriceBar, Quote
from tradepulse.components.errors import ChannelDeliveryError
from tradepulse.components.notify.channels import NotificationChannel
from tradepulse.components.signals.signal_models import RiskLevel, SignalAction, TradingSignal
from tradepulse.components.signals.signal_store import SignalStore, set_signal_store
from tradepulse.components.tools.indicators import (
    BollingerBands,
    Indicators,
    MacdValues,
    MovingAverages,
)
from tradepulse.components.utils.throttle import set_default_throttle
from tradepulse.web.app import set_scheduler, set_workflow

START = datetime(2024, 1, 2, 15, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolate_globals(tmp_path, monkeypatch):
    """Every test gets its own run dir and fresh process-wide singletons."""
    monkeypatch.setenv("TRADEPULSE_RUN_DIR", str(tmp_path / "run"))
    yield
    set_clock(None)
    set_default_throttle(None)
    set_signal_store(None)
    set_settings(None)
    set_workflow(None)
    set_scheduler(None)


@pytest.fixture
def clock():
    return ManualClock(start=START)


@pytest.fixture
def store(tmp_path):
    return SignalStore(tmp_path / "tradepulse.db")


def build_quote(price: float = 150.0, symbol: str = "AAPL", previous_close: Optional[float] = None) -> Quote:
    previous_close = price - 1.0 if previous_close is None else previous_close
    change = price - previous_close
    return Quote(
        symbol=symbol,
        price=price,
        change=change,
        change_percent=change / previous_close * 100,
        volume=1_000_000,
        open=previous_close,
        high=price + 1.0,
        low=previous_close - 1.0,
        previous_close=previous_close,
        timestamp=START,
    )


def build_indicators(
    rsi: float = 50.0,
    histogram: float = 0.0,
    sma20: float = 150.0,
    sma50: float = 150.0,
    upper: float = 160.0,
    middle: float = 150.0,
    lower: float = 140.0,
) -> Indicators:
    return Indicators(
        rsi=rsi,
        macd=MacdValues(value=histogram, signal=0.0, histogram=histogram),
        moving_averages=MovingAverages(sma20=sma20, sma50=sma50, ema12=sma20, ema26=sma50),
        bollinger_bands=BollingerBands(upper=upper, middle=middle, lower=lower),
    )


def build_signal(
    action: SignalAction = SignalAction.BUY,
    confidence: int = 85,
    symbol: str = "AAPL",
    timestamp: datetime = START,
    price: float = 150.0,
    technical_score: int = 70,
    signal_id: Optional[str] = None,
) -> TradingSignal:
    directional = action is not SignalAction.HOLD
    return TradingSignal(
        id=signal_id or f"signal-{symbol}-{int(timestamp.timestamp() * 1000)}",
        timestamp=timestamp,
        symbol=symbol,
        action=action,
        price=price,
        confidence=confidence,
        indicators=build_indicators(),
        reasoning="Technical Analysis Summary\nAction: test",
        technical_score=technical_score,
        risk_level=RiskLevel.LOW if directional else RiskLevel.MEDIUM,
        target_price=price * 1.02 if directional else None,
        stop_loss=price * 0.99 if directional else None,
        quote=build_quote(price, symbol),
    )


@pytest.fixture
def make_quote():
    return build_quote


@pytest.fixture
def make_indicators():
    return build_indicators


@pytest.fixture
def make_signal():
    return build_signal


def rising_closes(n: int = 100, start: float = 100.0, growth: float = 1.01) -> list[float]:
    """Geometric uptrend (MACD histogram stays positive)."""
    return [start * growth ** i for i in range(n)]


def build_history(symbol: str, interval: str, closes: list[float]) -> HistorySeries:
    bars = tuple(
        PriceBar(
            timestamp=START - timedelta(minutes=5 * (len(closes) - i)),
            open=c, high=c, low=c, close=c, volume=1000,
        )
        for i, c in enumerate(closes)
    )
    return HistorySeries(symbol=symbol, interval=interval, bars=bars)


class FakeSource(MarketDataSource):
    """In-memory provider that counts calls and can be told to fail."""

    name = "fake"

    def __init__(self, price: float = 150.0, closes: Optional[list[float]] = None):
        self.price = price
        self.closes = closes if closes is not None else rising_closes()
        self.quote_calls = 0
        self.history_calls = 0
        self.fail: Optional[Exception] = None

    def fetch_quote(self, symbol: str) -> Quote:
        self.quote_calls += 1
        if self.fail is not None:
            raise self.fail
        return build_quote(self.price, symbol)

    def fetch_history(self, symbol: str, interval: str, periods: int) -> HistorySeries:
        self.history_calls += 1
        if self.fail is not None:
            raise self.fail
        return build_history(symbol, interval, self.closes).tail(periods)


@pytest.fixture
def fake_source():
    return FakeSource()


class FakeChannel(NotificationChannel):
    """Records deliveries; raises when `error` is set."""

    def __init__(self, name: str, error: Optional[Exception] = None):
        self.name = name
        self.error = error
        self.calls: list[tuple[Optional[TradingSignal], Briefing]] = []

    def deliver(self, signal, briefing):
        self.calls.append((signal, briefing))
        if self.error is not None:
            raise self.error


@pytest.fixture
def make_channel():
    def _make(name: str, fail: Optional[str] = None) -> FakeChannel:
        return FakeChannel(name, ChannelDeliveryError(name, fail) if fail else None)
    return _make


@pytest.fixture
def briefings(clock):
    return BriefingGenerator(user_name="Alex", clock=clock)


def chart_payload(
    closes: list,
    start_epoch: int = 1704200400,
    step: int = 300,
    meta: Optional[dict] = None,
) -> dict:
    """Yahoo v8 chart payload with flat OHLC around each close."""
    timestamps = [start_epoch + i * step for i in range(len(closes))]
    last = next((c for c in reversed(closes) if c is not None), None)
    base_meta = {
        "symbol": "AAPL",
        "regularMarketPrice": last,
        "previousClose": 148.0,
        "regularMarketVolume": 52_000_000,
        "regularMarketTime": timestamps[-1] if timestamps else 0,
    }
    base_meta.update(meta or {})
    return {
        "chart": {
            "result": [{
                "meta": base_meta,
                "timestamp": timestamps,
                "indicators": {"quote": [{
                    "open": list(closes),
                    "high": [c + 0.5 if c is not None else None for c in closes],
                    "low": [c - 0.5 if c is not None else None for c in closes],
                    "close": list(closes),
                    "volume": [1000 if c is not None else None for c in closes],
                }]},
            }],
            "error": None,
        }
    }


@pytest.fixture
def make_chart_payload():
    return chart_payload


