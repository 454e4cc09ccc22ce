"""Tests for signal models and the signal generator."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from tradepulse.components.datasource.fetcher import MarketDataFetcher
from tradepulse.components.errors import DataFetchError
from tradepulse.components.signals import SignalGenerator, score
from tradepulse.components.signals.signal_models import (
    DailyPerformance,
    RiskLevel,
    SignalAction,
    TradingSignal,
)
from tradepulse.components.utils.cache import TTLCache
from tradepulse.components.utils.throttle import RequestThrottle


class TestTradingSignal:
    """Serialization and helpers."""

    def test_dict_form_restores_signal(self, make_signal):
        signal = make_signal()
        data = signal.to_dict()
        assert data["action"] == "BUY"
        assert data["risk_level"] == "LOW"
        assert data["quote"]["symbol"] == "AAPL"
        assert TradingSignal.from_dict(data) == signal

    def test_hold_is_not_actionable(self, make_signal):
        assert make_signal(SignalAction.BUY).is_actionable
        assert make_signal(SignalAction.SELL).is_actionable
        assert not make_signal(SignalAction.HOLD).is_actionable

    def test_from_assessment(self, make_quote, make_indicators, clock):
        quote = make_quote(100.0, symbol="msft")
        ind = make_indicators()
        assessment = score(quote, ind)
        signal = TradingSignal.from_assessment("signal-MSFT-1", clock.now(), quote, ind, assessment)
        assert signal.symbol == "MSFT"
        assert signal.price == 100.0
        assert signal.action is assessment.action
        assert signal.reasoning == assessment.reasoning


class TestDailyPerformance:
    """Running aggregate."""

    def test_record(self, make_signal):
        perf = DailyPerformance.empty("aapl", "2024-01-02")
        perf = perf.record(make_signal(SignalAction.BUY, confidence=90, technical_score=80, signal_id="s1"))
        perf = perf.record(make_signal(SignalAction.HOLD, confidence=50, technical_score=0, signal_id="s2"))
        perf = perf.record(make_signal(SignalAction.SELL, confidence=70, technical_score=-40, signal_id="s3"))

        assert perf.symbol == "AAPL"
        assert perf.total_signals == 3
        assert (perf.buy_count, perf.sell_count, perf.hold_count) == (1, 1, 1)
        assert perf.avg_confidence == pytest.approx(70.0)
        assert perf.avg_technical_score == pytest.approx(40 / 3)
        assert perf.last_signal_id == "s3"

    def test_empty_dict(self):
        data = DailyPerformance.empty("AAPL", "2024-01-02").to_dict()
        assert data["total_signals"] == 0
        assert data["last_signal_id"] is None


class TestSignalGenerator:
    """Quote + indicators -> scored, stamped signal."""

    @pytest.fixture
    def fetcher(self, fake_source, clock):
        return MarketDataFetcher(
            source=fake_source,
            cache=TTLCache(clock=clock),
            throttle=RequestThrottle(min_interval=0.0, clock=clock),
            clock=clock,
        )

    def test_generate(self, fetcher, clock):
        generator = SignalGenerator(fetcher, clock=clock)
        signal = generator.generate("aapl")

        quote = fetcher.get_quote("AAPL")
        indicators = fetcher.get_indicators("AAPL")
        expected = score(quote, indicators)
        assert signal.symbol == "AAPL"
        assert signal.id == "signal-AAPL-1704209400000"
        assert signal.timestamp == clock.now()
        assert signal.price == 150.0
        assert signal.action is expected.action
        assert signal.technical_score == expected.technical_score
        assert signal.indicators == indicators
        assert signal.quote == quote

    def test_ids_differ_over_time(self, fetcher, clock):
        generator = SignalGenerator(fetcher, clock=clock)
        first = generator.generate("AAPL")
        clock.advance(1)
        second = generator.generate("AAPL")
        assert first.id != second.id
        assert second.timestamp - first.timestamp == timedelta(seconds=1)

    def test_uses_configured_history_window(self, clock, make_quote, make_indicators):
        fetcher = Mock()
        fetcher.get_quote.return_value = make_quote()
        fetcher.get_indicators.return_value = make_indicators()
        generator = SignalGenerator(fetcher, clock=clock, history_interval="15min", history_periods=80)
        generator.generate("AAPL")
        fetcher.get_indicators.assert_called_once_with("AAPL", "15min", 80)

    def test_fetch_failure_propagates(self, fetcher, fake_source, clock):
        fake_source.fail = DataFetchError("Too Many Requests (429) for AAPL")
        with pytest.raises(DataFetchError):
            SignalGenerator(fetcher, clock=clock).generate("AAPL")

    def test_risk_level_enum(self, fetcher, clock):
        signal = SignalGenerator(fetcher, clock=clock).generate("AAPL")
        assert signal.risk_level in (RiskLevel.LOW, RiskLevel.MEDIUM)
