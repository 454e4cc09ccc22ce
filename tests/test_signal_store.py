"""Tests for the SQLite signal store."""

import json
import sqlite3
from datetime import timedelta

import pytest

from tradepulse.components.signals.signal_models import SignalAction
from tradepulse.components.signals.signal_store import (
    SignalStore,
    get_default_db_path,
    get_signal_store,
)
from tradepulse.components.workflow.models import (
    WorkflowStatus,
    WorkflowStepLogEntry,
    WorkflowType,
)

from conftest import START


def _entry(step, status=WorkflowStatus.RUNNING, symbol="AAPL", signal_id=None):
    return WorkflowStepLogEntry(
        symbol=symbol,
        status=status,
        step=step,
        message=f"{step} message",
        signal_id=signal_id,
        user_id="u1",
        project_id=7,
        workflow_type=WorkflowType.TRADING_SIGNAL,
        created_at=START,
    )


class TestSignals:
    """Insert / read signals."""

    def test_store_and_get(self, store, make_signal):
        signal = make_signal()
        store.store_signal(signal, user_id="u1", project_id=3)
        assert store.get_signal(signal.id) == signal

    def test_unknown_id(self, store):
        assert store.get_signal("signal-NOPE-1") is None

    def test_duplicate_id_rejected(self, store, make_signal):
        signal = make_signal()
        store.store_signal(signal)
        with pytest.raises(sqlite3.IntegrityError):
            store.store_signal(signal)

    def test_list_newest_first(self, store, make_signal):
        for minutes in (0, 10, 5):
            store.store_signal(make_signal(timestamp=START + timedelta(minutes=minutes)))
        listed = store.list_signals()
        stamps = [s.timestamp for s in listed]
        assert stamps == sorted(stamps, reverse=True)

    def test_filters_and_pagination(self, store, make_signal):
        store.store_signal(make_signal(symbol="AAPL", timestamp=START))
        store.store_signal(make_signal(symbol="AAPL", timestamp=START + timedelta(days=1)))
        store.store_signal(make_signal(symbol="MSFT", timestamp=START))

        assert len(store.list_signals(symbol="aapl")) == 2
        assert store.count_signals(symbol="AAPL") == 2
        assert store.count_signals(date_from="2024-01-03") == 1
        assert store.count_signals(date_to="2024-01-02") == 2
        page = store.list_signals(symbol="AAPL", offset=1, limit=1)
        assert len(page) == 1
        assert page[0].timestamp == START
        assert store.count_signals() == 3


class TestBriefings:
    """Briefing rows."""

    def test_store_briefing(self, store, briefings, make_signal):
        briefing = briefings.hourly_update(make_signal())
        store.store_briefing(briefing, user_id="u1")
        conn = sqlite3.connect(str(store.db_path))
        try:
            row = conn.execute("SELECT briefing_type, subject, signals FROM briefings WHERE id = ?",
                               (briefing.id,)).fetchone()
        finally:
            conn.close()
        assert row[0] == "hourly"
        assert row[1] == briefing.subject
        assert json.loads(row[2]) == list(briefing.signals)


class TestWorkflowLogs:
    """Append-only step log."""

    def test_ids_increase(self, store):
        first = store.log_workflow_step(_entry("signal_generation"))
        second = store.log_workflow_step(_entry("signal_stored"))
        assert second > first

    def test_list_newest_first_with_filters(self, store):
        store.log_workflow_step(_entry("signal_generation"))
        store.log_workflow_step(_entry("signal_stored", signal_id="s1"))
        store.log_workflow_step(_entry("workflow_completed", WorkflowStatus.COMPLETED, signal_id="s1"))
        store.log_workflow_step(_entry("signal_generation", symbol="MSFT"))

        logs = store.list_workflow_logs(symbol="AAPL")
        assert [e.step for e in logs] == ["workflow_completed", "signal_stored", "signal_generation"]
        assert logs[0].status is WorkflowStatus.COMPLETED
        assert logs[0].created_at == START
        assert logs[0].project_id == 7
        assert len(store.list_workflow_logs(signal_id="s1")) == 2
        assert len(store.list_workflow_logs(status="completed")) == 1
        assert len(store.list_workflow_logs(limit=1)) == 1


class TestPerformance:
    """Per-symbol per-day aggregate."""

    def test_update_accumulates(self, store, make_signal):
        store.update_performance_metrics(make_signal(SignalAction.BUY, confidence=90, signal_id="a"))
        perf = store.update_performance_metrics(make_signal(SignalAction.HOLD, confidence=50, signal_id="b"))
        assert perf.total_signals == 2
        assert perf.avg_confidence == pytest.approx(70.0)
        assert store.get_performance("aapl", "2024-01-02") == perf

    def test_days_are_separate(self, store, make_signal):
        store.update_performance_metrics(make_signal(timestamp=START, signal_id="a"))
        store.update_performance_metrics(make_signal(timestamp=START + timedelta(days=1), signal_id="b"))
        assert store.get_performance("AAPL", "2024-01-02").total_signals == 1
        assert store.get_performance("AAPL", "2024-01-03").total_signals == 1

    def test_missing(self, store):
        assert store.get_performance("AAPL", "2024-01-02") is None


class TestGlobalStore:
    """Default location and singleton."""

    def test_default_path_under_run_dir(self, tmp_path):
        assert get_default_db_path() == tmp_path / "run" / "db" / "tradepulse.db"

    def test_singleton(self, tmp_path):
        store = get_signal_store()
        assert store is get_signal_store()
        assert store.db_path == tmp_path / "run" / "db" / "tradepulse.db"
        assert store.db_path.exists()

    def test_reopen_keeps_data(self, tmp_path, make_signal):
        path = tmp_path / "reopen.db"
        SignalStore(path).store_signal(make_signal())
        assert SignalStore(path).count_signals() == 1
