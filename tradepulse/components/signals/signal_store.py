"""
Trading signal storage (SQLite): signals, briefings, workflow step logs, daily performance.

Audit/record persistence for the workflow. One connection per call; each write commits
on its own. Writers raise on database errors; the workflow decides whether a failure is fatal.

Classes:
    SignalStore   SQLite store

SignalStore methods:
    .store_signal(signal, user_id=None, project_id=None) -> None
    .store_briefing(briefing, user_id=None, project_id=None) -> None
    .log_workflow_step(entry: WorkflowStepLogEntry) -> int
    .update_performance_metrics(signal: TradingSignal) -> DailyPerformance
    .get_signal(signal_id: str) -> Optional[TradingSignal]
    .list_signals(symbol=None, date_from=None, date_to=None, offset=0, limit=200) -> list[TradingSignal]
    .count_signals(symbol=None, date_from=None, date_to=None) -> int
    .list_workflow_logs(symbol=None, signal_id=None, status=None, limit=100) -> list[WorkflowStepLogEntry]
    .get_performance(symbol: str, date: str) -> Optional[DailyPerformance]

SignalStore config:
    Default DB path: run/db/tradepulse.db (see get_default_db_path())

SignalStore features:
    - trading_signals keyed by signal id (TEXT), with a day column for date-range filters
    - briefings, workflow_logs (append-only), performance_metrics keyed by (symbol, day)
    - list_* ordered newest first

Functions:
    get_default_db_path() -> Path
    get_signal_store(db_path=None) -> SignalStore
    set_signal_store(store: Optional[SignalStore]) -> None
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ..config import get_run_dir
from ..control.clock import get_current_dt
from ..workflow.models import WorkflowStatus, WorkflowStepLogEntry, WorkflowType
from .signal_models import DailyPerformance, TradingSignal

if TYPE_CHECKING:
    from ..briefing.briefing import Briefing

logger = logging.getLogger(__name__)


def get_default_db_path() -> Path:
    """
    Default DB path for the signal store.

    Returns:
        Path to run/db/tradepulse.db (TRADEPULSE_RUN_DIR honoured)
    """
    return get_run_dir() / "db" / "tradepulse.db"


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


class SignalStore:
    """
    SQLite store for signals and workflow audit records.

    Supports:
    - Insert signal / briefing; append workflow step
    - Per-symbol per-day performance aggregate, updated once per stored signal
    - Queries for API: get_signal, list_signals, list_workflow_logs, get_performance
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path else get_default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        conn = self._conn()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS trading_signals (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    project_id INTEGER,
                    symbol TEXT NOT NULL,
                    day TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    action TEXT NOT NULL,
                    price REAL NOT NULL,
                    confidence INTEGER NOT NULL,
                    technical_score INTEGER NOT NULL,
                    risk_level TEXT NOT NULL,
                    payload TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_signals_symbol_day ON trading_signals(symbol, day);
                CREATE INDEX IF NOT EXISTS idx_signals_timestamp ON trading_signals(timestamp);

                CREATE TABLE IF NOT EXISTS briefings (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    project_id INTEGER,
                    briefing_type TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    content TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    signals TEXT NOT NULL,
                    performance TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS workflow_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT,
                    project_id INTEGER,
                    workflow_type TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    signal_id TEXT,
                    status TEXT NOT NULL,
                    step TEXT NOT NULL,
                    message TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_logs_signal ON workflow_logs(signal_id);

                CREATE TABLE IF NOT EXISTS performance_metrics (
                    symbol TEXT NOT NULL,
                    day TEXT NOT NULL,
                    total_signals INTEGER NOT NULL,
                    buy_count INTEGER NOT NULL,
                    sell_count INTEGER NOT NULL,
                    hold_count INTEGER NOT NULL,
                    avg_confidence REAL NOT NULL,
                    avg_technical_score REAL NOT NULL,
                    last_signal_id TEXT,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (symbol, day)
                );
            """)
            conn.commit()
        finally:
            conn.close()

    def _conn(self) -> sqlite3.Connection:
        c = sqlite3.connect(str(self.db_path))
        c.row_factory = sqlite3.Row
        return c

    # ---- writers ----

    def store_signal(
        self,
        signal: TradingSignal,
        user_id: Optional[str] = None,
        project_id: Optional[int] = None,
    ) -> None:
        """
        Insert one signal.

        Args:
            signal: TradingSignal to insert
            user_id, project_id: Audit context

        Raises:
            sqlite3.Error: Write failed (including duplicate id)
        """
        conn = self._conn()
        try:
            conn.execute(
                """
                INSERT INTO trading_signals
                (id, user_id, project_id, symbol, day, timestamp, action, price, confidence,
                 technical_score, risk_level, payload)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    signal.id,
                    user_id,
                    project_id,
                    signal.symbol,
                    signal.timestamp.date().isoformat(),
                    signal.timestamp.isoformat(),
                    signal.action.value,
                    signal.price,
                    signal.confidence,
                    signal.technical_score,
                    signal.risk_level.value,
                    json.dumps(signal.to_dict()),
                ),
            )
            conn.commit()
            logger.info("db write signal add: id=%s symbol=%s action=%s confidence=%s",
                        signal.id, signal.symbol, signal.action.value, signal.confidence)
        finally:
            conn.close()

    def store_briefing(
        self,
        briefing: Briefing,
        user_id: Optional[str] = None,
        project_id: Optional[int] = None,
    ) -> None:
        """Insert one briefing."""
        conn = self._conn()
        try:
            conn.execute(
                """
                INSERT INTO briefings
                (id, user_id, project_id, briefing_type, subject, content, summary, signals, performance, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    briefing.id,
                    user_id,
                    project_id,
                    briefing.briefing_type.value,
                    briefing.subject,
                    briefing.content,
                    briefing.summary,
                    json.dumps(list(briefing.signals)),
                    json.dumps(briefing.performance.to_dict()) if briefing.performance else None,
                    briefing.timestamp.isoformat(),
                ),
            )
            conn.commit()
            logger.info("db write briefing add: id=%s type=%s", briefing.id, briefing.briefing_type.value)
        finally:
            conn.close()

    def log_workflow_step(self, entry: WorkflowStepLogEntry) -> int:
        """
        Append one workflow step.

        Returns:
            Inserted row id
        """
        created_at = entry.created_at or get_current_dt()
        conn = self._conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO workflow_logs
                (user_id, project_id, workflow_type, symbol, signal_id, status, step, message, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id,
                    entry.project_id,
                    entry.workflow_type.value,
                    entry.symbol,
                    entry.signal_id,
                    entry.status.value,
                    entry.step,
                    entry.message,
                    created_at.isoformat(),
                ),
            )
            conn.commit()
            row_id = cur.lastrowid or 0
            logger.debug("db write workflow_log add: id=%s step=%s status=%s signal_id=%s",
                         row_id, entry.step, entry.status.value, entry.signal_id)
            return row_id
        finally:
            conn.close()

    def update_performance_metrics(self, signal: TradingSignal) -> DailyPerformance:
        """
        Fold one signal into its symbol's aggregate for the signal's UTC day.

        Returns:
            Updated DailyPerformance
        """
        day = signal.timestamp.date().isoformat()
        conn = self._conn()
        try:
            row = conn.execute(
                "SELECT * FROM performance_metrics WHERE symbol = ? AND day = ?",
                (signal.symbol, day),
            ).fetchone()
            current = self._row_to_performance(row) if row else DailyPerformance.empty(signal.symbol, day)
            updated = current.record(signal)
            conn.execute(
                """
                INSERT OR REPLACE INTO performance_metrics
                (symbol, day, total_signals, buy_count, sell_count, hold_count,
                 avg_confidence, avg_technical_score, last_signal_id, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    updated.symbol,
                    updated.date,
                    updated.total_signals,
                    updated.buy_count,
                    updated.sell_count,
                    updated.hold_count,
                    updated.avg_confidence,
                    updated.avg_technical_score,
                    updated.last_signal_id,
                    get_current_dt().isoformat(),
                ),
            )
            conn.commit()
            logger.info("db write performance update: symbol=%s day=%s total_signals=%s",
                        updated.symbol, updated.date, updated.total_signals)
            return updated
        finally:
            conn.close()

    # ---- readers ----

    def get_signal(self, signal_id: str) -> Optional[TradingSignal]:
        """
        Get one signal by id.

        Returns:
            TradingSignal or None if not found
        """
        conn = self._conn()
        try:
            row = conn.execute("SELECT payload FROM trading_signals WHERE id = ?", (signal_id,)).fetchone()
            return TradingSignal.from_dict(json.loads(row["payload"])) if row else None
        finally:
            conn.close()

    def _list_signals_where(
        self,
        symbol: Optional[str],
        date_from: Optional[str],
        date_to: Optional[str],
    ) -> tuple[str, list[Any]]:
        sql = ""
        params: list[Any] = []
        if symbol:
            sql += " AND symbol = ?"
            params.append(symbol.upper())
        if date_from:
            sql += " AND day >= ?"
            params.append(date_from)
        if date_to:
            sql += " AND day <= ?"
            params.append(date_to)
        return sql, params

    def list_signals(
        self,
        symbol: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        offset: int = 0,
        limit: int = 200,
    ) -> list[TradingSignal]:
        """
        List signals with optional filters (for API / evening review).

        Args:
            symbol: Optional symbol filter
            date_from: Optional start date YYYY-MM-DD (inclusive)
            date_to: Optional end date YYYY-MM-DD (inclusive)
            offset: Skip N rows (pagination)
            limit: Max rows (1..500)

        Returns:
            List of TradingSignal, newest first
        """
        conn = self._conn()
        try:
            where_sql, params = self._list_signals_where(symbol, date_from, date_to)
            params.extend([max(1, min(limit, 500)), max(0, offset)])
            rows = conn.execute(
                "SELECT payload FROM trading_signals WHERE 1=1" + where_sql
                + " ORDER BY timestamp DESC LIMIT ? OFFSET ?",
                params,
            ).fetchall()
            return [TradingSignal.from_dict(json.loads(r["payload"])) for r in rows]
        finally:
            conn.close()

    def count_signals(
        self,
        symbol: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> int:
        """Count signals with the same filters as list_signals."""
        conn = self._conn()
        try:
            where_sql, params = self._list_signals_where(symbol, date_from, date_to)
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM trading_signals WHERE 1=1" + where_sql, params
            ).fetchone()
            return row["n"] if row else 0
        finally:
            conn.close()

    def list_workflow_logs(
        self,
        symbol: Optional[str] = None,
        signal_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> list[WorkflowStepLogEntry]:
        """
        List workflow steps, newest first.

        Args:
            symbol: Optional symbol filter
            signal_id: Optional signal filter
            status: Optional status filter (RUNNING, COMPLETED, FAILED)
            limit: Max rows (1..1000)
        """
        conn = self._conn()
        try:
            sql = "SELECT * FROM workflow_logs WHERE 1=1"
            params: list[Any] = []
            if symbol:
                sql += " AND symbol = ?"
                params.append(symbol.upper())
            if signal_id:
                sql += " AND signal_id = ?"
                params.append(signal_id)
            if status:
                sql += " AND status = ?"
                params.append(status.upper())
            sql += " ORDER BY id DESC LIMIT ?"
            params.append(max(1, min(limit, 1000)))
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_log(r) for r in rows]
        finally:
            conn.close()

    def get_performance(self, symbol: str, date: str) -> Optional[DailyPerformance]:
        """Daily aggregate for symbol on date (YYYY-MM-DD), or None."""
        conn = self._conn()
        try:
            row = conn.execute(
                "SELECT * FROM performance_metrics WHERE symbol = ? AND day = ?",
                (symbol.upper(), date),
            ).fetchone()
            return self._row_to_performance(row) if row else None
        finally:
            conn.close()

    def _row_to_performance(self, row: sqlite3.Row) -> DailyPerformance:
        return DailyPerformance(
            symbol=row["symbol"],
            date=row["day"],
            total_signals=row["total_signals"],
            buy_count=row["buy_count"],
            sell_count=row["sell_count"],
            hold_count=row["hold_count"],
            avg_confidence=row["avg_confidence"],
            avg_technical_score=row["avg_technical_score"],
            last_signal_id=row["last_signal_id"],
        )

    def _row_to_log(self, row: sqlite3.Row) -> WorkflowStepLogEntry:
        return WorkflowStepLogEntry(
            id=row["id"],
            symbol=row["symbol"],
            status=WorkflowStatus(row["status"]),
            step=row["step"],
            message=row["message"],
            signal_id=row["signal_id"],
            user_id=row["user_id"],
            project_id=row["project_id"],
            workflow_type=WorkflowType(row["workflow_type"]),
            created_at=_parse_dt(row["created_at"]),
        )


_store: Optional[SignalStore] = None


def get_signal_store(db_path: Path | None = None) -> SignalStore:
    """
    Get global signal store instance (singleton).

    Args:
        db_path: Optional DB path; default from get_default_db_path()
    """
    global _store
    if _store is None:
        _store = SignalStore(db_path)
    return _store


def set_signal_store(store: Optional[SignalStore]) -> None:
    """Set global signal store (e.g. for tests)."""
    global _store
    _store = store
