"""
TradePulse web routes (Flask Blueprint, JSON only).

API routes:
    POST /api/workflow/run       Run signal workflow (body: symbol?, enable_email, enable_document_log,
                                 enable_task_tracker, enable_chat_alert, user_id?, project_id?)
    POST /api/workflow/morning   Run morning briefing workflow (same body)
    POST /api/workflow/evening   Run evening review workflow (same body)
    GET /api/signals?symbol=&date_from=&date_to=&page=&limit=   List stored signals (newest first)
    GET /api/signals/<id>        One stored signal
    GET /api/workflow/logs?symbol=&signal_id=&status=&limit=    Workflow step log (newest first)
    GET /api/performance?symbol=&date=   Daily performance aggregate (default: today)
    GET /api/market/quote/<symbol>       Current quote (cached/throttled)
    GET /api/health                      Liveness + cache/throttle stats

Errors: 400 bad input, 404 unknown signal, 502 market data unavailable, 503 workflow not configured.

Register: app.register_blueprint(web.routes.bp)
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional

from flask import Blueprint, jsonify, request

from tradepulse import __version__
from tradepulse.components.config import get_settings
from tradepulse.components.control.clock import get_current_dt, get_current_time_iso
from tradepulse.components.errors import DataFetchError
from tradepulse.components.signals.signal_models import DailyPerformance
from tradepulse.components.workflow import WorkflowConfig

from .app import get_scheduler, get_store, get_workflow

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

_SYMBOL_RE = re.compile(r"^[A-Za-z0-9.^=\-]{1,15}$")


class BadRequest(ValueError):
    """Invalid request parameter."""


@bp.errorhandler(BadRequest)
def _bad_request(e: BadRequest):
    return jsonify({"error": str(e)}), 400


def _int_arg(name: str, default: int, lo: int, hi: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"{name} must be an integer")
    return max(lo, min(hi, value))


def _date_arg(name: str) -> Optional[str]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        datetime.strptime(raw, "%Y-%m-%d")
    except ValueError:
        raise BadRequest(f"{name} must be YYYY-MM-DD")
    return raw


def _workflow_config() -> WorkflowConfig:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    settings = get_settings()
    data = dict(data)
    data.setdefault("symbol", settings.symbol)
    # Channel flags missing from the body fall back to workflow.enable_* in settings
    for channel in ("email", "document_log", "task_tracker", "chat_alert"):
        data.setdefault(f"enable_{channel}", getattr(settings.workflow, f"enable_{channel}"))
    try:
        return WorkflowConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise BadRequest(str(e))


def _run(kind: str):
    workflow = get_workflow()
    if workflow is None:
        return jsonify({"error": "Workflow not configured"}), 503
    config = _workflow_config()
    runner = {
        "run": workflow.run,
        "morning": workflow.run_morning_briefing,
        "evening": workflow.run_evening_review,
    }[kind]
    logger.info("API workflow %s: symbol=%s", kind, config.symbol)
    result = runner(config)
    return jsonify(result.to_dict())


# ========== Workflow ==========

@bp.route("/api/workflow/run", methods=["POST"])
def api_workflow_run():
    """Run the signal workflow; 200 with WorkflowResult (check success / errors)."""
    return _run("run")


@bp.route("/api/workflow/morning", methods=["POST"])
def api_workflow_morning():
    return _run("morning")


@bp.route("/api/workflow/evening", methods=["POST"])
def api_workflow_evening():
    return _run("evening")


@bp.route("/api/workflow/logs")
def api_workflow_logs():
    limit = _int_arg("limit", 100, 1, 1000)
    status = (request.args.get("status") or "").strip().upper() or None
    if status and status not in ("RUNNING", "COMPLETED", "FAILED"):
        raise BadRequest("status must be RUNNING, COMPLETED or FAILED")
    entries = get_store().list_workflow_logs(
        symbol=request.args.get("symbol") or None,
        signal_id=request.args.get("signal_id") or None,
        status=status,
        limit=limit,
    )
    return jsonify({"logs": [e.to_dict() for e in entries]})


# ========== Signals ==========

@bp.route("/api/signals")
def api_signals():
    """List signals (paginated)."""
    page = _int_arg("page", 1, 1, 10_000)
    limit = _int_arg("limit", 50, 1, 500)
    symbol = request.args.get("symbol") or None
    date_from = _date_arg("date_from")
    date_to = _date_arg("date_to")
    store = get_store()
    signals = store.list_signals(
        symbol=symbol, date_from=date_from, date_to=date_to,
        offset=(page - 1) * limit, limit=limit,
    )
    total = store.count_signals(symbol=symbol, date_from=date_from, date_to=date_to)
    return jsonify({
        "signals": [s.to_dict() for s in signals],
        "total": total,
        "page": page,
        "limit": limit,
    })


@bp.route("/api/signals/<signal_id>")
def api_signal_get(signal_id: str):
    signal = get_store().get_signal(signal_id)
    if signal is None:
        return jsonify({"error": f"Signal not found: {signal_id}"}), 404
    return jsonify(signal.to_dict())


@bp.route("/api/performance")
def api_performance():
    symbol = (request.args.get("symbol") or get_settings().symbol).upper()
    day = _date_arg("date") or get_current_dt().date().isoformat()
    performance = get_store().get_performance(symbol, day) or DailyPerformance.empty(symbol, day)
    return jsonify(performance.to_dict())


# ========== Market data ==========

@bp.route("/api/market/quote/<symbol>")
def api_market_quote(symbol: str):
    workflow = get_workflow()
    if workflow is None:
        return jsonify({"error": "Workflow not configured"}), 503
    if not _SYMBOL_RE.match(symbol):
        raise BadRequest(f"Invalid symbol: {symbol}")
    try:
        quote = workflow.generator.fetcher.get_quote(symbol)
    except DataFetchError as e:
        logger.warning("Quote %s unavailable: %s", symbol, e)
        return jsonify({"error": str(e)}), 502
    return jsonify(quote.to_dict())


# ========== Health ==========

@bp.route("/api/health")
def api_health():
    workflow = get_workflow()
    scheduler = get_scheduler()
    body: dict[str, Any] = {
        "status": "ok",
        "version": __version__,
        "now": get_current_time_iso(),
        "workflow": workflow is not None,
        "scheduler": scheduler.is_running if scheduler else False,
    }
    if workflow is not None:
        fetcher = workflow.generator.fetcher
        body["cache"] = fetcher.cache_stats()
        body["throttle"] = fetcher.throttle_stats()
        body["channels"] = sorted(workflow.channels)
    return jsonify(body)
