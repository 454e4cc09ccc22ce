"""
TradePulse web entry (Flask).

Builds the workflow from config/trading.yaml, registers the JSON API Blueprint and, when
scheduler.enabled is set, starts the cron scheduler. Runtime data under run/ (TRADEPULSE_RUN_DIR):
logs (run/logs/tradepulse.log), database (run/db/tradepulse.db). Loads .env via dotenv.

Run: python -m tradepulse.app  (or the `tradepulse` console script)
Env: HOST (default 0.0.0.0), PORT (default 11280), LOG_LEVEL (default INFO),
     TRADEPULSE_CONFIG, TRADEPULSE_RUN_DIR
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from tradepulse.components.config import TradingSettings, get_run_dir, load_settings, set_settings
from tradepulse.components.scheduler import WorkflowScheduler
from tradepulse.components.workflow import TradingWorkflow, build_workflow
from tradepulse.web.app import get_scheduler, set_scheduler, set_workflow
from tradepulse.web.routes import bp as api_bp

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging to run/logs and the console."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)
    log_dir = get_run_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    fmt = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    fh = logging.FileHandler(log_dir / "tradepulse.log", encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root.addHandler(fh)
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    root.addHandler(ch)
    logging.getLogger("werkzeug").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_app(
    workflow: Optional[TradingWorkflow] = None,
    settings: Optional[TradingSettings] = None,
    start_scheduler: bool = False,
) -> Flask:
    """
    Create the Flask app.

    Args:
        workflow: Prebuilt workflow (tests); default build_workflow(settings)
        settings: Settings; default load_settings()
        start_scheduler: Start the cron scheduler when settings.scheduler.enabled

    Returns:
        Flask app with the API Blueprint registered
    """
    settings = settings or load_settings()
    set_settings(settings)
    if workflow is None:
        workflow = build_workflow(settings)
    set_workflow(workflow)

    app = Flask(__name__)
    app.config["JSON_SORT_KEYS"] = False
    CORS(app)
    app.register_blueprint(api_bp)

    if start_scheduler and settings.scheduler.enabled:
        scheduler = WorkflowScheduler.from_settings(workflow, settings.scheduler, default_symbol=settings.symbol)
        set_scheduler(scheduler)
        scheduler.start()
    return app


def main() -> None:
    load_dotenv()
    setup_logging()
    app = create_app(start_scheduler=True)
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "11280"))
    logger.info("Starting TradePulse on %s:%s", host, port)
    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    finally:
        scheduler = get_scheduler()
        if scheduler:
            scheduler.stop()


if __name__ == "__main__":
    main()
