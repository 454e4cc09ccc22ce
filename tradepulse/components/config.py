"""
TradePulse settings: typed dataclasses loaded from config/trading.yaml.

Secrets are never stored in the YAML; each integration names the environment variable that
holds its secret (SMTP password, API token, chat signing secret). `.env` is loaded by the app
entry (python-dotenv) before settings are read.

Classes:
    DataSettings       Provider URL, request timeout, cache TTLs, throttle interval
    WorkflowSettings   Channel flags for API runs that omit them, chat alert threshold, parallel dispatch, channel timeout
    EmailSettings      SMTP host/port/user, password env var, sender, recipients
    WebhookSettings    Document log / task tracker endpoint, token env var, timeout
    ChatSettings       Signed chat webhook URL, secret env var, timeout
    JobSettings        One scheduled job: name, kind (signal | morning | evening), cron, symbol, channel flags
    SchedulerSettings  enabled, poll_interval, jobs
    TradingSettings    Root: symbol, user_name, history window + all sections above

Functions:
    get_run_dir() -> Path                 TRADEPULSE_RUN_DIR or tradepulse/run
    get_config_path() -> Path             TRADEPULSE_CONFIG or tradepulse/config/trading.yaml
    load_settings(path=None) -> TradingSettings
    get_settings() -> TradingSettings     Global (lazy load)
    set_settings(settings) -> None
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent.parent

JOB_KINDS = ("signal", "morning", "evening")


def get_run_dir() -> Path:
    """Runtime data dir (db, logs). Prefer TRADEPULSE_RUN_DIR env if set."""
    run_dir = os.environ.get("TRADEPULSE_RUN_DIR")
    if run_dir:
        return Path(run_dir)
    return _PACKAGE_DIR / "run"


def get_config_path() -> Path:
    path = os.environ.get("TRADEPULSE_CONFIG")
    if path:
        return Path(path)
    return _PACKAGE_DIR / "config" / "trading.yaml"


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip() if name else ""


def _pick(cls, data: Optional[dict]) -> dict[str, Any]:
    """Keep only keys that are fields of cls; log the rest."""
    data = data or {}
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return {k: v for k, v in data.items() if k in names}


@dataclass
class DataSettings:
    base_url: str = "https://query1.finance.yahoo.com"
    timeout: float = 10.0
    quote_ttl: float = 60.0
    history_ttl: float = 60.0
    min_request_interval: float = 2.0
    cache_max_size: int = 500

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> DataSettings:
        return cls(**_pick(cls, data))


@dataclass
class WorkflowSettings:
    enable_email: bool = False
    enable_document_log: bool = False
    enable_task_tracker: bool = False
    enable_chat_alert: bool = False
    chat_alert_min_confidence: int = 80
    parallel_dispatch: bool = False
    channel_timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> WorkflowSettings:
        return cls(**_pick(cls, data))


@dataclass
class EmailSettings:
    smtp_host: str = ""
    smtp_port: int = 465
    username: str = ""
    password_env: str = "TRADEPULSE_SMTP_PASSWORD"
    sender: str = ""
    recipients: list[str] = field(default_factory=list)
    subject_prefix: str = "[TradePulse]"
    timeout: float = 10.0

    @property
    def password(self) -> str:
        return _env(self.password_env)

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.sender and self.recipients)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> EmailSettings:
        kwargs = _pick(cls, data)
        recipients = kwargs.get("recipients")
        if isinstance(recipients, str):
            kwargs["recipients"] = [r.strip() for r in recipients.split(",") if r.strip()]
        return cls(**kwargs)


@dataclass
class WebhookSettings:
    url: str = ""
    token_env: str = ""
    timeout: float = 10.0

    @property
    def token(self) -> str:
        return _env(self.token_env)

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> WebhookSettings:
        return cls(**_pick(cls, data))


@dataclass
class ChatSettings:
    webhook_url: str = ""
    secret_env: str = "TRADEPULSE_CHAT_SECRET"
    timeout: float = 10.0

    @property
    def secret(self) -> str:
        return _env(self.secret_env)

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> ChatSettings:
        return cls(**_pick(cls, data))


@dataclass
class JobSettings:
    name: str
    cron: str
    kind: str = "signal"
    symbol: str = ""
    enabled: bool = True
    enable_email: bool = False
    enable_document_log: bool = False
    enable_task_tracker: bool = False
    enable_chat_alert: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> JobSettings:
        kwargs = _pick(cls, data)
        if not kwargs.get("name") or not kwargs.get("cron"):
            raise ValueError(f"Scheduled job needs name and cron: {data}")
        if kwargs.get("kind", "signal") not in JOB_KINDS:
            raise ValueError(f"Unknown job kind {kwargs.get('kind')!r}; expected one of {JOB_KINDS}")
        return cls(**kwargs)


@dataclass
class SchedulerSettings:
    enabled: bool = False
    poll_interval: float = 30.0
    jobs: list[JobSettings] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> SchedulerSettings:
        kwargs = _pick(cls, data)
        kwargs["jobs"] = [JobSettings.from_dict(j) for j in kwargs.get("jobs") or []]
        return cls(**kwargs)


@dataclass
class TradingSettings:
    """Root settings."""
    symbol: str = "AAPL"
    user_name: str = "Trader"
    history_interval: str = "5min"
    history_periods: int = 100
    data: DataSettings = field(default_factory=DataSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    document_log: WebhookSettings = field(default_factory=WebhookSettings)
    task_tracker: WebhookSettings = field(default_factory=WebhookSettings)
    chat: ChatSettings = field(default_factory=ChatSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> TradingSettings:
        data = data or {}
        trading = data.get("trading") or {}
        return cls(
            symbol=str(trading.get("symbol", "AAPL")).upper(),
            user_name=trading.get("user_name", "Trader"),
            history_interval=trading.get("history_interval", "5min"),
            history_periods=int(trading.get("history_periods", 100)),
            data=DataSettings.from_dict(data.get("data")),
            workflow=WorkflowSettings.from_dict(data.get("workflow")),
            email=EmailSettings.from_dict(data.get("email")),
            document_log=WebhookSettings.from_dict(data.get("document_log")),
            task_tracker=WebhookSettings.from_dict(data.get("task_tracker")),
            chat=ChatSettings.from_dict(data.get("chat")),
            scheduler=SchedulerSettings.from_dict(data.get("scheduler")),
        )


def load_settings(path: Optional[Path | str] = None) -> TradingSettings:
    """
    Load settings from YAML.

    Args:
        path: YAML file; default get_config_path(). A missing file yields defaults.

    Returns:
        TradingSettings
    """
    path = Path(path) if path else get_config_path()
    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return TradingSettings()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    logger.info("Loaded settings from %s", path)
    return TradingSettings.from_dict(data)


_settings: Optional[TradingSettings] = None


def get_settings() -> TradingSettings:
    """Get global settings (loaded on first use)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Optional[TradingSettings]) -> None:
    global _settings
    _settings = settings
