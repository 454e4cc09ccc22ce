"""
Workflow models: run configuration, per-channel outcome flags, step log entries and run result.

Classes:
    WorkflowConfig        symbol, enable_* per channel, optional user_id / project_id (audit context)
    ChannelActions        email, document_log, task_tracker, chat_alert (True = delivered)
    WorkflowStatus        Enum: RUNNING, COMPLETED, FAILED
    WorkflowType          Enum: trading_signal, morning_briefing, evening_review
    WorkflowStepLogEntry  One audit row per step
    WorkflowResult        success, signal?, briefing?, actions, errors
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..briefing.briefing import Briefing
    from ..signals.signal_models import TradingSignal

CHANNEL_EMAIL = "email"
CHANNEL_DOCUMENT_LOG = "document_log"
CHANNEL_TASK_TRACKER = "task_tracker"
CHANNEL_CHAT_ALERT = "chat_alert"

# Dispatch order
CHANNELS = (CHANNEL_EMAIL, CHANNEL_DOCUMENT_LOG, CHANNEL_TASK_TRACKER, CHANNEL_CHAT_ALERT)


@dataclass(frozen=True)
class WorkflowConfig:
    """One workflow invocation."""
    symbol: str
    enable_email: bool = False
    enable_document_log: bool = False
    enable_task_tracker: bool = False
    enable_chat_alert: bool = False
    user_id: Optional[str] = None
    project_id: Optional[int] = None

    def channel_enabled(self, channel: str) -> bool:
        return bool(getattr(self, f"enable_{channel}"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowConfig:
        """Build from request / job data; unknown keys ignored."""
        symbol = data.get("symbol")
        if not symbol or not isinstance(symbol, str):
            raise ValueError("symbol is required")
        project_id = data.get("project_id")
        return cls(
            symbol=symbol.strip().upper(),
            enable_email=bool(data.get("enable_email", False)),
            enable_document_log=bool(data.get("enable_document_log", False)),
            enable_task_tracker=bool(data.get("enable_task_tracker", False)),
            enable_chat_alert=bool(data.get("enable_chat_alert", False)),
            user_id=data.get("user_id"),
            project_id=int(project_id) if project_id is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChannelActions:
    """Delivery flags; a flag is True only if that channel was attempted and succeeded."""
    email: bool = False
    document_log: bool = False
    task_tracker: bool = False
    chat_alert: bool = False

    def set(self, channel: str, delivered: bool) -> None:
        setattr(self, channel, delivered)

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


class WorkflowStatus(Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class WorkflowType(Enum):
    TRADING_SIGNAL = "trading_signal"
    MORNING_BRIEFING = "morning_briefing"
    EVENING_REVIEW = "evening_review"


@dataclass(frozen=True)
class WorkflowStepLogEntry:
    """Audit record for one workflow step."""
    symbol: str
    status: WorkflowStatus
    step: str
    message: str
    signal_id: Optional[str] = None
    user_id: Optional[str] = None
    project_id: Optional[int] = None
    workflow_type: WorkflowType = WorkflowType.TRADING_SIGNAL
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "status": self.status.value,
            "step": self.step,
            "message": self.message,
            "signal_id": self.signal_id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "workflow_type": self.workflow_type.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class WorkflowResult:
    """Outcome of one workflow run; errors keep the order they occurred in."""
    success: bool
    signal: Optional[TradingSignal] = None
    briefing: Optional[Briefing] = None
    actions: ChannelActions = field(default_factory=ChannelActions)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "signal": self.signal.to_dict() if self.signal else None,
            "briefing": self.briefing.to_dict() if self.briefing else None,
            "actions": self.actions.to_dict(),
            "errors": list(self.errors),
        }
