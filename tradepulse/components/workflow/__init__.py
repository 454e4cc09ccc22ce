"""
TradePulse workflow: orchestrate signal generation, persistence, briefing and notification.

Classes:
    WorkflowConfig, WorkflowResult, ChannelActions, WorkflowStatus, WorkflowType,
    WorkflowStepLogEntry   Models; see models.py
    TradingWorkflow, ChannelOutcome   Orchestrator; see orchestrator.py

Functions:
    build_workflow(settings, store=None) -> TradingWorkflow
"""

from .models import (
    CHANNELS,
    ChannelActions,
    WorkflowConfig,
    WorkflowResult,
    WorkflowStatus,
    WorkflowStepLogEntry,
    WorkflowType,
)
from .orchestrator import (
    CHAT_ALERT_MIN_CONFIDENCE,
    ChannelOutcome,
    TradingWorkflow,
    build_workflow,
)

__all__ = [
    "CHANNELS",
    "ChannelActions",
    "WorkflowConfig",
    "WorkflowResult",
    "WorkflowStatus",
    "WorkflowStepLogEntry",
    "WorkflowType",
    "CHAT_ALERT_MIN_CONFIDENCE",
    "ChannelOutcome",
    "TradingWorkflow",
    "build_workflow",
]
