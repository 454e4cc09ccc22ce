"""
TradePulse web: shared state for the Flask Blueprint (routes in routes.py).

Global state: _workflow, _scheduler.

Functions:
    get_workflow() -> Optional[TradingWorkflow]
    set_workflow(workflow) -> None
    get_scheduler() -> Optional[WorkflowScheduler]
    set_scheduler(scheduler) -> None
    get_store() -> SignalStore   Workflow's store, else the global signal store
"""

from __future__ import annotations

import logging
from typing import Optional

from tradepulse.components.scheduler import WorkflowScheduler
from tradepulse.components.signals.signal_store import SignalStore, get_signal_store
from tradepulse.components.workflow import TradingWorkflow

logger = logging.getLogger(__name__)

# ========== Global state ==========

_workflow: Optional[TradingWorkflow] = None

_scheduler: Optional[WorkflowScheduler] = None


def get_workflow() -> Optional[TradingWorkflow]:
    """Get global workflow."""
    return _workflow


def set_workflow(workflow: Optional[TradingWorkflow]) -> None:
    """Set global workflow."""
    global _workflow
    _workflow = workflow


def get_scheduler() -> Optional[WorkflowScheduler]:
    """Get global scheduler."""
    return _scheduler


def set_scheduler(scheduler: Optional[WorkflowScheduler]) -> None:
    """Set global scheduler."""
    global _scheduler
    _scheduler = scheduler


def get_store() -> SignalStore:
    """Store used by the API: the workflow's own store when it has one."""
    if _workflow is not None and _workflow.store is not None:
        return _workflow.store
    return get_signal_store()
