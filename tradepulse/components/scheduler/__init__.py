"""
Scheduler: cron-triggered trading workflows (signal, morning briefing, evening review).

Classes:
    WorkflowScheduler   See scheduler.py
"""

from .scheduler import WorkflowScheduler

__all__ = ["WorkflowScheduler"]
