"""
Workflow scheduler: run configured workflow jobs on cron expressions.

Loads jobs from settings (scheduler.jobs). Each job names a workflow kind and a symbol with
channel flags; on a matching minute the scheduler builds a WorkflowConfig and runs it.

Classes:
    WorkflowScheduler   Background loop + run_pending() tick

WorkflowScheduler methods:
    .add_job(job: JobSettings) -> None
    .remove_job(name: str) -> None
    .get_jobs() -> list[JobSettings]
    .run_pending(now=None) -> list[str]     Run due jobs once; returns names of jobs run
    .run_job_now(name: str) -> Optional[WorkflowResult]
    .start() / .stop()
    .is_running -> bool

Scheduling rules:
    - Cron match via croniter on the scheduler clock (UTC)
    - A job runs at most once per matching minute
    - A failing job is logged; the loop keeps going
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from croniter import croniter

from ..config import JobSettings, SchedulerSettings
from ..control.clock import Clock, get_clock
from ..workflow.models import WorkflowConfig, WorkflowResult
from ..workflow.orchestrator import TradingWorkflow

logger = logging.getLogger(__name__)


def _minute_key(now: datetime) -> str:
    return now.strftime("%Y-%m-%dT%H:%M")


class WorkflowScheduler:
    """Cron scheduler for trading workflow jobs."""

    def __init__(
        self,
        workflow: TradingWorkflow,
        jobs: Optional[list[JobSettings]] = None,
        clock: Optional[Clock] = None,
        poll_interval: float = 30.0,
        default_symbol: str = "AAPL",
    ):
        self.workflow = workflow
        self.jobs: dict[str, JobSettings] = {}
        self._clock = clock or get_clock()
        self.poll_interval = poll_interval
        self.default_symbol = default_symbol
        self._last_run: dict[str, str] = {}
        self._lock = threading.Lock()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        for job in jobs or []:
            self.add_job(job)

    @classmethod
    def from_settings(
        cls,
        workflow: TradingWorkflow,
        settings: SchedulerSettings,
        default_symbol: str = "AAPL",
    ) -> WorkflowScheduler:
        return cls(workflow, settings.jobs, poll_interval=settings.poll_interval, default_symbol=default_symbol)

    def add_job(self, job: JobSettings) -> None:
        """Add job; raises ValueError on an invalid cron expression."""
        if not croniter.is_valid(job.cron):
            raise ValueError(f"Invalid cron for job {job.name}: {job.cron!r}")
        with self._lock:
            self.jobs[job.name] = job
        logger.info("Added job: %s (%s, cron=%s)", job.name, job.kind, job.cron)

    def remove_job(self, name: str) -> None:
        with self._lock:
            if self.jobs.pop(name, None) is not None:
                self._last_run.pop(name, None)
                logger.info("Removed job: %s", name)

    def get_jobs(self) -> list[JobSettings]:
        with self._lock:
            return list(self.jobs.values())

    def _config_for(self, job: JobSettings) -> WorkflowConfig:
        return WorkflowConfig(
            symbol=(job.symbol or self.default_symbol).upper(),
            enable_email=job.enable_email,
            enable_document_log=job.enable_document_log,
            enable_task_tracker=job.enable_task_tracker,
            enable_chat_alert=job.enable_chat_alert,
            user_id=f"scheduler:{job.name}",
        )

    def _runner_for(self, kind: str) -> Callable[[WorkflowConfig], WorkflowResult]:
        if kind == "morning":
            return self.workflow.run_morning_briefing
        if kind == "evening":
            return self.workflow.run_evening_review
        return self.workflow.run

    def _execute_job(self, job: JobSettings) -> Optional[WorkflowResult]:
        logger.info("Running job %s (%s %s)", job.name, job.kind, job.symbol or self.default_symbol)
        try:
            result = self._runner_for(job.kind)(self._config_for(job))
        except Exception as e:
            logger.error("Job %s failed: %s", job.name, e, exc_info=True)
            return None
        if result.success:
            logger.info("Job %s completed: actions=%s errors=%s", job.name, result.actions.to_dict(), result.errors)
        else:
            logger.warning("Job %s failed: %s", job.name, result.errors)
        return result

    def run_pending(self, now: Optional[datetime] = None) -> list[str]:
        """
        Run every enabled job whose cron matches `now` and that has not run this minute.

        Args:
            now: Tick time (default: scheduler clock)

        Returns:
            Names of jobs run, in job order
        """
        now = now or self._clock.now()
        minute = _minute_key(now)
        due: list[JobSettings] = []
        with self._lock:
            for name, job in self.jobs.items():
                if not job.enabled or self._last_run.get(name) == minute:
                    continue
                try:
                    matched = croniter.match(job.cron, now)
                except Exception as e:
                    logger.error("Cron match failed for job %s: %s", name, e)
                    continue
                if matched:
                    self._last_run[name] = minute
                    due.append(job)
        for job in due:
            self._execute_job(job)
        return [job.name for job in due]

    def run_job_now(self, name: str) -> Optional[WorkflowResult]:
        """Run one job immediately (ignores cron); None if unknown or disabled."""
        with self._lock:
            job = self.jobs.get(name)
        if job is None or not job.enabled:
            return None
        return self._execute_job(job)

    def start(self) -> None:
        """Start background loop."""
        if self._running:
            logger.warning("Scheduler already running")
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="workflow-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started (%s jobs, poll %.0fs)", len(self.jobs), self.poll_interval)

    def stop(self) -> None:
        """Stop background loop."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run_loop(self) -> None:
        logger.info("Scheduler main loop started")
        while self._running:
            try:
                self.run_pending()
            except Exception as e:
                logger.error("Scheduler loop error: %s", e, exc_info=True)
            if self._stop_event.wait(timeout=self.poll_interval):
                break
        logger.info("Scheduler main loop ended")

    @property
    def is_running(self) -> bool:
        return self._running
