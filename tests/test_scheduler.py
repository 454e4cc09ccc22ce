"""Tests for the cron workflow scheduler."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from tradepulse.components.config import JobSettings, SchedulerSettings
from tradepulse.components.scheduler import WorkflowScheduler


def _at(hour, minute, day=2):
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def workflow():
    wf = Mock()
    for runner in (wf.run, wf.run_morning_briefing, wf.run_evening_review):
        runner.return_value = Mock(success=True, errors=[])
    return wf


class TestRunPending:
    """Cron matching and once-per-minute semantics."""

    def test_runs_matching_job(self, workflow, clock):
        job = JobSettings(name="hourly", cron="30 14-20 * * 1-5", symbol="msft", enable_email=True)
        scheduler = WorkflowScheduler(workflow, [job], clock=clock)

        assert scheduler.run_pending(_at(14, 30)) == ["hourly"]
        config = workflow.run.call_args.args[0]
        assert config.symbol == "MSFT"
        assert config.enable_email is True
        assert config.enable_chat_alert is False
        assert config.user_id == "scheduler:hourly"

    def test_once_per_minute(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, [JobSettings(name="hourly", cron="30 * * * *")], clock=clock)
        assert scheduler.run_pending(_at(14, 30)) == ["hourly"]
        assert scheduler.run_pending(_at(14, 30).replace(second=45)) == []
        assert scheduler.run_pending(_at(14, 31)) == []
        assert scheduler.run_pending(_at(15, 30)) == ["hourly"]
        assert workflow.run.call_count == 2

    def test_weekend_not_matched(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, [JobSettings(name="hourly", cron="30 14 * * 1-5")], clock=clock)
        assert scheduler.run_pending(_at(14, 30, day=6)) == []

    def test_kind_selects_workflow(self, workflow, clock):
        jobs = [
            JobSettings(name="morning", cron="0 13 * * *", kind="morning"),
            JobSettings(name="evening", cron="0 13 * * *", kind="evening"),
        ]
        scheduler = WorkflowScheduler(workflow, jobs, clock=clock, default_symbol="nvda")
        assert scheduler.run_pending(_at(13, 0)) == ["morning", "evening"]
        workflow.run.assert_not_called()
        assert workflow.run_morning_briefing.call_args.args[0].symbol == "NVDA"
        workflow.run_evening_review.assert_called_once()

    def test_disabled_job_skipped(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, [JobSettings(name="off", cron="* * * * *", enabled=False)],
                                      clock=clock)
        assert scheduler.run_pending(_at(9, 0)) == []
        assert scheduler.run_job_now("off") is None

    def test_failing_job_does_not_stop_others(self, workflow, clock):
        workflow.run.side_effect = RuntimeError("boom")
        jobs = [
            JobSettings(name="signal", cron="* * * * *"),
            JobSettings(name="evening", cron="* * * * *", kind="evening"),
        ]
        scheduler = WorkflowScheduler(workflow, jobs, clock=clock)
        assert scheduler.run_pending(_at(9, 0)) == ["signal", "evening"]
        workflow.run_evening_review.assert_called_once()

    def test_defaults_to_clock(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, [JobSettings(name="j", cron="30 15 * * *")], clock=clock)
        assert scheduler.run_pending() == ["j"]


class TestJobs:
    """Job management."""

    def test_invalid_cron(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, clock=clock)
        with pytest.raises(ValueError, match="Invalid cron"):
            scheduler.add_job(JobSettings(name="bad", cron="not a cron"))
        assert scheduler.get_jobs() == []

    def test_add_remove(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, clock=clock)
        scheduler.add_job(JobSettings(name="a", cron="0 * * * *"))
        assert [j.name for j in scheduler.get_jobs()] == ["a"]
        scheduler.remove_job("a")
        scheduler.remove_job("a")
        assert scheduler.get_jobs() == []

    def test_run_job_now(self, workflow, clock):
        scheduler = WorkflowScheduler(workflow, [JobSettings(name="a", cron="0 0 1 1 *")], clock=clock)
        assert scheduler.run_job_now("a") is workflow.run.return_value
        assert scheduler.run_job_now("missing") is None

    def test_from_settings(self, workflow):
        settings = SchedulerSettings(enabled=True, poll_interval=5,
                                     jobs=[JobSettings(name="a", cron="0 * * * *")])
        scheduler = WorkflowScheduler.from_settings(workflow, settings, default_symbol="TSLA")
        assert scheduler.poll_interval == 5
        assert scheduler.default_symbol == "TSLA"
        assert [j.name for j in scheduler.get_jobs()] == ["a"]


class TestLifecycle:
    """Background loop."""

    def test_start_stop(self, workflow):
        scheduler = WorkflowScheduler(workflow, poll_interval=0.05)
        scheduler.start()
        try:
            assert scheduler.is_running is True
            scheduler.start()
        finally:
            scheduler.stop()
        assert scheduler.is_running is False
