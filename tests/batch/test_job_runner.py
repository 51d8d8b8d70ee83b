"""
Tests for fincontrol_batch.services.runner.JobRunner.

JobRunner never raises for a task failure: the session is rolled back and
closed, the failure is logged with the job's correlation id, and the result
says FAILED.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from fincontrol_kernel.domain.clock import DeterministicClock
from fincontrol_kernel.domain.dtos import JobRunSummary
from fincontrol_kernel.domain.lifecycle import BillStatus

from fincontrol_batch.domain.types import TaskRunStatus
from fincontrol_batch.orchestrator import default_task_registry
from fincontrol_batch.services.runner import JobRunner
from fincontrol_batch.tasks.base import TaskRegistry

TODAY = date(2024, 6, 15)


class SessionSpy:
    def __init__(self):
        self.events: list[str] = []

    def commit(self):
        self.events.append("commit")

    def rollback(self):
        self.events.append("rollback")

    def close(self):
        self.events.append("close")


class FixedTask:
    task_type = "test.fixed"
    description = "Returns a fixed summary"

    def run(self, session, clock) -> JobRunSummary:
        return JobRunSummary(job_name=self.task_type, run_date=clock.today(), selected=2, processed=2)


class FailingTask:
    task_type = "test.failing"
    description = "Always raises"

    def run(self, session, clock) -> JobRunSummary:
        raise LookupError("no such thing")


@pytest.fixture
def spy() -> SessionSpy:
    return SessionSpy()


@pytest.fixture
def runner(spy) -> JobRunner:
    registry = TaskRegistry()
    registry.register(FixedTask())
    registry.register(FailingTask())
    clock = DeterministicClock(datetime(2024, 6, 15, 1, 0, tzinfo=timezone.utc))
    return JobRunner(lambda: spy, registry, clock)


class TestRun:

    def test_success_commits_and_closes(self, runner, spy):
        result = runner.run("test.fixed")

        assert result.status == TaskRunStatus.SUCCEEDED
        assert result.summary["processed"] == 2
        assert result.started_at == datetime(2024, 6, 15, 1, 0, tzinfo=timezone.utc)
        assert spy.events == ["commit", "close"]

    def test_failure_is_reported_not_raised(self, runner, spy):
        result = runner.run("test.failing")

        assert result.status == TaskRunStatus.FAILED
        assert not result.succeeded
        assert result.error_type == "LookupError"
        assert result.error_message == "no such thing"
        assert spy.events == ["rollback", "close"]

    def test_unknown_task_raises(self, runner, spy):
        with pytest.raises(KeyError, match="nope"):
            runner.run("nope")
        assert spy.events == []

    def test_each_run_gets_its_own_correlation_id(self, runner):
        assert runner.run("test.fixed").correlation_id != runner.run("test.fixed").correlation_id

    def test_logs_carry_job_context(self, runner, captured_logs):
        result = runner.run("test.failing")

        failed = [r for r in captured_logs() if r["message"] == "task_failed"][0]
        assert failed["job_name"] == "test.failing"
        assert failed["correlation_id"] == result.correlation_id
        assert failed["exc_type"] == "LookupError"


class TestWithDatabase:

    def test_runs_real_task_in_fresh_session(self, session_factory, session, make_bill, bill_service, user, clock):
        bill = make_bill(due_date=TODAY)
        clock.advance_days(1)
        runner = JobRunner(session_factory, default_task_registry(), clock)

        result = runner.run("bills.mark_overdue")

        assert result.succeeded
        assert result.summary["processed"] == 1
        assert result.summary["run_date"] == TODAY + timedelta(days=1)
        session.expire_all()
        assert bill_service.get(bill.id, user.id).status == BillStatus.OVERDUE
