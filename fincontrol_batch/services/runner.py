"""
JobRunner -- runs one registered task in its own session.

Contract:
    ``run(task_type)`` never raises for a task failure.  It opens a fresh
    session, binds ``job_name`` and a correlation id into the LogContext,
    runs the task, and returns a TaskRunResult.  A task exception is rolled
    back, logged with its traceback, and reported as FAILED.

Invariants enforced:
    - One session per task run; sessions are always closed.
    - All timestamps come from the injected Clock.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session

from fincontrol_kernel.domain.clock import Clock, SystemClock
from fincontrol_kernel.logging_config import LogContext, get_logger

from fincontrol_batch.domain.types import TaskRunResult, TaskRunStatus
from fincontrol_batch.tasks.base import TaskRegistry

logger = get_logger("batch.runner")


class JobRunner:
    """Executes tasks from a TaskRegistry, one isolated session each."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        task_registry: TaskRegistry,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._registry = task_registry
        self._clock = clock or SystemClock()

    @property
    def task_registry(self) -> TaskRegistry:
        return self._registry

    def run(self, task_type: str) -> TaskRunResult:
        """
        Run one task now.

        Raises:
            KeyError: ``task_type`` is not registered.  Unknown task names are
                configuration errors, not job failures.
        """
        task = self._registry.get(task_type)
        correlation_id = str(uuid4())
        started_at = self._clock.now()

        with LogContext.bind(job_name=task_type, correlation_id=correlation_id):
            logger.info("task_started", extra={"task_type": task_type})
            session = self._session_factory()
            try:
                summary = task.run(session, self._clock)
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.exception("task_failed", extra={"task_type": task_type})
                return TaskRunResult(
                    task_type=task_type,
                    status=TaskRunStatus.FAILED,
                    correlation_id=correlation_id,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    started_at=started_at,
                    completed_at=self._clock.now(),
                )
            finally:
                session.close()

            summary_fields = asdict(summary)
            logger.info(
                "task_completed",
                extra={"task_type": task_type, **summary.log_fields()},
            )
            return TaskRunResult(
                task_type=task_type,
                status=TaskRunStatus.SUCCEEDED,
                correlation_id=correlation_id,
                summary=summary_fields,
                started_at=started_at,
                completed_at=self._clock.now(),
            )
