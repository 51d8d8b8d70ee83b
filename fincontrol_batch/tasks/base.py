"""
JobTask protocol and TaskRegistry.

Contract:
    ``JobTask`` is the interface every scheduled job implements: a unique
    ``task_type`` key, a description, and ``run()`` which does the whole job
    with the session it is given.
    ``TaskRegistry`` stores tasks keyed by ``task_type``.

Architecture:
    fincontrol_batch/tasks.  base.py imports no kernel services; the task
    modules next to it wrap the kernel's batch entry points.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from fincontrol_kernel.domain.clock import Clock
from fincontrol_kernel.domain.dtos import JobRunSummary


@runtime_checkable
class JobTask(Protocol):
    """
    One scheduled job.

    Contract:
        - ``run()`` owns its per-record transactions (the kernel services
          commit each record) and returns counters for the run.
        - ``run()`` may raise; the JobRunner logs the failure and moves on
          to the next task.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def run(self, session: Session, clock: Clock) -> JobRunSummary: ...


class TaskRegistry:
    """Registry mapping task_type strings to JobTask implementations.

    Contract:
        - ``register()`` adds a task; raises ValueError on duplicate.
        - ``get()`` retrieves by task_type; raises KeyError if missing.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, JobTask] = {}

    def register(self, task: JobTask) -> None:
        if task.task_type in self._tasks:
            raise ValueError(f"Task type '{task.task_type}' is already registered")
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> JobTask:
        try:
            return self._tasks[task_type]
        except KeyError:
            raise KeyError(
                f"No task registered for type '{task_type}'. "
                f"Available: {sorted(self._tasks)}"
            ) from None

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks
