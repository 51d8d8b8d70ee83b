"""
fincontrol_batch.domain.types -- Pure frozen dataclasses for the job runner.

ZERO I/O.  Triggers describe *when* a group of tasks runs; run results
describe what happened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskRunStatus(str, Enum):
    """Outcome of one task invocation."""

    SUCCEEDED = "succeeded"  # Task returned; per-record failures are in the summary
    FAILED = "failed"  # Task raised; nothing after the failing record was processed


@dataclass(frozen=True)
class JobTrigger:
    """A cron-timed group of task types, run in the listed order."""

    name: str
    cron_expression: str
    task_types: tuple[str, ...]
    is_active: bool = True

    def __post_init__(self):
        if not self.name:
            raise ValueError("Trigger name is required")
        if not self.task_types:
            raise ValueError(f"Trigger {self.name} has no tasks")


@dataclass(frozen=True)
class TaskRunResult:
    """Immutable result of running one task through the JobRunner."""

    task_type: str
    status: TaskRunStatus
    correlation_id: str
    summary: dict[str, Any] = field(default_factory=dict)
    error_type: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskRunStatus.SUCCEEDED


@dataclass(frozen=True)
class TriggerRunResult:
    trigger_name: str
    fired_at: datetime
    task_results: tuple[TaskRunResult, ...] = ()

    @property
    def failed_tasks(self) -> tuple[str, ...]:
        return tuple(r.task_type for r in self.task_results if not r.succeeded)
