"""
BatchOrchestrator -- composition root for the job runner.

Contract:
    Wires the TaskRegistry with the four daily tasks, creates the JobRunner,
    and creates the DailyJobScheduler.  Single place where batch
    dependencies are composed.

Invariants enforced:
    - Clock injection: the runner, the scheduler and every task share the
      orchestrator's Clock.
    - Nothing in fincontrol_kernel imports from here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from fincontrol_kernel.domain.clock import Clock, SystemClock
from fincontrol_kernel.logging_config import get_logger

from fincontrol_batch.domain.types import JobTrigger
from fincontrol_batch.services.runner import JobRunner
from fincontrol_batch.services.scheduler import DailyJobScheduler
from fincontrol_batch.tasks.base import TaskRegistry
from fincontrol_batch.tasks.bill_tasks import BillAutoPayTask, BillOverdueTask
from fincontrol_batch.tasks.receivable_tasks import (
    ReceivableAutoReceiptTask,
    ReceivableOverdueTask,
)

if TYPE_CHECKING:
    from fincontrol_config.schema import AppSettings

logger = get_logger("batch.orchestrator")


def default_task_registry() -> TaskRegistry:
    """A TaskRegistry holding the bill and receivable jobs."""
    registry = TaskRegistry()
    registry.register(BillOverdueTask())
    registry.register(BillAutoPayTask())
    registry.register(ReceivableOverdueTask())
    registry.register(ReceivableAutoReceiptTask())
    return registry


class BatchOrchestrator:
    """DI container for the job runner.

    Non-goals:
        - Does NOT start the scheduler; the caller decides.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        task_registry: TaskRegistry | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock or SystemClock()
        self._task_registry = (
            task_registry if task_registry is not None else default_task_registry()
        )
        self._runner = JobRunner(session_factory, self._task_registry, self._clock)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        clock: Clock | None = None,
        create_schema: bool = False,
    ) -> BatchOrchestrator:
        """
        Initialize the engine from ``settings`` and wire an orchestrator.

        ``create_schema=True`` creates missing tables (local runs only).
        """
        from fincontrol_kernel.db.engine import (
            create_tables,
            get_session_factory,
            init_engine_from_url,
        )
        from fincontrol_kernel.logging_config import configure_logging

        configure_logging(level=settings.logging.level)
        init_engine_from_url(
            settings.database.url,
            echo=settings.database.echo,
            **settings.database.pool_options,
        )
        if create_schema:
            create_tables()

        effective_clock = clock or SystemClock(ZoneInfo(settings.scheduler.timezone))
        orchestrator = cls(get_session_factory(), clock=effective_clock, settings=settings)
        logger.info(
            "batch_orchestrator_ready",
            extra={
                "tasks": list(orchestrator.task_registry.list_tasks()),
                "timezone": settings.scheduler.timezone,
            },
        )
        return orchestrator

    def create_scheduler(
        self,
        triggers: tuple[JobTrigger, ...] | None = None,
        tick_interval_seconds: float | None = None,
    ) -> DailyJobScheduler:
        """
        Build a scheduler for ``triggers``.

        Defaults come from the settings the orchestrator was built from, or
        the built-in 01:00 / 02:00 triggers.
        """
        settings = self._settings
        if triggers is None:
            if settings is not None:
                triggers = settings.scheduler.triggers
            else:
                from fincontrol_config.schema import default_triggers

                triggers = default_triggers()
        if tick_interval_seconds is None:
            tick_interval_seconds = (
                settings.scheduler.tick_interval_seconds if settings is not None else 30
            )
        return DailyJobScheduler(
            runner=self._runner,
            triggers=triggers,
            clock=self._clock,
            tick_interval_seconds=tick_interval_seconds,
        )

    @property
    def runner(self) -> JobRunner:
        return self._runner

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry
