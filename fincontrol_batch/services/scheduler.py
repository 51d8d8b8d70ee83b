"""
DailyJobScheduler -- In-process polling scheduler for the daily triggers.

Contract:
    Polls on a configurable interval.  Each active trigger fires when the
    clock reaches its next cron fire time; its tasks then run in the listed
    order through the JobRunner, each in its own session.

Failure isolation:
    A failing task is logged by the JobRunner and the trigger's remaining
    tasks still run.  An unexpected error inside a tick is logged and the
    polling loop keeps going.

Catch-up:
    None.  After firing, the next fire time is computed from *now*, so a
    process that was down for three days fires once, not three times.  The
    date-based job queries pick up everything that became due meanwhile.

Non-goals:
    Not a distributed scheduler (no leader election).
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from fincontrol_kernel.domain.clock import Clock, SystemClock
from fincontrol_kernel.logging_config import get_logger

from fincontrol_batch.domain.schedule import CronSpec, is_due, next_fire_time, parse_cron
from fincontrol_batch.domain.types import JobTrigger, TaskRunResult, TriggerRunResult
from fincontrol_batch.services.runner import JobRunner

logger = get_logger("batch.scheduler")


class DailyJobScheduler:
    """Cron-timed trigger evaluation with start/stop thread lifecycle.

    Contract:
        - ``tick()`` evaluates every trigger and fires the due ones.
        - ``start()`` / ``stop()`` run ``tick()`` on a background thread.
        - ``run_now(task_type)`` runs one task immediately.
    """

    def __init__(
        self,
        runner: JobRunner,
        triggers: tuple[JobTrigger, ...] | list[JobTrigger],
        clock: Clock | None = None,
        tick_interval_seconds: float = 30,
    ):
        self._runner = runner
        self._clock = clock or SystemClock()
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._triggers: tuple[JobTrigger, ...] = tuple(triggers)
        self._specs: dict[str, CronSpec] = {}
        self._next_run_at: dict[str, datetime | None] = {}

        names = [t.name for t in self._triggers]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate trigger names: {names}")

        # A trigger whose minute is "now" fires on the first tick
        reference = self._clock.now() - timedelta(minutes=1)
        for trigger in self._triggers:
            for task_type in trigger.task_types:
                self._runner.task_registry.get(task_type)
            spec = parse_cron(trigger.cron_expression)
            self._specs[trigger.name] = spec
            self._next_run_at[trigger.name] = next_fire_time(spec, reference)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def triggers(self) -> tuple[JobTrigger, ...]:
        return self._triggers

    def next_run_at(self, trigger_name: str) -> datetime | None:
        return self._next_run_at[trigger_name]

    def tick(self) -> list[TriggerRunResult]:
        """Fire every due trigger (public for testing)."""
        now = self._clock.now()
        fired: list[TriggerRunResult] = []

        for trigger in self._triggers:
            if self._stop_event.is_set():
                break
            if not trigger.is_active:
                continue
            if not is_due(self._next_run_at[trigger.name], now):
                continue

            try:
                fired.append(self._fire(trigger, now))
            except Exception:
                logger.exception("trigger_fire_failed", extra={"trigger": trigger.name})
            finally:
                self._next_run_at[trigger.name] = next_fire_time(
                    self._specs[trigger.name], now
                )

        return fired

    def run_now(self, task_type: str) -> TaskRunResult:
        """Run one task immediately, outside the schedule."""
        logger.info("task_run_requested", extra={"task_type": task_type})
        return self._runner.run(task_type)

    def start(self) -> None:
        """Start polling in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="fincontrol-job-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "triggers": [t.name for t in self._triggers],
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current tick to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)

    def _fire(self, trigger: JobTrigger, now: datetime) -> TriggerRunResult:
        logger.info(
            "trigger_fired",
            extra={"trigger": trigger.name, "tasks": list(trigger.task_types)},
        )
        results = tuple(self._runner.run(task_type) for task_type in trigger.task_types)
        result = TriggerRunResult(trigger_name=trigger.name, fired_at=now, task_results=results)
        logger.info(
            "trigger_completed",
            extra={"trigger": trigger.name, "failed_tasks": list(result.failed_tasks)},
        )
        return result
