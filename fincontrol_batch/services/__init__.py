"""Job runner and scheduler."""

from fincontrol_batch.services.runner import JobRunner
from fincontrol_batch.services.scheduler import DailyJobScheduler

__all__ = ["JobRunner", "DailyJobScheduler"]
