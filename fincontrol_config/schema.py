"""
Runtime settings schema (``fincontrol_config.schema``).

Frozen dataclasses, validated in ``__post_init__`` so an invalid file fails
at load time rather than when the first job fires.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fincontrol_batch.domain.schedule import parse_cron
from fincontrol_batch.domain.types import JobTrigger

DEFAULT_DATABASE_URL = "sqlite:///fincontrol.db"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"database.max_overflow must be >= 0, got {self.max_overflow}")

    @property
    def pool_options(self) -> dict[str, int]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
        }


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self):
        normalized = self.level.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {_LOG_LEVELS}, got {self.level!r}")
        object.__setattr__(self, "level", normalized)

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


def default_triggers() -> tuple[JobTrigger, ...]:
    """Overdue marking at 01:00, settlement at 02:00."""
    return (
        JobTrigger(
            name="mark_overdue",
            cron_expression="0 1 * * *",
            task_types=("bills.mark_overdue", "receivables.mark_overdue"),
        ),
        JobTrigger(
            name="auto_settle",
            cron_expression="0 2 * * *",
            task_types=("bills.auto_pay", "receivables.auto_receipt"),
        ),
    )


@dataclass(frozen=True)
class SchedulerSettings:
    enabled: bool = True
    timezone: str = "UTC"
    tick_interval_seconds: float = 30
    triggers: tuple[JobTrigger, ...] = field(default_factory=default_triggers)

    def __post_init__(self):
        if self.tick_interval_seconds <= 0:
            raise ValueError(
                f"scheduler.tick_interval_seconds must be > 0, got {self.tick_interval_seconds}"
            )
        for trigger in self.triggers:
            try:
                parse_cron(trigger.cron_expression)
            except ValueError as exc:
                raise ValueError(f"scheduler.triggers.{trigger.name}: {exc}") from exc


@dataclass(frozen=True)
class AppSettings:
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
