"""
Injectable time source.

Services and jobs ask a ``Clock`` for "now" and "today" instead of calling
``datetime.now()`` themselves, so overdue sweeps and auto-settlement can be
exercised against any calendar day.  ``SystemClock`` is the only place in
the kernel that reads the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):
    """Time source handed to every service and job at construction."""

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current instant."""

    def today(self) -> date:
        """Calendar day of ``now()`` in the clock's own timezone."""
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in the business timezone (UTC unless given)."""

    def __init__(self, tz: tzinfo | None = None):
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` keeps returning the same instant until the test moves it with
    ``set_time`` or ``advance_days``.
    """

    _DEFAULT_INSTANT = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def __init__(self, instant: datetime | None = None):
        self._instant = instant or self._DEFAULT_INSTANT

    @classmethod
    def on(cls, day: date, hour: int = 12) -> "DeterministicClock":
        """Clock frozen at ``hour``:00 UTC on ``day``."""
        return cls(datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._instant

    def set_time(self, instant: datetime) -> None:
        self._instant = instant

    def advance_days(self, days: int = 1) -> None:
        self._instant += timedelta(days=days)
