"""
Pure cron evaluation for the daily job triggers.

Contract:
    ``parse_cron``, ``matches_cron``, ``next_fire_time`` and ``is_due`` are
    PURE: no I/O and no clock reads.  The scheduler passes in the current
    time from its injected Clock.

Supported syntax per field: ``*``, ``N``, ``N-M``, ``*/S``, ``N-M/S`` and
comma-separated lists of those.  Day of week uses cron numbering
(0 = Sunday).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# Searching a whole leap year covers every satisfiable expression
_MAX_SCAN_MINUTES = 366 * 24 * 60


@dataclass(frozen=True)
class CronSpec:
    """Parsed 5-field cron expression; each field is the set of allowed values."""

    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]


# (field name, lowest value, highest value)
_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day of month", 1, 31),
    ("month", 1, 12),
    ("day of week", 0, 6),
)


def _bounds(text: str, low: int, high: int) -> tuple[int, int]:
    if text == "*":
        return low, high
    if "-" in text:
        first, last = (int(v) for v in text.split("-", 1))
        return first, last
    value = int(text)
    return value, value


def _parse_field(text: str, name: str, low: int, high: int) -> frozenset[int]:
    """
    Expand one cron field into its allowed values.

    Raises:
        ValueError: malformed syntax, a non-positive step, a reversed range,
            or a value outside ``[low, high]``.
    """
    allowed: set[int] = set()
    for term in text.split(","):
        term = term.strip()
        step = 1
        if "/" in term:
            term, step_text = term.split("/", 1)
            step = int(step_text)
            if step <= 0:
                raise ValueError(f"{name}: step must be positive, got {step}")
            if term != "*" and "-" not in term:
                # "N/S" means "from N to the top, every S"
                term = f"{term}-{high}"

        first, last = _bounds(term, low, high)
        if first > last:
            raise ValueError(f"{name}: range {first}-{last} is reversed")
        if first < low or last > high:
            raise ValueError(f"{name}: {term} outside [{low}, {high}]")
        allowed.update(range(first, last + 1, step))
    return frozenset(allowed)


def parse_cron(expression: str) -> CronSpec:
    """
    Parse ``minute hour day_of_month month day_of_week``.

    Raises:
        ValueError: wrong field count or an invalid field.
    """
    parts = expression.split()
    if len(parts) != len(_FIELDS):
        raise ValueError(
            f"Cron expression needs {len(_FIELDS)} fields, got {len(parts)}: "
            f"{expression!r}"
        )
    values = [
        _parse_field(part, name, low, high)
        for part, (name, low, high) in zip(parts, _FIELDS)
    ]
    return CronSpec(*values)


def matches_cron(spec: CronSpec, moment: datetime) -> bool:
    # datetime.weekday(): Monday=0; cron: Sunday=0
    cron_weekday = (moment.weekday() + 1) % 7
    return (
        moment.minute in spec.minutes
        and moment.hour in spec.hours
        and moment.day in spec.days_of_month
        and moment.month in spec.months
        and cron_weekday in spec.days_of_week
    )


def next_fire_time(spec: CronSpec, after: datetime) -> datetime:
    """
    First whole minute strictly after ``after`` that matches ``spec``.

    Raises:
        ValueError: nothing matches within a year (e.g. ``0 0 31 2 *``).
    """
    candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    for _ in range(_MAX_SCAN_MINUTES):
        if matches_cron(spec, candidate):
            return candidate
        candidate += timedelta(minutes=1)
    raise ValueError(f"Cron spec never fires within a year after {after}")


def is_due(next_run_at: datetime | None, as_of: datetime) -> bool:
    """A trigger is due once the clock reaches its next fire time."""
    return next_run_at is not None and as_of >= next_run_at
