"""Database layer - engine, base classes, and column types."""

from fincontrol_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from fincontrol_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from fincontrol_kernel.db.types import CurrencyTag, LongText, Money, ShortText

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "Money",
    "CurrencyTag",
    "ShortText",
    "LongText",
]
