"""
Declarative base shared by every FinControl table.

Each row gets a random UUID primary key kept as 36-character text, so the
same schema runs on PostgreSQL and SQLite.  Python annotations map onto
column types once here: ``Decimal`` becomes the 2-place money column,
``datetime`` is always timezone-aware, ``date`` is a plain DATE.

Nothing under models/, services/ or selectors/ may be imported from this
module; it sits at the bottom of the kernel.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from fincontrol_kernel.db.types import MONEY_PRECISION, MONEY_SCALE


def _now() -> datetime:
    return datetime.now(UTC)


class UUIDString(TypeDecorator):
    """Python ``UUID`` on the way in and out, canonical text in the column."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(MONEY_PRECISION, MONEY_SCALE),
        datetime: DateTime(timezone=True),
        date: Date,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """
    Adds ``created_at`` and ``updated_at``.

    Both are filled on the Python side at INSERT, so they can be read right
    after a flush; ``updated_at`` moves forward on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        default=_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_now, onupdate=_now, server_default=func.now(), nullable=False
    )


__all__ = ["UUID", "Base", "TimestampedBase", "UUIDString"]
