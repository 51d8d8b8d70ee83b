"""
Module: fincontrol_kernel.models.bank
Responsibility: ORM persistence for bank accounts and their balances.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - balance >= 0 (ck_bank_balance_non_negative).  The Balance Mutator
      rejects overdrafts before they reach the database; the CHECK is the
      last line.
    - balance is written only by BalanceService.
    - version is a SQLAlchemy version_id_col: a flush against a row that
      changed since it was loaded raises StaleDataError, which services
      surface as OptimisticLockError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fincontrol_kernel.db.base import TimestampedBase

DEFAULT_BANK_DESCRIPTION = "Not provided"


class Bank(TimestampedBase):
    """A user's bank account."""

    __tablename__ = "banks"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_bank_balance_non_negative"),
        Index("idx_bank_user", "user_id"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=DEFAULT_BANK_DESCRIPTION,
    )

    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Bank {self.name}: {self.balance}>"
