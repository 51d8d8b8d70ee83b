"""
Module: fincontrol_kernel.models.extra_income
Responsibility: ORM persistence for recorded extra incomes.  Recording an
    income moves no money; its Receivable does that when settled.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (ck_extra_income_amount_positive).
    - bank_id is required by the service at creation but nullable in
      storage, so a receivable can observe a missing bank link.
"""

from datetime import date as Date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fincontrol_kernel.db.base import TimestampedBase
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.category import Category


class ExtraIncome(TimestampedBase):
    __tablename__ = "extra_incomes"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_extra_income_amount_positive"),
        Index("idx_extra_income_user", "user_id"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    date: Mapped[Date] = mapped_column(nullable=False)

    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    bank_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("banks.id", ondelete="CASCADE"),
        nullable=True,
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    category: Mapped[Category] = relationship()

    bank: Mapped[Bank | None] = relationship()

    def __repr__(self) -> str:
        return f"<ExtraIncome {self.name}: {self.amount}>"
