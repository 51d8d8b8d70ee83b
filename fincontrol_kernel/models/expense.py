"""
Module: fincontrol_kernel.models.expense
Responsibility: ORM persistence for recorded expenses.  A Bill settles an
    Expense; the bill's amount is always the expense's current value.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - value > 0 (ck_expense_value_positive).
    - category is required; the bank link is optional.
    - Deleting the linked bank deletes the expense (ON DELETE CASCADE).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fincontrol_kernel.db.base import TimestampedBase
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.category import Category


class Expense(TimestampedBase):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("value > 0", name="ck_expense_value_positive"),
        Index("idx_expense_user", "user_id"),
        Index("idx_expense_category", "category_id"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    value: Mapped[Decimal] = mapped_column(nullable=False)

    expense_date: Mapped[date] = mapped_column(nullable=False)

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
        return f"<Expense {self.name}: {self.value}>"
