"""
Module: fincontrol_kernel.models.bill
Responsibility: ORM persistence for accounts payable.
Architecture position: Kernel > Models.  May import from db/ and domain/
    enums only.

Invariants enforced:
    - At most one bill per expense (uq_bill_expense).
    - status is one of BillStatus; PAID and PAID_LATE are terminal and the
      row is immutable from then on (enforced by BillService against
      BILL_WORKFLOW).
    - payment_date is set exactly when the status becomes terminal.
    - version is a version_id_col: a terminal-state write racing another
      writer raises StaleDataError instead of overwriting it.

Failure modes:
    - IntegrityError on a second bill for the same expense if two creates
      race past the service-level DuplicateError check.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fincontrol_kernel.db.base import TimestampedBase
from fincontrol_kernel.domain.lifecycle import BillStatus
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.expense import Expense


class Bill(TimestampedBase):
    """
    An obligation to pay a recorded expense by ``due_date``.

    The amount is not stored: payment always uses the expense's value at
    the moment of payment.
    """

    __tablename__ = "bills"

    __table_args__ = (
        UniqueConstraint("expense_id", name="uq_bill_expense"),
        Index("idx_bill_user_status", "user_id", "status"),
        Index("idx_bill_status_due", "status", "due_date"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    expense_id: Mapped[UUID] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Payment source for auto-pay
    bank_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("banks.id", ondelete="SET NULL"),
        nullable=True,
    )

    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)

    due_date: Mapped[date] = mapped_column(nullable=False)

    auto_pay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillStatus.PENDING.value,
    )

    payment_date: Mapped[date | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    expense: Mapped[Expense] = relationship()

    bank: Mapped[Bank | None] = relationship()

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Bill {self.id} {self.status} due {self.due_date}>"
