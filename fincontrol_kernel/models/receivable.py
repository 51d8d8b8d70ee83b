"""
Module: fincontrol_kernel.models.receivable
Responsibility: ORM persistence for accounts receivable.
Architecture position: Kernel > Models.  May import from db/ and domain/
    enums only.

Invariants enforced:
    - At most one receivable per extra income (uq_receivable_extra_income).
    - RECEIVED and RECEIVED_LATE are terminal (RECEIVABLE_WORKFLOW).
    - The bank that gets credited is the extra income's bank; a receivable
      has no bank link of its own.
    - version is a version_id_col (see models.bill).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fincontrol_kernel.db.base import TimestampedBase
from fincontrol_kernel.domain.lifecycle import ReceivableStatus
from fincontrol_kernel.models.extra_income import ExtraIncome


class Receivable(TimestampedBase):
    __tablename__ = "receivables"

    __table_args__ = (
        UniqueConstraint("extra_income_id", name="uq_receivable_extra_income"),
        Index("idx_receivable_user_status", "user_id", "status"),
        Index("idx_receivable_status_due", "status", "due_date"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    extra_income_id: Mapped[UUID] = mapped_column(
        ForeignKey("extra_incomes.id", ondelete="CASCADE"),
        nullable=False,
    )

    receipt_method: Mapped[str] = mapped_column(String(20), nullable=False)

    due_date: Mapped[date] = mapped_column(nullable=False)

    automatic_bank_receipt: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReceivableStatus.PENDING.value,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    extra_income: Mapped[ExtraIncome] = relationship()

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Receivable {self.id} {self.status} due {self.due_date}>"
