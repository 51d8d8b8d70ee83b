"""
Module: fincontrol_kernel.selectors.bill_selector
Responsibility: Filtered bill listing and the candidate queries behind the
    overdue and auto-pay jobs.
Architecture position: Kernel > Selectors.

The job queries return ids only.  Each job re-reads every candidate under a
row lock and re-checks the condition before acting, so a candidate settled
in between is skipped rather than processed twice.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from fincontrol_kernel.domain.dtos import BillFilter
from fincontrol_kernel.domain.lifecycle import BillStatus, parse_choice
from fincontrol_kernel.models.bill import Bill
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.selectors.base import BaseSelector


class BillSelector(BaseSelector[Bill]):
    """Read-only queries over bills."""

    def list_for_user(self, user_id: UUID, filters: BillFilter | None = None) -> list[Bill]:
        """
        Bills owned by ``user_id`` matching every set filter field.

        The category filter joins through the bill's expense.  Ordered by
        due date, then id, for stable output.
        """
        filters = filters or BillFilter()
        stmt = (
            select(Bill)
            .where(Bill.user_id == user_id)
            .options(selectinload(Bill.expense))
        )

        if filters.status is not None:
            status = parse_choice(BillStatus, filters.status, "status")
            stmt = stmt.where(Bill.status == status.value)
        if filters.expense_category_id is not None:
            stmt = stmt.join(Expense, Bill.expense_id == Expense.id).where(
                Expense.category_id == filters.expense_category_id
            )
        if filters.bank_id is not None:
            stmt = stmt.where(Bill.bank_id == filters.bank_id)
        if filters.due_from is not None:
            stmt = stmt.where(Bill.due_date >= filters.due_from)
        if filters.due_to is not None:
            stmt = stmt.where(Bill.due_date <= filters.due_to)

        stmt = stmt.order_by(Bill.due_date, Bill.id)
        return list(self.session.execute(stmt).scalars().all())

    def exists_for_expense(self, expense_id: UUID) -> bool:
        stmt = select(Bill.id).where(Bill.expense_id == expense_id)
        return self.session.execute(stmt).first() is not None

    def overdue_candidate_ids(self, today: date) -> list[UUID]:
        """PENDING bills whose due date is before ``today``."""
        stmt = (
            select(Bill.id)
            .where(
                Bill.status == BillStatus.PENDING.value,
                Bill.due_date < today,
            )
            .order_by(Bill.due_date, Bill.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def auto_pay_candidate_ids(self, today: date) -> list[UUID]:
        """PENDING auto-pay bills with a bank, due exactly ``today``."""
        stmt = (
            select(Bill.id)
            .where(
                Bill.status == BillStatus.PENDING.value,
                Bill.auto_pay.is_(True),
                Bill.due_date == today,
                Bill.bank_id.is_not(None),
            )
            .order_by(Bill.id)
        )
        return list(self.session.execute(stmt).scalars().all())
