"""
Module: fincontrol_kernel.selectors.receivable_selector
Responsibility: Paginated receivable listing and the candidate queries
    behind the overdue and auto-receipt jobs.
Architecture position: Kernel > Selectors.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from fincontrol_kernel.domain.dtos import PageRequest, ReceivableFilter
from fincontrol_kernel.domain.lifecycle import ReceivableStatus, parse_choice
from fincontrol_kernel.models.receivable import Receivable
from fincontrol_kernel.selectors.base import BaseSelector


class ReceivableSelector(BaseSelector[Receivable]):

    def _filtered(self, user_id: UUID, filters: ReceivableFilter):
        stmt = select(Receivable).where(Receivable.user_id == user_id)
        if filters.status is not None:
            status = parse_choice(ReceivableStatus, filters.status, "status")
            stmt = stmt.where(Receivable.status == status.value)
        if filters.due_from is not None:
            stmt = stmt.where(Receivable.due_date >= filters.due_from)
        if filters.due_to is not None:
            stmt = stmt.where(Receivable.due_date <= filters.due_to)
        return stmt

    def page_for_user(
        self,
        user_id: UUID,
        filters: ReceivableFilter | None = None,
        page: PageRequest | None = None,
    ) -> tuple[list[Receivable], int]:
        """Return one page of matching receivables and the total match count."""
        filters = filters or ReceivableFilter()
        page = page or PageRequest()
        base = self._filtered(user_id, filters)

        total = self.session.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()

        stmt = (
            base.options(selectinload(Receivable.extra_income))
            .order_by(Receivable.due_date, Receivable.id)
            .offset(page.offset)
            .limit(page.size)
        )
        rows = list(self.session.execute(stmt).scalars().all())
        return rows, total

    def exists_for_extra_income(self, extra_income_id: UUID) -> bool:
        stmt = select(Receivable.id).where(
            Receivable.extra_income_id == extra_income_id
        )
        return self.session.execute(stmt).first() is not None

    def overdue_candidate_ids(self, today: date) -> list[UUID]:
        stmt = (
            select(Receivable.id)
            .where(
                Receivable.status == ReceivableStatus.PENDING.value,
                Receivable.due_date < today,
            )
            .order_by(Receivable.due_date, Receivable.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def auto_receipt_candidate_ids(self, today: date) -> list[UUID]:
        """PENDING auto-receipt receivables due today or earlier."""
        stmt = (
            select(Receivable.id)
            .where(
                Receivable.status == ReceivableStatus.PENDING.value,
                Receivable.automatic_bank_receipt.is_(True),
                Receivable.due_date <= today,
            )
            .order_by(Receivable.due_date, Receivable.id)
        )
        return list(self.session.execute(stmt).scalars().all())
