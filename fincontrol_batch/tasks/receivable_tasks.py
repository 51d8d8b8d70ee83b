"""
Batch tasks: receivables (overdue marking, auto-receipt).
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from fincontrol_kernel.domain.clock import Clock
from fincontrol_kernel.domain.dtos import JobRunSummary
from fincontrol_kernel.services.receivable_service import ReceivableService


class ReceivableOverdueTask:

    @property
    def task_type(self) -> str:
        return "receivables.mark_overdue"

    @property
    def description(self) -> str:
        return "Mark pending receivables past their due date as overdue"

    def run(self, session: Session, clock: Clock) -> JobRunSummary:
        return ReceivableService(session, clock).process_overdue_job()


class ReceivableAutoReceiptTask:

    @property
    def task_type(self) -> str:
        return "receivables.auto_receipt"

    @property
    def description(self) -> str:
        return "Credit auto-receipt receivables due today or earlier"

    def run(self, session: Session, clock: Clock) -> JobRunSummary:
        return ReceivableService(session, clock).process_auto_receipt_job()
