"""
Batch tasks: bills (overdue marking, auto-pay).
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from fincontrol_kernel.domain.clock import Clock
from fincontrol_kernel.domain.dtos import JobRunSummary
from fincontrol_kernel.services.bill_service import BillService


class BillOverdueTask:
    """PENDING bills past their due date become OVERDUE."""

    @property
    def task_type(self) -> str:
        return "bills.mark_overdue"

    @property
    def description(self) -> str:
        return "Mark pending bills past their due date as overdue"

    def run(self, session: Session, clock: Clock) -> JobRunSummary:
        return BillService(session, clock).process_overdue_job()


class BillAutoPayTask:
    """Pay auto-pay bills due today from their linked bank."""

    @property
    def task_type(self) -> str:
        return "bills.auto_pay"

    @property
    def description(self) -> str:
        return "Pay auto-pay bills due today from their bank"

    def run(self, session: Session, clock: Clock) -> JobRunSummary:
        return BillService(session, clock).process_auto_pay_job()
