"""
ReceivableService -- Receivable Lifecycle Manager (accounts receivable).

Responsibility:
    Receivable CRUD, manual receipt, and the two daily batch entry points
    (overdue marking and auto-receipt).  Every status change is resolved
    against ``RECEIVABLE_WORKFLOW``.

The bank credited on receipt is the extra income's bank.

Behavior kept per entity (see DESIGN.md):
    - Manual receipt credits the bank when ``automatic_bank_receipt`` is set
      and the income still has a bank; a missing bank is logged and the
      status changes anyway.
    - Auto-receipt picks receivables due today or earlier.
    - Moving an OVERDUE receivable's due date to today or later reopens it
      as PENDING.
"""

from __future__ import annotations

from uuid import UUID

from fincontrol_kernel.domain.clock import Clock
from fincontrol_kernel.domain.dtos import (
    JobRunSummary,
    Page,
    PageRequest,
    ReceivableCreate,
    ReceivableFilter,
    ReceivableInfo,
    ReceivableUpdate,
    is_set,
)
from fincontrol_kernel.domain.lifecycle import (
    AUTO_SETTLE,
    MARK_OVERDUE,
    RECEIVABLE_WORKFLOW,
    REOPEN,
    ReceiptMethod,
    ReceivableStatus,
    is_past_due,
    manual_receipt_action,
    parse_choice,
)
from fincontrol_kernel.exceptions import (
    DuplicateError,
    ExtraIncomeNotFoundError,
    InvalidOperationError,
    PastDueDateError,
    ReceivableNotFoundError,
)
from fincontrol_kernel.logging_config import LogContext, get_logger
from fincontrol_kernel.models.extra_income import ExtraIncome
from fincontrol_kernel.models.receivable import Receivable
from fincontrol_kernel.selectors.receivable_selector import ReceivableSelector
from fincontrol_kernel.services.balance_service import BalanceService
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.receivable")

ENTITY = "Receivable"


class ReceivableService(BaseService[Receivable]):

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        balance_service: BalanceService | None = None,
    ):
        super().__init__(session, clock)
        self._balances = balance_service or BalanceService(session, self._clock)
        self._selector = ReceivableSelector(session)

    def _check_due_date(self, due_date) -> None:
        if due_date is None:
            raise InvalidOperationError("Due date is required")
        today = self._clock.today()
        if is_past_due(due_date, today):
            raise PastDueDateError(due_date.isoformat(), today.isoformat())

    def _lock_receivable(self, receivable_id: UUID, user_id: UUID | None) -> Receivable:
        return self._lock_owned(Receivable, receivable_id, user_id, ReceivableNotFoundError)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, request: ReceivableCreate, user_id: UUID) -> ReceivableInfo:
        """
        Create a PENDING receivable for an extra income.

        Raises:
            ExtraIncomeNotFoundError: income missing or owned by another user.
            PastDueDateError: due date before today.
            DuplicateError: the income already has a receivable.
        """
        self._require_user(user_id)
        income = self._require_owned(
            ExtraIncome, request.extra_income_id, user_id, ExtraIncomeNotFoundError
        )
        self._check_due_date(request.due_date)
        method = parse_choice(ReceiptMethod, request.receipt_method, "receipt_method")
        if self._selector.exists_for_extra_income(income.id):
            raise DuplicateError(ENTITY, "extra_income_id", str(income.id))

        receivable = Receivable(
            user_id=user_id,
            extra_income=income,
            receipt_method=method.value,
            due_date=request.due_date,
            automatic_bank_receipt=bool(request.automatic_bank_receipt),
            status=RECEIVABLE_WORKFLOW.initial_state,
        )
        with self._transaction(ENTITY):
            self.session.add(receivable)
            self.session.flush()

        logger.info(
            "receivable_created",
            extra={
                "receivable_id": str(receivable.id),
                "user_id": str(user_id),
                "due_date": receivable.due_date,
            },
        )
        return ReceivableInfo.from_model(receivable)

    def get(self, receivable_id: UUID, user_id: UUID) -> ReceivableInfo:
        return ReceivableInfo.from_model(
            self._require_owned(Receivable, receivable_id, user_id, ReceivableNotFoundError)
        )

    def list(
        self,
        user_id: UUID,
        filters: ReceivableFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page:
        page = page or PageRequest()
        rows, total = self._selector.page_for_user(user_id, filters, page)
        return Page(
            items=tuple(ReceivableInfo.from_model(r) for r in rows),
            page=page.page,
            size=page.size,
            total=total,
        )

    def update(
        self,
        receivable_id: UUID,
        request: ReceivableUpdate,
        user_id: UUID,
    ) -> ReceivableInfo:
        """
        Apply the fields set on ``request``.

        An OVERDUE receivable whose new due date is today or later goes back
        to PENDING.

        Raises:
            TerminalStatusError: the receivable is RECEIVED or RECEIVED_LATE.
            PastDueDateError: new due date before today.
        """
        changed: list[str] = []
        with self._transaction(ENTITY, receivable_id):
            receivable = self._lock_receivable(receivable_id, user_id)
            self._guard_not_terminal(RECEIVABLE_WORKFLOW, receivable, ENTITY, "update")

            if is_set(request.receipt_method) and request.receipt_method is not None:
                method = parse_choice(
                    ReceiptMethod, request.receipt_method, "receipt_method"
                ).value
                if method != receivable.receipt_method:
                    receivable.receipt_method = method
                    changed.append("receipt_method")

            if is_set(request.due_date) and request.due_date is not None:
                self._check_due_date(request.due_date)
                if request.due_date != receivable.due_date:
                    receivable.due_date = request.due_date
                    changed.append("due_date")
                if receivable.status == ReceivableStatus.OVERDUE.value:
                    self._apply_transition(RECEIVABLE_WORKFLOW, receivable, REOPEN, ENTITY)
                    changed.append("status")

            if is_set(request.automatic_bank_receipt) and request.automatic_bank_receipt is not None:
                flag = bool(request.automatic_bank_receipt)
                if flag != receivable.automatic_bank_receipt:
                    receivable.automatic_bank_receipt = flag
                    changed.append("automatic_bank_receipt")

        if changed:
            logger.info(
                "receivable_updated",
                extra={
                    "receivable_id": str(receivable_id),
                    "fields": changed,
                    "status": receivable.status,
                },
            )
        return ReceivableInfo.from_model(receivable)

    def delete(self, receivable_id: UUID, user_id: UUID) -> None:
        """Delete the receivable.  A credit already made is not reversed."""
        with self._transaction(ENTITY, receivable_id):
            receivable = self._lock_receivable(receivable_id, user_id)
            self.session.delete(receivable)
        logger.info("receivable_deleted", extra={"receivable_id": str(receivable_id)})

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def mark_received_manually(self, receivable_id: UUID, user_id: UUID) -> ReceivableInfo:
        """
        Record a receipt.  RECEIVED from PENDING (whatever the date),
        RECEIVED_LATE from OVERDUE.

        With ``automatic_bank_receipt`` set, the income's bank is credited
        in the same transaction.
        """
        credited = None
        with self._transaction(ENTITY, receivable_id):
            receivable = self._lock_receivable(receivable_id, user_id)
            action = manual_receipt_action(receivable.status)
            # Guard first so a terminal receivable never reaches the bank
            self._guard_not_terminal(RECEIVABLE_WORKFLOW, receivable, ENTITY, action)

            if receivable.automatic_bank_receipt:
                income = receivable.extra_income
                if income.bank_id is None:
                    logger.warning(
                        "receivable_bank_missing",
                        extra={"receivable_id": str(receivable_id)},
                    )
                else:
                    bank = self._balances.lock_bank(income.bank_id, user_id)
                    self._balances.credit(bank, income.amount)
                    credited = income.amount

            self._apply_transition(RECEIVABLE_WORKFLOW, receivable, action, ENTITY)

        logger.info(
            "receivable_marked_received",
            extra={
                "receivable_id": str(receivable_id),
                "status": receivable.status,
                "credited": str(credited) if credited is not None else None,
            },
        )
        return ReceivableInfo.from_model(receivable)

    # -------------------------------------------------------------------------
    # Batch jobs
    # -------------------------------------------------------------------------

    def process_overdue_job(self) -> JobRunSummary:
        """PENDING receivables due before today become OVERDUE, one commit each."""
        today = self._clock.today()
        candidate_ids = self._selector.overdue_candidate_ids(today)
        self.session.rollback()
        processed = skipped = failed = 0

        with LogContext.bind(job_name="receivables.mark_overdue"):
            for receivable_id in candidate_ids:
                with LogContext.bind(record_id=str(receivable_id)):
                    try:
                        with self._transaction(ENTITY, receivable_id):
                            receivable = self._lock_receivable(receivable_id, None)
                            if (
                                receivable.status != ReceivableStatus.PENDING.value
                                or not is_past_due(receivable.due_date, today)
                            ):
                                skipped += 1
                                continue
                            self._apply_transition(
                                RECEIVABLE_WORKFLOW, receivable, MARK_OVERDUE, ENTITY
                            )
                        processed += 1
                        logger.info(
                            "receivable_marked_overdue",
                            extra={"receivable_id": str(receivable_id)},
                        )
                    except Exception:
                        failed += 1
                        logger.exception(
                            "receivable_overdue_failed",
                            extra={"receivable_id": str(receivable_id)},
                        )

            summary = JobRunSummary(
                job_name="receivables.mark_overdue",
                run_date=today,
                selected=len(candidate_ids),
                processed=processed,
                skipped=skipped,
                failed=failed,
            )
            logger.info("receivable_overdue_job_completed", extra=summary.log_fields())
        return summary

    def process_auto_receipt_job(self) -> JobRunSummary:
        """
        Credit and settle every PENDING auto-receipt receivable due today or
        earlier.  A receivable whose income has no bank stays PENDING.
        """
        today = self._clock.today()
        candidate_ids = self._selector.auto_receipt_candidate_ids(today)
        self.session.rollback()
        processed = skipped = failed = 0

        with LogContext.bind(job_name="receivables.auto_receipt"):
            for receivable_id in candidate_ids:
                with LogContext.bind(record_id=str(receivable_id)):
                    try:
                        if self._auto_receive_one(receivable_id, today):
                            processed += 1
                        else:
                            skipped += 1
                    except Exception:
                        failed += 1
                        logger.exception(
                            "receivable_auto_receipt_failed",
                            extra={"receivable_id": str(receivable_id)},
                        )

            summary = JobRunSummary(
                job_name="receivables.auto_receipt",
                run_date=today,
                selected=len(candidate_ids),
                processed=processed,
                skipped=skipped,
                failed=failed,
            )
            logger.info("receivable_auto_receipt_job_completed", extra=summary.log_fields())
        return summary

    def _auto_receive_one(self, receivable_id: UUID, today) -> bool:
        with self._transaction(ENTITY, receivable_id):
            receivable = self._lock_receivable(receivable_id, None)
            if (
                receivable.status != ReceivableStatus.PENDING.value
                or not receivable.automatic_bank_receipt
                or receivable.due_date > today
            ):
                return False

            income = receivable.extra_income
            if income.bank_id is None:
                logger.warning(
                    "auto_receipt_skipped_no_bank",
                    extra={"receivable_id": str(receivable_id)},
                )
                return False

            bank = self._balances.lock_bank(income.bank_id, receivable.user_id)
            before = bank.balance
            self._balances.credit(bank, income.amount)
            self._apply_transition(RECEIVABLE_WORKFLOW, receivable, AUTO_SETTLE, ENTITY)

        logger.info(
            "receivable_auto_received",
            extra={
                "receivable_id": str(receivable_id),
                "bank_id": str(bank.id),
                "amount": str(income.amount),
                "bank_before": str(before),
                "bank_after": str(bank.balance),
            },
        )
        return True
