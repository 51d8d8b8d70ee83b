"""
BillService -- Bill Lifecycle Manager (accounts payable).

Responsibility:
    Bill CRUD, manual settlement, and the two daily batch entry points
    (overdue marking and auto-pay).  Every status change is resolved
    against ``BILL_WORKFLOW``.

Invariants enforced:
    - Terminal immutability: a PAID or PAID_LATE bill rejects update and
      manual settlement with TerminalStatusError, and is never selected by
      the jobs.  The check runs on the row loaded under SELECT ... FOR
      UPDATE, so a manual mark and the auto-pay job racing on the same bill
      cannot both settle it.
    - Due dates are never in the past when set by create or update.
    - Auto-pay debits the bank and marks the bill PAID in one transaction.

Behavior kept per entity (see DESIGN.md):
    - Manual settlement never touches a bank balance.
    - Auto-pay only picks bills due exactly today.
    - Moving an OVERDUE bill's due date forward does not reopen it.
"""

from __future__ import annotations

from uuid import UUID

from fincontrol_kernel.domain.clock import Clock
from fincontrol_kernel.domain.dtos import (
    BillCreate,
    BillFilter,
    BillInfo,
    BillUpdate,
    JobRunSummary,
    is_set,
)
from fincontrol_kernel.domain.lifecycle import (
    AUTO_SETTLE,
    BILL_WORKFLOW,
    MARK_OVERDUE,
    BillStatus,
    PaymentMethod,
    is_past_due,
    manual_settlement_action,
    parse_choice,
)
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    BillNotFoundError,
    CategoryNotFoundError,
    DuplicateError,
    ExpenseNotFoundError,
    InvalidOperationError,
    PastDueDateError,
)
from fincontrol_kernel.logging_config import LogContext, get_logger
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.bill import Bill
from fincontrol_kernel.models.category import Category
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.selectors.bill_selector import BillSelector
from fincontrol_kernel.services.balance_service import BalanceService
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.bill")

ENTITY = "Bill"


class BillService(BaseService[Bill]):
    """
    Accounts payable lifecycle.

    Every public method takes the acting ``user_id`` explicitly, except the
    batch jobs, which act across all users.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        balance_service: BalanceService | None = None,
    ):
        super().__init__(session, clock)
        self._balances = balance_service or BalanceService(session, self._clock)
        self._selector = BillSelector(session)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_due_date(self, due_date) -> None:
        if due_date is None:
            raise InvalidOperationError("Due date is required")
        today = self._clock.today()
        if is_past_due(due_date, today):
            raise PastDueDateError(due_date.isoformat(), today.isoformat())

    def _check_expense_free(self, expense_id: UUID) -> None:
        if self._selector.exists_for_expense(expense_id):
            raise DuplicateError(ENTITY, "expense_id", str(expense_id))

    def _lock_bill(self, bill_id: UUID, user_id: UUID | None) -> Bill:
        return self._lock_owned(Bill, bill_id, user_id, BillNotFoundError)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, request: BillCreate, user_id: UUID) -> BillInfo:
        """
        Create a PENDING bill for an expense.

        Raises:
            UserNotFoundError, ExpenseNotFoundError, BankNotFoundError:
                a referenced row is missing or owned by another user.
            PastDueDateError: due date before today.
            DuplicateError: the expense already has a bill.
        """
        self._require_user(user_id)
        expense = self._require_owned(Expense, request.expense_id, user_id, ExpenseNotFoundError)
        if request.bank_id is not None:
            self._require_owned(Bank, request.bank_id, user_id, BankNotFoundError)
        self._check_due_date(request.due_date)
        payment_method = parse_choice(PaymentMethod, request.payment_method, "payment_method")
        self._check_expense_free(expense.id)

        bill = Bill(
            user_id=user_id,
            expense_id=expense.id,
            bank_id=request.bank_id,
            payment_method=payment_method.value,
            due_date=request.due_date,
            auto_pay=bool(request.auto_pay),
            status=BILL_WORKFLOW.initial_state,
        )
        with self._transaction(ENTITY):
            self.session.add(bill)
            self.session.flush()

        logger.info(
            "bill_created",
            extra={
                "bill_id": str(bill.id),
                "user_id": str(user_id),
                "due_date": bill.due_date,
                "auto_pay": bill.auto_pay,
            },
        )
        return BillInfo.from_model(bill)

    def get(self, bill_id: UUID, user_id: UUID) -> BillInfo:
        return BillInfo.from_model(
            self._require_owned(Bill, bill_id, user_id, BillNotFoundError)
        )

    def list(self, user_id: UUID, filters: BillFilter | None = None) -> list[BillInfo]:
        """
        Bills matching every provided filter.

        Referenced category and bank are checked for ownership first, so
        filtering by another user's category answers 404, not an empty list.
        """
        filters = filters or BillFilter()
        if filters.expense_category_id is not None:
            self._require_owned(
                Category, filters.expense_category_id, user_id, CategoryNotFoundError
            )
        if filters.bank_id is not None:
            self._require_owned(Bank, filters.bank_id, user_id, BankNotFoundError)
        return [
            BillInfo.from_model(b) for b in self._selector.list_for_user(user_id, filters)
        ]

    def update(self, bill_id: UUID, request: BillUpdate, user_id: UUID) -> BillInfo:
        """
        Apply the fields set on ``request``.

        ``bank_id=None`` unlinks the bank; the same bank id is a no-op.
        Nothing is written when no field actually changes.

        Raises:
            TerminalStatusError: the bill is PAID or PAID_LATE.
        """
        with self._transaction(ENTITY, bill_id):
            bill = self._lock_bill(bill_id, user_id)
            self._guard_not_terminal(BILL_WORKFLOW, bill, ENTITY, "update")
            changed: list[str] = []

            if is_set(request.expense_id) and request.expense_id is not None:
                if request.expense_id != bill.expense_id:
                    expense = self._require_owned(
                        Expense, request.expense_id, user_id, ExpenseNotFoundError
                    )
                    self._check_expense_free(expense.id)
                    bill.expense = expense
                    changed.append("expense_id")

            if is_set(request.bank_id):
                if request.bank_id is None:
                    if bill.bank_id is not None:
                        bill.bank_id = None
                        changed.append("bank_id")
                elif request.bank_id != bill.bank_id:
                    bank = self._require_owned(
                        Bank, request.bank_id, user_id, BankNotFoundError
                    )
                    bill.bank_id = bank.id
                    changed.append("bank_id")

            if is_set(request.payment_method) and request.payment_method is not None:
                method = parse_choice(
                    PaymentMethod, request.payment_method, "payment_method"
                ).value
                if method != bill.payment_method:
                    bill.payment_method = method
                    changed.append("payment_method")

            if is_set(request.due_date) and request.due_date is not None:
                self._check_due_date(request.due_date)
                if request.due_date != bill.due_date:
                    bill.due_date = request.due_date
                    changed.append("due_date")

            if is_set(request.auto_pay) and request.auto_pay is not None:
                if bool(request.auto_pay) != bill.auto_pay:
                    bill.auto_pay = bool(request.auto_pay)
                    changed.append("auto_pay")

        if changed:
            logger.info(
                "bill_updated",
                extra={"bill_id": str(bill_id), "fields": changed},
            )
        return BillInfo.from_model(bill)

    def delete(self, bill_id: UUID, user_id: UUID) -> None:
        """Delete the bill.  Any payment already made is not reversed."""
        with self._transaction(ENTITY, bill_id):
            bill = self._lock_bill(bill_id, user_id)
            self.session.delete(bill)
        logger.info("bill_deleted", extra={"bill_id": str(bill_id)})

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def mark_paid_manually(self, bill_id: UUID, user_id: UUID) -> BillInfo:
        """
        Record a payment made outside the system.

        PAID when today is on or before the due date, PAID_LATE otherwise
        (always PAID_LATE from OVERDUE).  No bank balance changes.
        """
        today = self._clock.today()
        with self._transaction(ENTITY, bill_id):
            bill = self._lock_bill(bill_id, user_id)
            action = manual_settlement_action(bill.status, bill.due_date, today)
            self._apply_transition(BILL_WORKFLOW, bill, action, ENTITY)
            bill.payment_date = today

        logger.info(
            "bill_marked_paid",
            extra={"bill_id": str(bill_id), "status": bill.status, "payment_date": today},
        )
        return BillInfo.from_model(bill)

    # -------------------------------------------------------------------------
    # Batch jobs
    # -------------------------------------------------------------------------

    def process_overdue_job(self) -> JobRunSummary:
        """
        Move every PENDING bill with due date before today to OVERDUE.

        One transaction per bill.  Idempotent: a second run in the same day
        finds no PENDING past-due bills.
        """
        today = self._clock.today()
        candidate_ids = self._selector.overdue_candidate_ids(today)
        self.session.rollback()
        processed = skipped = failed = 0

        with LogContext.bind(job_name="bills.mark_overdue"):
            for bill_id in candidate_ids:
                with LogContext.bind(record_id=str(bill_id)):
                    try:
                        with self._transaction(ENTITY, bill_id):
                            bill = self._lock_bill(bill_id, None)
                            if bill.status != BillStatus.PENDING.value or not is_past_due(
                                bill.due_date, today
                            ):
                                skipped += 1
                                continue
                            self._apply_transition(BILL_WORKFLOW, bill, MARK_OVERDUE, ENTITY)
                        processed += 1
                        logger.info(
                            "bill_marked_overdue",
                            extra={"bill_id": str(bill_id), "due_date": bill.due_date},
                        )
                    except Exception:
                        failed += 1
                        logger.exception("bill_overdue_failed", extra={"bill_id": str(bill_id)})

            summary = JobRunSummary(
                job_name="bills.mark_overdue",
                run_date=today,
                selected=len(candidate_ids),
                processed=processed,
                skipped=skipped,
                failed=failed,
            )
            logger.info("bill_overdue_job_completed", extra=summary.log_fields())
        return summary

    def process_auto_pay_job(self) -> JobRunSummary:
        """
        Pay every PENDING auto-pay bill due today from its bank.

        The bank debit and the PAID status commit together.  A bill whose
        bank cannot cover the expense value stays PENDING and is logged;
        there is no retry in the same run.
        """
        today = self._clock.today()
        candidate_ids = self._selector.auto_pay_candidate_ids(today)
        self.session.rollback()
        processed = skipped = failed = 0

        with LogContext.bind(job_name="bills.auto_pay"):
            for bill_id in candidate_ids:
                with LogContext.bind(record_id=str(bill_id)):
                    try:
                        if self._auto_pay_one(bill_id, today):
                            processed += 1
                        else:
                            skipped += 1
                    except Exception:
                        failed += 1
                        logger.exception("bill_auto_pay_failed", extra={"bill_id": str(bill_id)})

            summary = JobRunSummary(
                job_name="bills.auto_pay",
                run_date=today,
                selected=len(candidate_ids),
                processed=processed,
                skipped=skipped,
                failed=failed,
            )
            logger.info("bill_auto_pay_job_completed", extra=summary.log_fields())
        return summary

    def _auto_pay_one(self, bill_id: UUID, today) -> bool:
        """Settle one bill.  Returns False when it was left untouched."""
        with self._transaction(ENTITY, bill_id):
            bill = self._lock_bill(bill_id, None)
            if (
                bill.status != BillStatus.PENDING.value
                or not bill.auto_pay
                or bill.due_date != today
                or bill.bank_id is None
            ):
                logger.info(
                    "auto_pay_skipped_not_eligible",
                    extra={"bill_id": str(bill_id), "status": bill.status},
                )
                return False

            bank = self._balances.lock_bank(bill.bank_id, bill.user_id)
            amount = bill.expense.value
            if bank.balance < amount:
                logger.warning(
                    "auto_pay_skipped_insufficient_balance",
                    extra={
                        "bill_id": str(bill_id),
                        "bank_id": str(bank.id),
                        "available": str(bank.balance),
                        "required": str(amount),
                    },
                )
                return False

            before = bank.balance
            self._balances.debit(bank, amount)
            self._apply_transition(BILL_WORKFLOW, bill, AUTO_SETTLE, ENTITY)
            bill.payment_date = today

        logger.info(
            "bill_auto_paid",
            extra={
                "bill_id": str(bill_id),
                "bank_id": str(bank.id),
                "amount": str(amount),
                "bank_before": str(before),
                "bank_after": str(bank.balance),
            },
        )
        return True
