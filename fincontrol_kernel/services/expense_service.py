"""
ExpenseService -- recorded expenses.

An expense moves no money by itself; paying its Bill does, at whatever
value the expense holds when the payment happens.  Deleting an expense
deletes its bill.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select

from fincontrol_kernel.domain.dtos import ExpenseCreate, ExpenseInfo, ExpenseUpdate, is_set
from fincontrol_kernel.domain.money import require_positive
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    CategoryNotFoundError,
    ExpenseNotFoundError,
    InvalidOperationError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.bill import Bill
from fincontrol_kernel.models.category import Category
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.expense")


class ExpenseService(BaseService[Expense]):

    def create(self, request: ExpenseCreate, user_id: UUID) -> ExpenseInfo:
        self._require_user(user_id)
        name = (request.name or "").strip()
        if not name:
            raise InvalidOperationError("Expense name is required")
        if request.expense_date is None:
            raise InvalidOperationError("Expense date is required")
        value = require_positive(request.value)
        self._require_owned(Category, request.category_id, user_id, CategoryNotFoundError)
        if request.bank_id is not None:
            self._require_owned(Bank, request.bank_id, user_id, BankNotFoundError)

        expense = Expense(
            name=name,
            description=request.description,
            value=value,
            expense_date=request.expense_date,
            category_id=request.category_id,
            bank_id=request.bank_id,
            user_id=user_id,
        )
        with self._transaction("Expense"):
            self.session.add(expense)
            self.session.flush()

        logger.info(
            "expense_created",
            extra={"expense_id": str(expense.id), "value": str(value)},
        )
        return ExpenseInfo.from_model(expense)

    def get(self, expense_id: UUID, user_id: UUID) -> ExpenseInfo:
        return ExpenseInfo.from_model(
            self._require_owned(Expense, expense_id, user_id, ExpenseNotFoundError)
        )

    def list(self, user_id: UUID) -> list[ExpenseInfo]:
        rows = self.session.execute(
            select(Expense)
            .where(Expense.user_id == user_id)
            .order_by(Expense.expense_date.desc(), Expense.id)
        ).scalars().all()
        return [ExpenseInfo.from_model(e) for e in rows]

    def update(self, expense_id: UUID, request: ExpenseUpdate, user_id: UUID) -> ExpenseInfo:
        """
        Apply the fields set on ``request``.

        A new value is what an unpaid bill for this expense will charge.
        ``bank_id=None`` unlinks the bank.
        """
        changed: list[str] = []
        with self._transaction("Expense", expense_id):
            expense = self._require_owned(Expense, expense_id, user_id, ExpenseNotFoundError)

            if is_set(request.name) and request.name is not None:
                name = request.name.strip()
                if not name:
                    raise InvalidOperationError("Expense name is required")
                if name != expense.name:
                    expense.name = name
                    changed.append("name")

            if is_set(request.description) and request.description != expense.description:
                expense.description = request.description
                changed.append("description")

            if is_set(request.value) and request.value is not None:
                value = require_positive(request.value)
                if value != expense.value:
                    expense.value = value
                    changed.append("value")

            if is_set(request.expense_date) and request.expense_date is not None:
                if request.expense_date != expense.expense_date:
                    expense.expense_date = request.expense_date
                    changed.append("expense_date")

            if is_set(request.category_id) and request.category_id is not None:
                if request.category_id != expense.category_id:
                    self._require_owned(
                        Category, request.category_id, user_id, CategoryNotFoundError
                    )
                    expense.category_id = request.category_id
                    changed.append("category_id")

            if is_set(request.bank_id) and request.bank_id != expense.bank_id:
                if request.bank_id is not None:
                    self._require_owned(Bank, request.bank_id, user_id, BankNotFoundError)
                expense.bank_id = request.bank_id
                changed.append("bank_id")

        if changed:
            logger.info(
                "expense_updated",
                extra={"expense_id": str(expense_id), "fields": changed},
            )
        return ExpenseInfo.from_model(expense)

    def delete(self, expense_id: UUID, user_id: UUID) -> None:
        """Delete the expense and its bill.  No balance is refunded."""
        expense = self._require_owned(Expense, expense_id, user_id, ExpenseNotFoundError)
        with self._transaction("Expense", expense_id):
            self.session.execute(
                delete(Bill)
                .where(Bill.expense_id == expense.id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.delete(expense)
        logger.info("expense_deleted", extra={"expense_id": str(expense_id)})
