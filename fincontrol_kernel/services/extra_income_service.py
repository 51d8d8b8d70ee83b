"""
ExtraIncomeService -- recorded extra incomes.

Recording an income does not credit its bank; settling the income's
Receivable does.  Deleting an income deletes its receivable without
reversing any credit already made.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select

from fincontrol_kernel.domain.dtos import (
    ExtraIncomeCreate,
    ExtraIncomeInfo,
    ExtraIncomeUpdate,
    is_set,
)
from fincontrol_kernel.domain.money import require_positive
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    CategoryNotFoundError,
    ExtraIncomeNotFoundError,
    InvalidOperationError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.category import Category
from fincontrol_kernel.models.extra_income import ExtraIncome
from fincontrol_kernel.models.receivable import Receivable
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.extra_income")


class ExtraIncomeService(BaseService[ExtraIncome]):

    def create(self, request: ExtraIncomeCreate, user_id: UUID) -> ExtraIncomeInfo:
        self._require_user(user_id)
        name = (request.name or "").strip()
        if not name:
            raise InvalidOperationError("Extra income name is required")
        if request.date is None:
            raise InvalidOperationError("Extra income date is required")
        if request.bank_id is None:
            raise InvalidOperationError("Extra income requires a bank")
        amount = require_positive(request.amount)
        self._require_owned(Category, request.category_id, user_id, CategoryNotFoundError)
        self._require_owned(Bank, request.bank_id, user_id, BankNotFoundError)

        income = ExtraIncome(
            name=name,
            description=request.description,
            amount=amount,
            date=request.date,
            category_id=request.category_id,
            bank_id=request.bank_id,
            user_id=user_id,
        )
        with self._transaction("ExtraIncome"):
            self.session.add(income)
            self.session.flush()

        logger.info(
            "extra_income_created",
            extra={"extra_income_id": str(income.id), "amount": str(amount)},
        )
        return ExtraIncomeInfo.from_model(income)

    def get(self, extra_income_id: UUID, user_id: UUID) -> ExtraIncomeInfo:
        return ExtraIncomeInfo.from_model(
            self._require_owned(
                ExtraIncome, extra_income_id, user_id, ExtraIncomeNotFoundError
            )
        )

    def list(self, user_id: UUID) -> list[ExtraIncomeInfo]:
        rows = self.session.execute(
            select(ExtraIncome)
            .where(ExtraIncome.user_id == user_id)
            .order_by(ExtraIncome.date.desc(), ExtraIncome.id)
        ).scalars().all()
        return [ExtraIncomeInfo.from_model(i) for i in rows]

    def update(
        self, extra_income_id: UUID, request: ExtraIncomeUpdate, user_id: UUID
    ) -> ExtraIncomeInfo:
        """
        Apply the fields set on ``request``.  An income always keeps a bank,
        so ``bank_id=None`` is rejected.  Nothing already credited moves.
        """
        changed: list[str] = []
        with self._transaction("ExtraIncome", extra_income_id):
            income = self._require_owned(
                ExtraIncome, extra_income_id, user_id, ExtraIncomeNotFoundError
            )

            if is_set(request.name) and request.name is not None:
                name = request.name.strip()
                if not name:
                    raise InvalidOperationError("Extra income name is required")
                if name != income.name:
                    income.name = name
                    changed.append("name")

            if is_set(request.description) and request.description != income.description:
                income.description = request.description
                changed.append("description")

            if is_set(request.amount) and request.amount is not None:
                amount = require_positive(request.amount)
                if amount != income.amount:
                    income.amount = amount
                    changed.append("amount")

            if is_set(request.date) and request.date is not None:
                if request.date != income.date:
                    income.date = request.date
                    changed.append("date")

            if is_set(request.category_id) and request.category_id is not None:
                if request.category_id != income.category_id:
                    self._require_owned(
                        Category, request.category_id, user_id, CategoryNotFoundError
                    )
                    income.category_id = request.category_id
                    changed.append("category_id")

            if is_set(request.bank_id):
                if request.bank_id is None:
                    raise InvalidOperationError("Extra income requires a bank")
                if request.bank_id != income.bank_id:
                    self._require_owned(Bank, request.bank_id, user_id, BankNotFoundError)
                    income.bank_id = request.bank_id
                    changed.append("bank_id")

        if changed:
            logger.info(
                "extra_income_updated",
                extra={"extra_income_id": str(extra_income_id), "fields": changed},
            )
        return ExtraIncomeInfo.from_model(income)

    def delete(self, extra_income_id: UUID, user_id: UUID) -> None:
        income = self._require_owned(
            ExtraIncome, extra_income_id, user_id, ExtraIncomeNotFoundError
        )
        with self._transaction("ExtraIncome", extra_income_id):
            self.session.execute(
                delete(Receivable)
                .where(Receivable.extra_income_id == income.id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.delete(income)
        logger.info(
            "extra_income_deleted", extra={"extra_income_id": str(extra_income_id)}
        )
