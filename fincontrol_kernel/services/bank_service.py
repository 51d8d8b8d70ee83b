"""
BankService -- bank accounts and bank-to-bank money movement.

Responsibility:
    Bank CRUD, explicit balance operations (add, remove, set, transfer) and
    the deletion policy for everything that references a bank.

Deletion policy:
    - Bills and vaults survive with ``bank_id`` set to NULL.  A bill loses
      its auto-pay source; a vault becomes an unlinked cash vault and keeps
      its amount.
    - Expenses and extra incomes booked against the bank are deleted,
      together with the bills and receivables that settle them.

Concurrency:
    ``transfer`` locks both banks in id order so two opposite transfers
    cannot deadlock each other.
    Lock order elsewhere is dependent row first, bank last, matching vault
    moves and the settlement jobs; ``delete`` locks the vaults, bills and
    receivables that reference the bank before the bank row.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, or_, select, update

from fincontrol_kernel.domain.dtos import (
    BalanceSnapshot,
    BankCreate,
    BankInfo,
    BankTransferResult,
    BankUpdate,
    is_set,
)
from fincontrol_kernel.domain.money import require_non_negative, require_positive
from fincontrol_kernel.exceptions import BankNotFoundError, InvalidOperationError
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.bank import DEFAULT_BANK_DESCRIPTION, Bank
from fincontrol_kernel.models.bill import Bill
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.models.extra_income import ExtraIncome
from fincontrol_kernel.models.receivable import Receivable
from fincontrol_kernel.models.vault import Vault
from fincontrol_kernel.services.balance_service import BalanceService
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.bank")


def _description_or_default(description: str | None) -> str:
    if description is None or not description.strip():
        return DEFAULT_BANK_DESCRIPTION
    return description.strip()


class BankService(BaseService[Bank]):

    def __init__(self, session, clock=None, balance_service: BalanceService | None = None):
        super().__init__(session, clock)
        self._balances = balance_service or BalanceService(session, self._clock)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, request: BankCreate, user_id: UUID) -> BankInfo:
        self._require_user(user_id)
        name = (request.name or "").strip()
        if not name:
            raise InvalidOperationError("Bank name is required")
        balance = require_non_negative(request.balance)

        bank = Bank(
            name=name,
            description=_description_or_default(request.description),
            balance=balance,
            user_id=user_id,
        )
        with self._transaction("Bank"):
            self.session.add(bank)
            self.session.flush()

        logger.info(
            "bank_created",
            extra={
                "bank_id": str(bank.id),
                "user_id": str(user_id),
                "balance": str(balance),
            },
        )
        return BankInfo.from_model(bank)

    def get(self, bank_id: UUID, user_id: UUID) -> BankInfo:
        return BankInfo.from_model(
            self._require_owned(Bank, bank_id, user_id, BankNotFoundError)
        )

    def list(self, user_id: UUID) -> list[BankInfo]:
        rows = self.session.execute(
            select(Bank).where(Bank.user_id == user_id).order_by(Bank.name, Bank.id)
        ).scalars().all()
        return [BankInfo.from_model(b) for b in rows]

    def update(self, bank_id: UUID, request: BankUpdate, user_id: UUID) -> BankInfo:
        """Rename or re-describe a bank.  The balance is never touched here."""
        with self._transaction("Bank", bank_id):
            bank = self._balances.lock_bank(bank_id, user_id)
            if is_set(request.name):
                name = (request.name or "").strip()
                if not name:
                    raise InvalidOperationError("Bank name is required")
                bank.name = name
            if is_set(request.description):
                bank.description = _description_or_default(request.description)
        return BankInfo.from_model(bank)

    def delete(self, bank_id: UUID, user_id: UUID) -> None:
        with self._transaction("Bank", bank_id):
            self._require_owned(Bank, bank_id, user_id, BankNotFoundError)
            self._lock_dependents(bank_id)
            bank = self._balances.lock_bank(bank_id, user_id)

            detached_bills = self.session.execute(
                update(Bill)
                .where(Bill.bank_id == bank.id)
                .values(bank_id=None, version=Bill.version + 1)
                .execution_options(synchronize_session="fetch")
            ).rowcount
            detached_vaults = self.session.execute(
                update(Vault)
                .where(Vault.bank_id == bank.id)
                .values(bank_id=None, version=Vault.version + 1)
                .execution_options(synchronize_session="fetch")
            ).rowcount

            income_ids = select(ExtraIncome.id).where(ExtraIncome.bank_id == bank.id)
            expense_ids = select(Expense.id).where(Expense.bank_id == bank.id)
            self.session.execute(
                delete(Receivable)
                .where(Receivable.extra_income_id.in_(income_ids))
                .execution_options(synchronize_session="fetch")
            )
            self.session.execute(
                delete(Bill)
                .where(Bill.expense_id.in_(expense_ids))
                .execution_options(synchronize_session="fetch")
            )
            self.session.execute(
                delete(ExtraIncome)
                .where(ExtraIncome.bank_id == bank.id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.execute(
                delete(Expense)
                .where(Expense.bank_id == bank.id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.delete(bank)

        logger.info(
            "bank_deleted",
            extra={
                "bank_id": str(bank_id),
                "detached_bills": detached_bills,
                "detached_vaults": detached_vaults,
            },
        )

    def _lock_dependents(self, bank_id: UUID) -> None:
        income_ids = select(ExtraIncome.id).where(ExtraIncome.bank_id == bank_id)
        expense_ids = select(Expense.id).where(Expense.bank_id == bank_id)
        for stmt in (
            select(Vault.id).where(Vault.bank_id == bank_id).order_by(Vault.id),
            select(Bill.id)
            .where(or_(Bill.bank_id == bank_id, Bill.expense_id.in_(expense_ids)))
            .order_by(Bill.id),
            select(Receivable.id)
            .where(Receivable.extra_income_id.in_(income_ids))
            .order_by(Receivable.id),
        ):
            self.session.execute(stmt.with_for_update()).all()

    # -------------------------------------------------------------------------
    # Money movement
    # -------------------------------------------------------------------------

    def add_money(self, bank_id: UUID, amount: Decimal, user_id: UUID) -> BankInfo:
        amount = require_positive(amount)
        with self._transaction("Bank", bank_id):
            bank = self._balances.lock_bank(bank_id, user_id)
            self._balances.credit(bank, amount)
        logger.info(
            "bank_money_added",
            extra={"bank_id": str(bank_id), "amount": str(amount)},
        )
        return BankInfo.from_model(bank)

    def remove_money(self, bank_id: UUID, amount: Decimal, user_id: UUID) -> BankInfo:
        amount = require_positive(amount)
        with self._transaction("Bank", bank_id):
            bank = self._balances.lock_bank(bank_id, user_id)
            self._balances.debit(bank, amount)
        logger.info(
            "bank_money_removed",
            extra={"bank_id": str(bank_id), "amount": str(amount)},
        )
        return BankInfo.from_model(bank)

    def set_balance(self, bank_id: UUID, new_balance: Decimal, user_id: UUID) -> BankInfo:
        """Overwrite the balance, still routed through the Balance Mutator."""
        target = require_non_negative(new_balance)
        with self._transaction("Bank", bank_id):
            bank = self._balances.lock_bank(bank_id, user_id)
            delta = target - bank.balance
            if delta:
                self._balances.adjust(bank, delta)
        logger.info(
            "bank_balance_set",
            extra={"bank_id": str(bank_id), "balance": str(target)},
        )
        return BankInfo.from_model(bank)

    def transfer(
        self,
        source_bank_id: UUID,
        destination_bank_id: UUID,
        amount: Decimal,
        user_id: UUID,
    ) -> BankTransferResult:
        """
        Move ``amount`` between two banks of the same user, atomically.

        Raises:
            InvalidOperationError: source and destination are the same bank.
            InsufficientBalanceError: the source cannot cover ``amount``.
            BankNotFoundError: either bank is missing or not owned.
        """
        amount = require_positive(amount)
        if source_bank_id == destination_bank_id:
            raise InvalidOperationError("Cannot transfer to the same bank")

        with self._transaction("Bank", source_bank_id):
            locked: dict[UUID, Bank] = {}
            for bank_id in sorted((source_bank_id, destination_bank_id), key=str):
                locked[bank_id] = self._balances.lock_bank(bank_id, user_id)
            source = locked[source_bank_id]
            destination = locked[destination_bank_id]

            source_before = source.balance
            destination_before = destination.balance
            self._balances.debit(source, amount)
            self._balances.credit(destination, amount)

        logger.info(
            "bank_transfer_completed",
            extra={
                "source_bank_id": str(source_bank_id),
                "destination_bank_id": str(destination_bank_id),
                "amount": str(amount),
            },
        )
        return BankTransferResult(
            amount=amount,
            source=BalanceSnapshot(source.id, source.name, source_before, source.balance),
            destination=BalanceSnapshot(
                destination.id, destination.name, destination_before, destination.balance,
            ),
            timestamp=self._clock.now(),
        )
