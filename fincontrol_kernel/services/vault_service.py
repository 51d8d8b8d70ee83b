"""
VaultService -- Vault Transaction Manager.

Responsibility:
    Create, read, update and delete savings vaults, and move money between
    a vault and its linked bank.

Money rules:
    - A linked vault is funded from its bank 1:1 and returns money to it:
      create and deposit debit the bank, withdraw and delete credit it.
    - An unlinked vault is a cash vault: deposits come from outside the
      system and withdrawals leave it.  Deleting one that still holds money
      is refused with TrappedFundsError.
    - Each operation is one transaction; the vault and bank writes commit
      or roll back together.

Lock order is vault, then bank, in every operation here.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from fincontrol_kernel.domain.dtos import (
    BalanceSnapshot,
    VaultCreate,
    VaultInfo,
    VaultTransactionResult,
    VaultUpdate,
    is_set,
)
from fincontrol_kernel.domain.money import ZERO, require_non_negative, require_positive
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    InvalidOperationError,
    TrappedFundsError,
    VaultNotFoundError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.vault import DEFAULT_VAULT_CURRENCY, Vault
from fincontrol_kernel.services.balance_service import BalanceService
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.vault")

ENTITY = "Vault"

DEPOSIT = "DEPOSIT"
WITHDRAW = "WITHDRAW"


def _clean_currency(currency: str | None) -> str:
    if currency is None or not currency.strip():
        return DEFAULT_VAULT_CURRENCY
    tag = currency.strip()
    if len(tag) > 10:
        raise InvalidOperationError(f"Currency tag too long: {tag!r}")
    return tag


class VaultService(BaseService[Vault]):

    def __init__(self, session, clock=None, balance_service: BalanceService | None = None):
        super().__init__(session, clock)
        self._balances = balance_service or BalanceService(session, self._clock)

    # -------------------------------------------------------------------------
    # Create / delete
    # -------------------------------------------------------------------------

    def create_vault(self, request: VaultCreate, user_id: UUID) -> VaultInfo:
        """
        Create a vault, funding it from its bank when one is given.

        Raises:
            InvalidAmountError: negative or malformed initial amount.
            BankNotFoundError: bank missing or owned by another user.
            InsufficientBalanceError: bank cannot fund the initial amount.
        """
        self._require_user(user_id)
        name = (request.name or "").strip()
        if not name:
            raise InvalidOperationError("Vault name is required")
        initial = require_non_negative(request.initial_amount)
        currency = _clean_currency(request.currency)

        with self._transaction(ENTITY):
            bank_id = None
            if request.bank_id is not None:
                bank = self._balances.lock_bank(request.bank_id, user_id)
                if initial > ZERO:
                    self._balances.debit(bank, initial)
                bank_id = bank.id

            vault = Vault(
                name=name,
                description=request.description,
                amount=initial,
                currency=currency,
                bank_id=bank_id,
                user_id=user_id,
            )
            self.session.add(vault)
            self.session.flush()

        logger.info(
            "vault_created",
            extra={
                "vault_id": str(vault.id),
                "bank_id": str(bank_id) if bank_id else None,
                "amount": str(initial),
                "currency": currency,
            },
        )
        return VaultInfo.from_model(vault)

    def delete_vault(self, vault_id: UUID, user_id: UUID) -> None:
        """
        Close a vault.  A linked vault's full amount goes back to its bank.

        Raises:
            TrappedFundsError: unlinked vault with a non-zero amount.
        """
        refunded = ZERO
        with self._transaction(ENTITY, vault_id):
            vault = self._balances.lock_vault(vault_id, user_id)
            if vault.bank_id is not None:
                bank = self._balances.lock_bank(vault.bank_id, user_id)
                if vault.amount > ZERO:
                    self._balances.credit(bank, vault.amount)
                    refunded = vault.amount
            elif vault.amount > ZERO:
                raise TrappedFundsError(str(vault.id), vault.amount, vault.currency)
            self.session.delete(vault)

        logger.info(
            "vault_deleted",
            extra={"vault_id": str(vault_id), "refunded": str(refunded)},
        )

    # -------------------------------------------------------------------------
    # Money movement
    # -------------------------------------------------------------------------

    def withdraw(self, vault_id: UUID, amount: Decimal, user_id: UUID) -> VaultTransactionResult:
        """Take money out of a vault; a linked bank receives it."""
        amount = require_positive(amount)
        with self._transaction(ENTITY, vault_id):
            vault = self._balances.lock_vault(vault_id, user_id)
            vault_before = vault.amount
            self._balances.debit(vault, amount)

            bank_snapshot = None
            if vault.bank_id is not None:
                bank = self._balances.lock_bank(vault.bank_id, user_id)
                bank_before = bank.balance
                self._balances.credit(bank, amount)
                bank_snapshot = BalanceSnapshot(bank.id, bank.name, bank_before, bank.balance)

        return self._result(WITHDRAW, amount, vault, vault_before, bank_snapshot)

    def deposit(self, vault_id: UUID, amount: Decimal, user_id: UUID) -> VaultTransactionResult:
        """Put money into a vault, drawn from the linked bank if there is one."""
        amount = require_positive(amount)
        with self._transaction(ENTITY, vault_id):
            vault = self._balances.lock_vault(vault_id, user_id)
            vault_before = vault.amount

            bank_snapshot = None
            if vault.bank_id is not None:
                bank = self._balances.lock_bank(vault.bank_id, user_id)
                bank_before = bank.balance
                self._balances.debit(bank, amount)
                bank_snapshot = BalanceSnapshot(bank.id, bank.name, bank_before, bank.balance)

            self._balances.credit(vault, amount)

        return self._result(DEPOSIT, amount, vault, vault_before, bank_snapshot)

    def _result(
        self,
        operation: str,
        amount: Decimal,
        vault: Vault,
        vault_before: Decimal,
        bank_snapshot: BalanceSnapshot | None,
    ) -> VaultTransactionResult:
        result = VaultTransactionResult(
            operation=operation,
            amount=amount,
            vault=BalanceSnapshot(vault.id, vault.name, vault_before, vault.amount),
            currency=vault.currency,
            bank=bank_snapshot,
            timestamp=self._clock.now(),
        )
        logger.info(
            "vault_transaction_completed",
            extra={
                "operation": operation,
                "vault_id": str(vault.id),
                "amount": str(amount),
                "vault_before": str(vault_before),
                "vault_after": str(vault.amount),
                "bank_id": str(bank_snapshot.account_id) if bank_snapshot else None,
            },
        )
        return result

    # -------------------------------------------------------------------------
    # Reads and metadata
    # -------------------------------------------------------------------------

    def get_vault(self, vault_id: UUID, user_id: UUID) -> VaultInfo:
        return VaultInfo.from_model(
            self._require_owned(Vault, vault_id, user_id, VaultNotFoundError)
        )

    def list_vaults(self, user_id: UUID) -> list[VaultInfo]:
        rows = self.session.execute(
            select(Vault).where(Vault.user_id == user_id).order_by(Vault.name, Vault.id)
        ).scalars().all()
        return [VaultInfo.from_model(v) for v in rows]

    def list_vaults_by_bank(self, bank_id: UUID, user_id: UUID) -> list[VaultInfo]:
        self._require_owned(Bank, bank_id, user_id, BankNotFoundError)
        rows = self.session.execute(
            select(Vault)
            .where(Vault.user_id == user_id, Vault.bank_id == bank_id)
            .order_by(Vault.name, Vault.id)
        ).scalars().all()
        return [VaultInfo.from_model(v) for v in rows]

    def update_vault(self, vault_id: UUID, request: VaultUpdate, user_id: UUID) -> VaultInfo:
        """Change name, description or currency tag.  Never amount or bank."""
        with self._transaction(ENTITY, vault_id):
            vault = self._balances.lock_vault(vault_id, user_id)
            if is_set(request.name):
                name = (request.name or "").strip()
                if not name:
                    raise InvalidOperationError("Vault name is required")
                vault.name = name
            if is_set(request.description):
                vault.description = request.description
            if is_set(request.currency):
                vault.currency = _clean_currency(request.currency)
        logger.info("vault_updated", extra={"vault_id": str(vault_id)})
        return VaultInfo.from_model(vault)
