"""
BalanceService -- the Balance Mutator.

Responsibility:
    The only code path that changes ``Bank.balance`` or ``Vault.amount``.
    Every bill payment, receivable credit, vault movement and bank transfer
    goes through ``adjust()`` (usually via ``credit()`` / ``debit()``).

Architecture position:
    Kernel > Services.  Flush-only: it never commits or rolls back.  The
    calling service's transaction makes the balance write and the business
    state change that triggered it atomic.

Invariants enforced:
    - Non-negative balances: a debit larger than the current balance raises
      InsufficientBalanceError and leaves the balance untouched.
    - Exact arithmetic: deltas are 2-place Decimals (see domain.money);
      floats and over-precise values are rejected.
    - Lost-update detection: Bank and Vault carry a version counter, so a
      flush against a row changed by another transaction raises
      OptimisticLockError.

Failure modes:
    - InsufficientBalanceError, InvalidAmountError, OptimisticLockError.
    - BankNotFoundError / VaultNotFoundError from the lock helpers.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm.exc import StaleDataError

from fincontrol_kernel.domain.money import ZERO, require_positive, to_money
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    InsufficientBalanceError,
    OptimisticLockError,
    VaultNotFoundError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.vault import Vault
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.balance")

# Account type -> (display kind, balance attribute)
_ACCOUNT_FIELDS: dict[type, tuple[str, str]] = {
    Bank: ("Bank", "balance"),
    Vault: ("Vault", "amount"),
}


def _describe(account: Bank | Vault) -> tuple[str, str]:
    try:
        return _ACCOUNT_FIELDS[type(account)]
    except KeyError:
        raise TypeError(
            f"Balance accounts are Bank or Vault, got {type(account).__name__}"
        ) from None


class BalanceService(BaseService):
    """
    Atomic balance adjustment for banks and vaults.

    Contract:
        ``adjust(account, delta)`` sets the balance to ``current + delta``
        and flushes.  Callers lock the row first (``lock_bank`` /
        ``lock_vault``) so the read-validate-write happens under the lock.
    """

    def balance_of(self, account: Bank | Vault) -> Decimal:
        _, field = _describe(account)
        return getattr(account, field)

    def adjust(self, account: Bank | Vault, delta: Decimal | int | str) -> Decimal:
        """
        Apply a signed ``delta`` and return the new balance.

        Raises:
            InsufficientBalanceError: ``delta`` is negative and its magnitude
                exceeds the current balance.  Nothing is written.
            OptimisticLockError: the row changed since it was loaded.
        """
        kind, field = _describe(account)
        delta = to_money(delta)
        current = getattr(account, field)
        new_balance = current + delta

        if new_balance < ZERO:
            logger.info(
                "balance_insufficient",
                extra={
                    "account_kind": kind,
                    "account_id": str(account.id),
                    "available": str(current),
                    "requested": str(-delta),
                },
            )
            raise InsufficientBalanceError(kind, str(account.id), current, -delta)

        # Row CHECK constraints hold the same bound; this keeps the error typed
        to_money(new_balance)

        setattr(account, field, new_balance)
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError(kind, str(account.id)) from exc

        logger.debug(
            "balance_adjusted",
            extra={
                "account_kind": kind,
                "account_id": str(account.id),
                "before": str(current),
                "delta": str(delta),
                "after": str(new_balance),
            },
        )
        return new_balance

    def credit(self, account: Bank | Vault, amount: Decimal | int | str) -> Decimal:
        return self.adjust(account, require_positive(amount))

    def debit(self, account: Bank | Vault, amount: Decimal | int | str) -> Decimal:
        return self.adjust(account, -require_positive(amount))

    def lock_bank(self, bank_id: UUID, user_id: UUID | None) -> Bank:
        """SELECT ... FOR UPDATE on a bank.  ``user_id=None`` is for jobs."""
        return self._lock_owned(Bank, bank_id, user_id, BankNotFoundError)

    def lock_vault(self, vault_id: UUID, user_id: UUID | None) -> Vault:
        return self._lock_owned(Vault, vault_id, user_id, VaultNotFoundError)
