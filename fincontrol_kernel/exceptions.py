"""
Typed Exception Hierarchy for the FinControl kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP layer, the batch runner, tests) catch by TYPE, never by
message.  Every exception carries:
  1. A ``code`` class attribute (machine-readable, API-safe)
  2. Structured attributes with the data needed to build a response

Example:
    try:
        vault_service.withdraw(vault_id, Decimal("150.00"), user_id)
    except InsufficientBalanceError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FinControlError (base)                      -> 500
    |
    +-- NotFoundError                           -> 404
    |   +-- UserNotFoundError
    |   +-- BankNotFoundError
    |   +-- VaultNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- ExtraIncomeNotFoundError
    |   +-- BillNotFoundError
    |   +-- ReceivableNotFoundError
    |
    +-- InvalidOperationError                   -> 400
    |   +-- InsufficientBalanceError
    |   +-- TerminalStatusError
    |   +-- PastDueDateError
    |   +-- InvalidAmountError
    |   +-- TrappedFundsError
    |   +-- DuplicateError                      -> 409
    |
    +-- ConcurrencyError                        -> 409
        +-- OptimisticLockError

A row that exists but belongs to another user raises the same NotFoundError
as a missing row.  Ownership is never disclosed.

Unclassified exceptions (storage errors, bugs) map to 500 and their message
is not exposed by ``error_payload``.
"""

from decimal import Decimal


class FinControlError(Exception):
    """
    Base exception for all FinControl kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "FINCONTROL_ERROR"


# Not-found errors


class NotFoundError(FinControlError):
    """Referenced entity does not exist or is not owned by the requesting user."""

    code: str = "NOT_FOUND"
    entity: str = "Resource"

    def __init__(self, entity_id: str, detail: str | None = None):
        self.entity_id = entity_id
        message = f"{self.entity} not found: {entity_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity: str = "User"


class BankNotFoundError(NotFoundError):
    code: str = "BANK_NOT_FOUND"
    entity: str = "Bank"


class VaultNotFoundError(NotFoundError):
    code: str = "VAULT_NOT_FOUND"
    entity: str = "Vault"


class CategoryNotFoundError(NotFoundError):
    code: str = "CATEGORY_NOT_FOUND"
    entity: str = "Category"


class ExpenseNotFoundError(NotFoundError):
    code: str = "EXPENSE_NOT_FOUND"
    entity: str = "Expense"


class ExtraIncomeNotFoundError(NotFoundError):
    code: str = "EXTRA_INCOME_NOT_FOUND"
    entity: str = "ExtraIncome"


class BillNotFoundError(NotFoundError):
    code: str = "BILL_NOT_FOUND"
    entity: str = "Bill"


class ReceivableNotFoundError(NotFoundError):
    code: str = "RECEIVABLE_NOT_FOUND"
    entity: str = "Receivable"


# Business-rule violations


class InvalidOperationError(FinControlError):
    """A business rule was violated.  Nothing was mutated."""

    code: str = "INVALID_OPERATION"

    def __init__(self, message: str):
        self.reason = message
        super().__init__(message)


class InsufficientBalanceError(InvalidOperationError):
    """
    A debit would drive a Bank or Vault balance below zero.

    The balance is left unchanged.
    """

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        account_kind: str,
        account_id: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.account_kind = account_kind
        self.account_id = account_id
        self.available = available
        self.requested = requested
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient balance in {account_kind} {account_id}: "
            f"available={available}, requested={requested}, "
            f"shortfall={self.shortfall}"
        )


class TerminalStatusError(InvalidOperationError):
    """A Bill or Receivable in a terminal status was asked to change."""

    code: str = "TERMINAL_STATUS"

    def __init__(self, entity: str, entity_id: str, status: str, action: str):
        self.entity = entity
        self.entity_id = entity_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity} {entity_id}: status {status} is terminal"
        )


class PastDueDateError(InvalidOperationError):
    """Due date lies before today."""

    code: str = "PAST_DUE_DATE"

    def __init__(self, due_date: str, today: str):
        self.due_date = due_date
        self.today = today
        super().__init__(f"Due date {due_date} cannot be before {today}")


class InvalidAmountError(InvalidOperationError):
    """Amount is missing, non-positive, negative, or too precise."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, rule: str):
        self.amount = amount
        self.rule = rule
        super().__init__(f"Invalid amount {amount}: {rule}")


class TrappedFundsError(InvalidOperationError):
    """Deleting an unlinked vault would destroy the money it holds."""

    code: str = "TRAPPED_FUNDS"

    def __init__(self, vault_id: str, amount: Decimal, currency: str):
        self.vault_id = vault_id
        self.amount = amount
        self.currency = currency
        super().__init__(
            f"Vault {vault_id} is not linked to a bank and still holds "
            f"{amount} {currency}; withdraw the full amount before deleting it"
        )


class DuplicateError(InvalidOperationError):
    """A uniqueness rule would be violated."""

    code: str = "DUPLICATE"

    def __init__(self, entity: str, field: str, value: str):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"{entity} with {field}={value!r} already exists")


# Concurrency


class ConcurrencyError(FinControlError):
    """Base exception for concurrent-modification errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Row changed since it was read (version counter mismatch)."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification detected on {entity} {entity_id}"
        )


# ---------------------------------------------------------------------------
# Boundary helpers
# ---------------------------------------------------------------------------

_GENERIC_MESSAGE = "An unexpected error occurred."


def http_status_for(exc: BaseException) -> int:
    """Map an exception to the status code the HTTP layer should answer with."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (DuplicateError, ConcurrencyError)):
        return 409
    if isinstance(exc, InvalidOperationError):
        return 400
    return 500


def error_payload(exc: BaseException) -> dict[str, str]:
    """Client-safe error body.  Unclassified failures do not leak details."""
    if isinstance(exc, FinControlError) and http_status_for(exc) != 500:
        return {"code": exc.code, "message": str(exc)}
    return {"code": FinControlError.code, "message": _GENERIC_MESSAGE}
