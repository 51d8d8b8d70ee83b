"""
DTOs -- immutable request and response objects for the kernel services.

Responsibility:
    Request dataclasses (``*Create`` / ``*Update``) carry caller input into a
    service; ``*Info`` dataclasses carry results out.  Services never return
    ORM rows.  ``from_model()`` class methods are the only ORM-to-DTO
    boundary and are called from the service layer only.

Architecture position:
    Kernel > Domain -- zero I/O.  ORM types are imported for type checking
    only.

Update semantics:
    ``*Update`` fields default to ``UNSET``.  ``UNSET`` means "leave as is";
    for ``BillUpdate.bank_id`` and ``ExpenseUpdate.bank_id`` an explicit
    ``None`` means "disassociate".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fincontrol_kernel.domain.lifecycle import (
    BillStatus,
    PaymentMethod,
    ReceiptMethod,
    ReceivableStatus,
)

if TYPE_CHECKING:
    from fincontrol_kernel.models.bank import Bank
    from fincontrol_kernel.models.bill import Bill
    from fincontrol_kernel.models.category import Category
    from fincontrol_kernel.models.expense import Expense
    from fincontrol_kernel.models.extra_income import ExtraIncome
    from fincontrol_kernel.models.receivable import Receivable
    from fincontrol_kernel.models.user import User
    from fincontrol_kernel.models.vault import Vault


class _Unset:
    """Sentinel type for "field not provided" in partial updates."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def is_set(value: Any) -> bool:
    return value is not UNSET


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class UserCreate:
    name: str
    email: str
    password_hash: str
    salary: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class BankCreate:
    name: str
    description: str | None = None
    balance: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class BankUpdate:
    name: Any = UNSET
    description: Any = UNSET


@dataclass(frozen=True)
class CategoryCreate:
    name: str
    description: str | None = None


@dataclass(frozen=True)
class ExpenseCreate:
    name: str
    value: Decimal
    expense_date: date
    category_id: UUID
    description: str | None = None
    bank_id: UUID | None = None


@dataclass(frozen=True)
class ExtraIncomeCreate:
    name: str
    amount: Decimal
    date: date
    category_id: UUID
    bank_id: UUID
    description: str | None = None


@dataclass(frozen=True)
class ExpenseUpdate:
    """Partial expense update.  ``bank_id=None`` removes the bank link."""

    name: Any = UNSET
    description: Any = UNSET
    value: Any = UNSET
    expense_date: Any = UNSET
    category_id: Any = UNSET
    bank_id: Any = UNSET


@dataclass(frozen=True)
class ExtraIncomeUpdate:
    name: Any = UNSET
    description: Any = UNSET
    amount: Any = UNSET
    date: Any = UNSET
    category_id: Any = UNSET
    bank_id: Any = UNSET


@dataclass(frozen=True)
class VaultCreate:
    name: str
    initial_amount: Decimal = Decimal("0.00")
    description: str | None = None
    currency: str = "BRL"
    bank_id: UUID | None = None


@dataclass(frozen=True)
class VaultUpdate:
    name: Any = UNSET
    description: Any = UNSET
    currency: Any = UNSET


@dataclass(frozen=True)
class BillCreate:
    expense_id: UUID
    payment_method: PaymentMethod
    due_date: date
    auto_pay: bool = False
    bank_id: UUID | None = None


@dataclass(frozen=True)
class BillUpdate:
    """Partial bill update.  ``bank_id=None`` removes the bank link."""

    expense_id: Any = UNSET
    bank_id: Any = UNSET
    payment_method: Any = UNSET
    due_date: Any = UNSET
    auto_pay: Any = UNSET


@dataclass(frozen=True)
class ReceivableCreate:
    extra_income_id: UUID
    receipt_method: ReceiptMethod
    due_date: date
    automatic_bank_receipt: bool = False


@dataclass(frozen=True)
class ReceivableUpdate:
    receipt_method: Any = UNSET
    due_date: Any = UNSET
    automatic_bank_receipt: Any = UNSET


@dataclass(frozen=True)
class BillFilter:
    """Conjunctive bill listing filter.  ``None`` means "no constraint"."""

    status: BillStatus | None = None
    expense_category_id: UUID | None = None
    bank_id: UUID | None = None
    due_from: date | None = None
    due_to: date | None = None


@dataclass(frozen=True)
class ReceivableFilter:
    status: ReceivableStatus | None = None
    due_from: date | None = None
    due_to: date | None = None


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20

    def __post_init__(self):
        if self.page < 0:
            raise ValueError(f"page must be >= 0, got {self.page}")
        if not 1 <= self.size <= 500:
            raise ValueError(f"size must be between 1 and 500, got {self.size}")

    @property
    def offset(self) -> int:
        return self.page * self.size


# =============================================================================
# Responses
# =============================================================================


@dataclass(frozen=True)
class UserInfo:
    id: UUID
    name: str
    email: str
    salary: Decimal
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: User) -> UserInfo:
        return cls(
            id=model.id,
            name=model.name,
            email=model.email,
            salary=model.salary,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class BankInfo:
    id: UUID
    name: str
    description: str
    balance: Decimal
    user_id: UUID

    @classmethod
    def from_model(cls, model: Bank) -> BankInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            balance=model.balance,
            user_id=model.user_id,
        )


@dataclass(frozen=True)
class CategoryInfo:
    id: UUID
    name: str
    description: str | None
    user_id: UUID

    @classmethod
    def from_model(cls, model: Category) -> CategoryInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            user_id=model.user_id,
        )


@dataclass(frozen=True)
class ExpenseInfo:
    id: UUID
    name: str
    description: str | None
    value: Decimal
    expense_date: date
    category_id: UUID
    bank_id: UUID | None
    user_id: UUID

    @classmethod
    def from_model(cls, model: Expense) -> ExpenseInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            value=model.value,
            expense_date=model.expense_date,
            category_id=model.category_id,
            bank_id=model.bank_id,
            user_id=model.user_id,
        )


@dataclass(frozen=True)
class ExtraIncomeInfo:
    id: UUID
    name: str
    description: str | None
    amount: Decimal
    date: date
    category_id: UUID
    bank_id: UUID | None
    user_id: UUID

    @classmethod
    def from_model(cls, model: ExtraIncome) -> ExtraIncomeInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            amount=model.amount,
            date=model.date,
            category_id=model.category_id,
            bank_id=model.bank_id,
            user_id=model.user_id,
        )


@dataclass(frozen=True)
class VaultInfo:
    id: UUID
    name: str
    description: str | None
    amount: Decimal
    currency: str
    bank_id: UUID | None
    user_id: UUID

    @classmethod
    def from_model(cls, model: Vault) -> VaultInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            amount=model.amount,
            currency=model.currency,
            bank_id=model.bank_id,
            user_id=model.user_id,
        )


@dataclass(frozen=True)
class BillInfo:
    id: UUID
    user_id: UUID
    expense_id: UUID
    expense_name: str
    amount: Decimal
    bank_id: UUID | None
    payment_method: PaymentMethod
    due_date: date
    auto_pay: bool
    status: BillStatus
    payment_date: date | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (BillStatus.PAID, BillStatus.PAID_LATE)

    @classmethod
    def from_model(cls, model: Bill) -> BillInfo:
        return cls(
            id=model.id,
            user_id=model.user_id,
            expense_id=model.expense_id,
            expense_name=model.expense.name,
            amount=model.expense.value,
            bank_id=model.bank_id,
            payment_method=PaymentMethod(model.payment_method),
            due_date=model.due_date,
            auto_pay=model.auto_pay,
            status=BillStatus(model.status),
            payment_date=model.payment_date,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class ReceivableInfo:
    id: UUID
    user_id: UUID
    extra_income_id: UUID
    extra_income_name: str
    amount: Decimal
    bank_id: UUID | None
    receipt_method: ReceiptMethod
    due_date: date
    automatic_bank_receipt: bool
    status: ReceivableStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ReceivableStatus.RECEIVED, ReceivableStatus.RECEIVED_LATE)

    @classmethod
    def from_model(cls, model: Receivable) -> ReceivableInfo:
        return cls(
            id=model.id,
            user_id=model.user_id,
            extra_income_id=model.extra_income_id,
            extra_income_name=model.extra_income.name,
            amount=model.extra_income.amount,
            bank_id=model.extra_income.bank_id,
            receipt_method=ReceiptMethod(model.receipt_method),
            due_date=model.due_date,
            automatic_bank_receipt=model.automatic_bank_receipt,
            status=ReceivableStatus(model.status),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class Page:
    items: tuple[Any, ...]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.size - 1) // self.size if self.size else 0

    @property
    def has_next(self) -> bool:
        return (self.page + 1) * self.size < self.total


@dataclass(frozen=True)
class BalanceSnapshot:
    """Before/after view of one account touched by an operation."""

    account_id: UUID
    name: str
    before: Decimal
    after: Decimal


@dataclass(frozen=True)
class VaultTransactionResult:
    operation: str
    amount: Decimal
    vault: BalanceSnapshot
    currency: str
    bank: BalanceSnapshot | None
    timestamp: datetime


@dataclass(frozen=True)
class BankTransferResult:
    amount: Decimal
    source: BalanceSnapshot
    destination: BalanceSnapshot
    timestamp: datetime


@dataclass(frozen=True)
class JobRunSummary:
    """Counters reported by one batch job entry point."""

    job_name: str
    run_date: date
    selected: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0

    def log_fields(self) -> dict[str, Any]:
        return {
            "run_date": self.run_date,
            "selected": self.selected,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
        }
