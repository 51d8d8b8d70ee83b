"""
Pytest fixtures for the FinControl test suite.

Provides:
- An in-memory SQLite database per test, built from the real ORM models
- A deterministic clock frozen at noon UTC on TODAY
- A seeded user with two banks and a category
- Factories for expenses, incomes, bills and receivables
- Captured structured logs as parsed JSON dicts

Concurrency tests that need two independent connections build their own
file-backed SQLite engine (see tests/concurrency).
"""

import json
import logging
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from fincontrol_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from fincontrol_kernel.domain.clock import DeterministicClock
from fincontrol_kernel.domain.dtos import (
    BankCreate,
    BillCreate,
    CategoryCreate,
    ExpenseCreate,
    ExtraIncomeCreate,
    ReceivableCreate,
    UserCreate,
)
from fincontrol_kernel.domain.lifecycle import PaymentMethod, ReceiptMethod
from fincontrol_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fincontrol_kernel.services import (
    BankService,
    BillService,
    CategoryService,
    ExpenseService,
    ExtraIncomeService,
    ReceivableService,
    UserService,
    VaultService,
)

# Saturday.  Every test clock starts here unless it says otherwise.
TODAY = date(2024, 6, 15)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fincontrol logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, bill_service):
            bill_service.process_overdue_job()
            logs = captured_logs()
            assert any(r["message"] == "bill_overdue_job_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fincontrol")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with every table created."""
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def session(engine):
    s = get_session()
    yield s
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock.on(TODAY)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def user_service(session, clock):
    return UserService(session, clock)


@pytest.fixture
def bank_service(session, clock):
    return BankService(session, clock)


@pytest.fixture
def category_service(session, clock):
    return CategoryService(session, clock)


@pytest.fixture
def expense_service(session, clock):
    return ExpenseService(session, clock)


@pytest.fixture
def income_service(session, clock):
    return ExtraIncomeService(session, clock)


@pytest.fixture
def bill_service(session, clock):
    return BillService(session, clock)


@pytest.fixture
def receivable_service(session, clock):
    return ReceivableService(session, clock)


@pytest.fixture
def vault_service(session, clock):
    return VaultService(session, clock)


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def make_user(user_service):
    def _make(name: str = "Ana", email: str | None = None):
        return user_service.register(
            UserCreate(
                name=name,
                email=email or f"{uuid4().hex[:10]}@example.com",
                password_hash="bcrypt$test",
            )
        )

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(name="Bruno")


@pytest.fixture
def make_bank(bank_service, user):
    def _make(balance: str = "0.00", name: str = "Checking", owner=None):
        owner_id = owner.id if owner is not None else user.id
        return bank_service.create(
            BankCreate(name=name, balance=Decimal(balance)), owner_id
        )

    return _make


@pytest.fixture
def bank(make_bank):
    return make_bank("1000.00", name="Main")


@pytest.fixture
def empty_bank(make_bank):
    return make_bank("0.00", name="Savings")


@pytest.fixture
def category(category_service, user):
    return category_service.create(CategoryCreate(name="Housing"), user.id)


@pytest.fixture
def make_expense(expense_service, category, user):
    def _make(value: str = "150.00", bank_id=None, name: str = "Rent"):
        return expense_service.create(
            ExpenseCreate(
                name=name,
                value=Decimal(value),
                expense_date=TODAY,
                category_id=category.id,
                bank_id=bank_id,
            ),
            user.id,
        )

    return _make


@pytest.fixture
def make_income(income_service, category, user, bank):
    def _make(amount: str = "75.00", bank_id=None, name: str = "Freelance"):
        # Incomes always need a bank; default to the seeded one
        return income_service.create(
            ExtraIncomeCreate(
                name=name,
                amount=Decimal(amount),
                date=TODAY,
                category_id=category.id,
                bank_id=bank_id or bank.id,
            ),
            user.id,
        )

    return _make


@pytest.fixture
def make_bill(bill_service, make_expense, user):
    def _make(
        value: str = "150.00",
        due_date: date = TODAY,
        auto_pay: bool = False,
        bank_id=None,
    ):
        expense = make_expense(value)
        return bill_service.create(
            BillCreate(
                expense_id=expense.id,
                payment_method=PaymentMethod.PIX,
                due_date=due_date,
                auto_pay=auto_pay,
                bank_id=bank_id,
            ),
            user.id,
        )

    return _make


@pytest.fixture
def make_receivable(receivable_service, make_income, user):
    def _make(
        amount: str = "75.00",
        bank_id=None,
        due_date: date = TODAY,
        automatic_bank_receipt: bool = False,
    ):
        income = make_income(amount, bank_id=bank_id)
        return receivable_service.create(
            ReceivableCreate(
                extra_income_id=income.id,
                receipt_method=ReceiptMethod.TRANSFER,
                due_date=due_date,
                automatic_bank_receipt=automatic_bank_receipt,
            ),
            user.id,
        )

    return _make
