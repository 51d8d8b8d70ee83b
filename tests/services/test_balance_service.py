"""
Tests for BalanceService -- the Balance Mutator.

Verifies:
- credit / debit arithmetic on banks and vaults
- an overdraft raises InsufficientBalanceError and writes nothing
- the mutator flushes but never commits
- balance >= 0 holds for any sequence of operations (hypothesis)
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from fincontrol_kernel.domain.dtos import BankCreate, UserCreate
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from fincontrol_kernel.models.bank import Bank
from fincontrol_kernel.models.user import User
from fincontrol_kernel.models.vault import Vault
from fincontrol_kernel.services import BalanceService, BankService, UserService


@pytest.fixture
def balances(session, clock):
    return BalanceService(session, clock)


class TestAdjust:

    def test_credit_bank(self, balances, session, bank):
        row = balances.lock_bank(bank.id, bank.user_id)
        assert balances.credit(row, Decimal("25.50")) == Decimal("1025.50")
        assert row.balance == Decimal("1025.50")

    def test_debit_bank(self, balances, bank):
        row = balances.lock_bank(bank.id, bank.user_id)
        assert balances.debit(row, "999.99") == Decimal("0.01")

    def test_debit_to_exactly_zero(self, balances, bank):
        row = balances.lock_bank(bank.id, bank.user_id)
        assert balances.debit(row, "1000.00") == Decimal("0.00")

    def test_overdraft_rejected_and_untouched(self, balances, session, bank, captured_logs):
        row = balances.lock_bank(bank.id, bank.user_id)
        with pytest.raises(InsufficientBalanceError) as exc_info:
            balances.debit(row, "1000.01")

        assert exc_info.value.available == Decimal("1000.00")
        assert exc_info.value.requested == Decimal("1000.01")
        assert row.balance == Decimal("1000.00")
        assert any(r["message"] == "balance_insufficient" for r in captured_logs())

    def test_vault_amount_field(self, balances, session, user):
        vault = Vault(name="Trip", amount=Decimal("10.00"), currency="BRL", user_id=user.id)
        session.add(vault)
        session.flush()

        balances.credit(vault, "5.00")
        assert vault.amount == Decimal("15.00")
        assert balances.balance_of(vault) == Decimal("15.00")

    def test_signed_adjust(self, balances, bank):
        row = balances.lock_bank(bank.id, bank.user_id)
        balances.adjust(row, Decimal("-100.00"))
        balances.adjust(row, Decimal("40.00"))
        assert row.balance == Decimal("940.00")

    @pytest.mark.parametrize("amount", ["0", "-5.00", "0.001"])
    def test_credit_requires_positive_two_place_amount(self, balances, bank, amount):
        row = balances.lock_bank(bank.id, bank.user_id)
        with pytest.raises(InvalidAmountError):
            balances.credit(row, amount)

    def test_rejects_other_models(self, balances, session, user):
        with pytest.raises(TypeError):
            balances.adjust(session.get(User, user.id), "1.00")

    def test_flushes_without_committing(self, balances, session, bank):
        row = balances.lock_bank(bank.id, bank.user_id)
        balances.credit(row, "1.00")
        session.rollback()

        assert session.get(Bank, bank.id).balance == Decimal("1000.00")

    def test_lock_bank_scoped_to_owner(self, balances, bank, other_user):
        with pytest.raises(BankNotFoundError):
            balances.lock_bank(bank.id, other_user.id)

    def test_lock_bank_without_owner_for_jobs(self, balances, bank):
        assert balances.lock_bank(bank.id, None).id == bank.id


_amounts = st.integers(min_value=1, max_value=200_000).map(lambda cents: Decimal(cents).scaleb(-2))
_operations = st.lists(st.tuples(st.sampled_from(["add", "remove"]), _amounts), max_size=25)


class TestNonNegativeBalanceProperty:

    @settings(
        max_examples=60,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(
        opening=st.integers(min_value=0, max_value=100_000).map(lambda c: Decimal(c).scaleb(-2)),
        operations=_operations,
    )
    def test_balance_never_negative(self, session, clock, opening, operations):
        user = UserService(session, clock).register(
            UserCreate(name="Prop", email=f"{uuid4().hex}@example.com", password_hash="h")
        )
        banks = BankService(session, clock)
        bank = banks.create(BankCreate(name="Prop", balance=opening), user.id)

        expected = opening
        for op, amount in operations:
            if op == "add":
                banks.add_money(bank.id, amount, user.id)
                expected += amount
            elif amount > expected:
                with pytest.raises(InsufficientBalanceError):
                    banks.remove_money(bank.id, amount, user.id)
            else:
                banks.remove_money(bank.id, amount, user.id)
                expected -= amount

            stored = banks.get(bank.id, user.id).balance
            assert stored >= Decimal("0.00")
            assert stored == expected
