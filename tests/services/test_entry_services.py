"""
Tests for the category, expense and extra income services.

These rows feed bills and receivables; deleting them takes the dependent
bill or receivable with them and never touches a balance.
"""

from datetime import date
from decimal import Decimal

import pytest

from fincontrol_kernel.domain.dtos import (
    CategoryCreate,
    ExpenseCreate,
    ExpenseUpdate,
    ExtraIncomeCreate,
    ExtraIncomeUpdate,
)
from fincontrol_kernel.exceptions import (
    BankNotFoundError,
    BillNotFoundError,
    CategoryNotFoundError,
    DuplicateError,
    ExpenseNotFoundError,
    ExtraIncomeNotFoundError,
    InvalidAmountError,
    InvalidOperationError,
    ReceivableNotFoundError,
)

TODAY = date(2024, 6, 15)


class TestCategoryService:

    def test_create_and_list_sorted(self, category_service, user):
        category_service.create(CategoryCreate(name="Transport"), user.id)
        category_service.create(CategoryCreate(name=" Food ", description="meals"), user.id)

        names = [c.name for c in category_service.list(user.id)]
        assert names == ["Food", "Transport"]

    def test_name_unique_per_user(self, category_service, category, user, other_user):
        with pytest.raises(DuplicateError):
            category_service.create(CategoryCreate(name="Housing"), user.id)
        # Another user may reuse the name
        assert category_service.create(CategoryCreate(name="Housing"), other_user.id).name == "Housing"

    def test_blank_name(self, category_service, user):
        with pytest.raises(InvalidOperationError):
            category_service.create(CategoryCreate(name=""), user.id)

    def test_delete_unused(self, category_service, user):
        info = category_service.create(CategoryCreate(name="Misc"), user.id)
        category_service.delete(info.id, user.id)
        with pytest.raises(CategoryNotFoundError):
            category_service.get(info.id, user.id)

    def test_delete_in_use_refused(self, category_service, category, make_expense, user):
        make_expense()
        with pytest.raises(InvalidOperationError):
            category_service.delete(category.id, user.id)
        assert category_service.get(category.id, user.id).name == "Housing"

    def test_other_users_category(self, category_service, category, other_user):
        with pytest.raises(CategoryNotFoundError):
            category_service.get(category.id, other_user.id)


class TestExpenseService:

    def test_create(self, make_expense, bank):
        info = make_expense("42.10", bank_id=bank.id, name=" Power ")
        assert info.name == "Power"
        assert info.value == Decimal("42.10")
        assert info.bank_id == bank.id
        assert info.expense_date == TODAY

    def test_creating_does_not_touch_bank(self, make_expense, bank_service, bank, user):
        make_expense("42.10", bank_id=bank.id)
        assert bank_service.get(bank.id, user.id).balance == Decimal("1000.00")

    @pytest.mark.parametrize("value", ["0.00", "-3.00"])
    def test_value_must_be_positive(self, make_expense, value):
        with pytest.raises(InvalidAmountError):
            make_expense(value)

    def test_unknown_category(self, expense_service, user, category_service, other_user):
        theirs = category_service.create(CategoryCreate(name="Theirs"), other_user.id)
        with pytest.raises(CategoryNotFoundError):
            expense_service.create(
                ExpenseCreate(name="X", value=Decimal("1.00"), expense_date=TODAY, category_id=theirs.id),
                user.id,
            )

    def test_other_users_bank(self, expense_service, category, make_bank, other_user, user):
        theirs = make_bank("0.00", name="Theirs", owner=other_user)
        with pytest.raises(BankNotFoundError):
            expense_service.create(
                ExpenseCreate(
                    name="X",
                    value=Decimal("1.00"),
                    expense_date=TODAY,
                    category_id=category.id,
                    bank_id=theirs.id,
                ),
                user.id,
            )

    def test_delete_removes_bill(self, expense_service, bill_service, make_bill, user):
        bill = make_bill()
        expense_service.delete(bill.expense_id, user.id)

        with pytest.raises(ExpenseNotFoundError):
            expense_service.get(bill.expense_id, user.id)
        with pytest.raises(BillNotFoundError):
            bill_service.get(bill.id, user.id)

    def test_update_changes_only_given_fields(self, expense_service, make_expense, bank, user):
        info = make_expense("150.00", bank_id=bank.id)

        updated = expense_service.update(
            info.id, ExpenseUpdate(value=Decimal("180.50"), name=" Rent June "), user.id
        )

        assert updated.value == Decimal("180.50")
        assert updated.name == "Rent June"
        assert updated.bank_id == bank.id
        assert updated.expense_date == TODAY

    def test_update_unlinks_bank(self, expense_service, make_expense, bank, user):
        info = make_expense(bank_id=bank.id)
        assert expense_service.update(info.id, ExpenseUpdate(bank_id=None), user.id).bank_id is None

    @pytest.mark.parametrize("value", [Decimal("0.00"), Decimal("-5.00")])
    def test_update_value_must_be_positive(self, expense_service, make_expense, user, value):
        info = make_expense("150.00")
        with pytest.raises(InvalidAmountError):
            expense_service.update(info.id, ExpenseUpdate(value=value), user.id)
        assert expense_service.get(info.id, user.id).value == Decimal("150.00")

    def test_update_rejects_other_users_bank(
        self, expense_service, make_expense, make_bank, other_user, user,
    ):
        info = make_expense()
        theirs = make_bank("1.00", owner=other_user)
        with pytest.raises(BankNotFoundError):
            expense_service.update(info.id, ExpenseUpdate(bank_id=theirs.id), user.id)

    def test_other_user_cannot_update(self, expense_service, make_expense, other_user):
        info = make_expense()
        with pytest.raises(ExpenseNotFoundError):
            expense_service.update(info.id, ExpenseUpdate(name="Mine"), other_user.id)

    def test_list_only_own(self, expense_service, make_expense, other_user, user):
        make_expense()
        assert len(expense_service.list(user.id)) == 1
        assert expense_service.list(other_user.id) == []


class TestExtraIncomeService:

    def test_create(self, make_income, bank):
        info = make_income("75.00")
        assert info.amount == Decimal("75.00")
        assert info.bank_id == bank.id

    def test_creating_does_not_touch_bank(self, make_income, bank_service, bank, user):
        make_income("75.00")
        assert bank_service.get(bank.id, user.id).balance == Decimal("1000.00")

    def test_bank_required(self, income_service, category, user):
        with pytest.raises(InvalidOperationError):
            income_service.create(
                ExtraIncomeCreate(
                    name="Gift",
                    amount=Decimal("10.00"),
                    date=TODAY,
                    category_id=category.id,
                    bank_id=None,
                ),
                user.id,
            )

    def test_delete_removes_receivable(self, income_service, receivable_service, make_receivable, user):
        receivable = make_receivable()
        income_service.delete(receivable.extra_income_id, user.id)

        with pytest.raises(ExtraIncomeNotFoundError):
            income_service.get(receivable.extra_income_id, user.id)
        with pytest.raises(ReceivableNotFoundError):
            receivable_service.get(receivable.id, user.id)

    def test_other_user_cannot_delete(self, income_service, make_income, other_user, user):
        info = make_income()
        with pytest.raises(ExtraIncomeNotFoundError):
            income_service.delete(info.id, other_user.id)
        assert income_service.get(info.id, user.id).name == "Freelance"

    def test_update_amount_and_bank(self, income_service, make_income, empty_bank, user):
        info = make_income("75.00")

        updated = income_service.update(
            info.id,
            ExtraIncomeUpdate(amount=Decimal("90.00"), bank_id=empty_bank.id),
            user.id,
        )

        assert updated.amount == Decimal("90.00")
        assert updated.bank_id == empty_bank.id
        assert updated.name == "Freelance"

    def test_update_cannot_drop_bank(self, income_service, make_income, bank, user):
        info = make_income()
        with pytest.raises(InvalidOperationError):
            income_service.update(info.id, ExtraIncomeUpdate(bank_id=None), user.id)
        assert income_service.get(info.id, user.id).bank_id == bank.id

    def test_update_moves_no_money(self, income_service, bank_service, make_income, bank, user):
        info = make_income("75.00")
        income_service.update(info.id, ExtraIncomeUpdate(amount=Decimal("500.00")), user.id)
        assert bank_service.get(bank.id, user.id).balance == Decimal("1000.00")

    def test_other_user_cannot_update(self, income_service, make_income, other_user):
        info = make_income()
        with pytest.raises(ExtraIncomeNotFoundError):
            income_service.update(info.id, ExtraIncomeUpdate(name="Mine"), other_user.id)
