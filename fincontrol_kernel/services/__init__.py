"""Kernel services: the only writers of balances and lifecycle status."""

from fincontrol_kernel.services.balance_service import BalanceService
from fincontrol_kernel.services.bank_service import BankService
from fincontrol_kernel.services.base import BaseService
from fincontrol_kernel.services.bill_service import BillService
from fincontrol_kernel.services.category_service import CategoryService
from fincontrol_kernel.services.expense_service import ExpenseService
from fincontrol_kernel.services.extra_income_service import ExtraIncomeService
from fincontrol_kernel.services.receivable_service import ReceivableService
from fincontrol_kernel.services.user_service import UserService
from fincontrol_kernel.services.vault_service import VaultService

__all__ = [
    "BaseService",
    "BalanceService",
    "BankService",
    "BillService",
    "CategoryService",
    "ExpenseService",
    "ExtraIncomeService",
    "ReceivableService",
    "UserService",
    "VaultService",
]
