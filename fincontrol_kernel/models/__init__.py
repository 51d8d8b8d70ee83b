"""ORM models for the FinControl ledger store."""

from fincontrol_kernel.models.bank import DEFAULT_BANK_DESCRIPTION, Bank
from fincontrol_kernel.models.bill import Bill
from fincontrol_kernel.models.category import Category
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.models.extra_income import ExtraIncome
from fincontrol_kernel.models.receivable import Receivable
from fincontrol_kernel.models.user import User
from fincontrol_kernel.models.vault import DEFAULT_VAULT_CURRENCY, Vault

__all__ = [
    "User",
    "Bank",
    "Category",
    "Expense",
    "ExtraIncome",
    "Vault",
    "Bill",
    "Receivable",
    "DEFAULT_BANK_DESCRIPTION",
    "DEFAULT_VAULT_CURRENCY",
]
