"""Read-only query selectors."""

from fincontrol_kernel.selectors.base import BaseSelector
from fincontrol_kernel.selectors.bill_selector import BillSelector
from fincontrol_kernel.selectors.receivable_selector import ReceivableSelector

__all__ = [
    "BaseSelector",
    "BillSelector",
    "ReceivableSelector",
]
