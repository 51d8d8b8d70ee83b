"""
fincontrol_batch.tasks -- Task protocol, registry, and the four daily jobs.
"""

from fincontrol_batch.tasks.base import JobTask, TaskRegistry
from fincontrol_batch.tasks.bill_tasks import BillAutoPayTask, BillOverdueTask
from fincontrol_batch.tasks.receivable_tasks import (
    ReceivableAutoReceiptTask,
    ReceivableOverdueTask,
)

__all__ = [
    "JobTask",
    "TaskRegistry",
    "BillOverdueTask",
    "BillAutoPayTask",
    "ReceivableOverdueTask",
    "ReceivableAutoReceiptTask",
]
