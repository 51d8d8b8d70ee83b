"""
Bill and Receivable lifecycles.

Status enums, payment / receipt method enums, and the two workflows that
every status change in ``BillService`` and ``ReceivableService`` is resolved
against.  A status change that has no transition here is rejected.

    Bill:        PENDING -> OVERDUE -> PAID_LATE
                 PENDING -> PAID | PAID_LATE
    Receivable:  PENDING -> OVERDUE -> RECEIVED_LATE
                 PENDING -> RECEIVED
                 OVERDUE -> PENDING  (due date moved to today or later)
"""

from datetime import date
from enum import Enum
from typing import TypeVar

from fincontrol_kernel.domain.workflow import Transition, Workflow
from fincontrol_kernel.exceptions import InvalidOperationError

E = TypeVar("E", bound=Enum)


class BillStatus(str, Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    PAID = "PAID"
    PAID_LATE = "PAID_LATE"


class ReceivableStatus(str, Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    RECEIVED = "RECEIVED"
    RECEIVED_LATE = "RECEIVED_LATE"


class PaymentMethod(str, Enum):
    """How a bill is paid.  Informational only; never drives money movement."""

    CASH = "CASH"
    CARD = "CARD"
    PIX = "PIX"
    TRANSFER = "TRANSFER"
    BOLETO = "BOLETO"
    OTHER = "OTHER"


class ReceiptMethod(str, Enum):
    """How a receivable is collected.  Informational only."""

    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PIX = "PIX"
    BANK_SLIP = "BANK_SLIP"
    CHECK = "CHECK"
    LOAN = "LOAN"
    TRANSFER = "TRANSFER"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"
    OTHER = "OTHER"


# Workflow actions
MARK_OVERDUE = "mark_overdue"
AUTO_SETTLE = "auto_settle"
SETTLE_ON_TIME = "settle_on_time"
SETTLE_LATE = "settle_late"
REOPEN = "reopen"


BILL_WORKFLOW = Workflow(
    name="bill",
    description="Accounts payable lifecycle",
    initial_state=BillStatus.PENDING.value,
    states=tuple(s.value for s in BillStatus),
    transitions=(
        Transition(BillStatus.PENDING.value, BillStatus.OVERDUE.value, action=MARK_OVERDUE),
        Transition(BillStatus.PENDING.value, BillStatus.PAID.value, action=AUTO_SETTLE, moves_money=True),
        Transition(BillStatus.PENDING.value, BillStatus.PAID.value, action=SETTLE_ON_TIME),
        Transition(BillStatus.PENDING.value, BillStatus.PAID_LATE.value, action=SETTLE_LATE),
        Transition(BillStatus.OVERDUE.value, BillStatus.PAID_LATE.value, action=SETTLE_LATE),
    ),
    terminal_states=(BillStatus.PAID.value, BillStatus.PAID_LATE.value),
)

RECEIVABLE_WORKFLOW = Workflow(
    name="receivable",
    description="Accounts receivable lifecycle",
    initial_state=ReceivableStatus.PENDING.value,
    states=tuple(s.value for s in ReceivableStatus),
    transitions=(
        Transition(ReceivableStatus.PENDING.value, ReceivableStatus.OVERDUE.value, action=MARK_OVERDUE),
        Transition(ReceivableStatus.PENDING.value, ReceivableStatus.RECEIVED.value, action=AUTO_SETTLE, moves_money=True),
        Transition(ReceivableStatus.PENDING.value, ReceivableStatus.RECEIVED.value, action=SETTLE_ON_TIME, moves_money=True),
        Transition(ReceivableStatus.OVERDUE.value, ReceivableStatus.RECEIVED_LATE.value, action=SETTLE_LATE, moves_money=True),
        Transition(ReceivableStatus.OVERDUE.value, ReceivableStatus.PENDING.value, action=REOPEN),
    ),
    terminal_states=(ReceivableStatus.RECEIVED.value, ReceivableStatus.RECEIVED_LATE.value),
)


def manual_settlement_action(status: str, due_date: date, today: date) -> str:
    """
    Action a manual bill payment takes from ``status``.

    An OVERDUE record is always settled late.  A PENDING record is on time
    when today is on or before the due date, late otherwise.
    """
    if status == BillStatus.OVERDUE.value:
        return SETTLE_LATE
    return SETTLE_ON_TIME if today <= due_date else SETTLE_LATE


def is_past_due(due_date: date, today: date) -> bool:
    return due_date < today


def manual_receipt_action(status: str) -> str:
    """
    Action a manual receipt takes from ``status``.

    Receipts ignore the calendar: PENDING is received on time even past its
    due date, and only an OVERDUE receivable is received late.
    """
    if status == ReceivableStatus.OVERDUE.value:
        return SETTLE_LATE
    return SETTLE_ON_TIME


def parse_choice(enum_cls: type[E], value, field: str) -> E:
    """``enum_cls(value)``, with an unknown value reported as a rule violation."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidOperationError(
            f"Unknown {field} {value!r}; expected one of {allowed}"
        ) from None
