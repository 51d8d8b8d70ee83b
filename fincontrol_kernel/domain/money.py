"""
Money -- input normalization for monetary amounts.

Responsibility:
    Every amount that enters a service goes through ``to_money`` before it
    touches a balance.  Amounts are exact ``Decimal`` values with at most two
    decimal places and fit the ``Numeric(12, 2)`` column.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - InvalidAmountError for None, floats, non-numeric strings, NaN/Infinity,
      more than two decimal places, or values beyond the column range.
    - InvalidAmountError from ``require_positive`` / ``require_non_negative``.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from fincontrol_kernel.db.types import MONEY_MAX, MONEY_SCALE
from fincontrol_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0.00")
_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)


def to_money(value: Decimal | int | str | None) -> Decimal:
    """
    Convert ``value`` to a 2-place Decimal without rounding it.

    ``Decimal("10.5")`` becomes ``Decimal("10.50")``; ``Decimal("10.505")``
    is rejected.  Floats are rejected outright.
    """
    if value is None:
        raise InvalidAmountError("None", "amount is required")
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(repr(value), "use Decimal or str, never float")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(repr(value), "not a number") from None

    if not amount.is_finite():
        raise InvalidAmountError(str(amount), "not a finite number")

    if abs(amount) > MONEY_MAX:
        raise InvalidAmountError(str(amount), f"exceeds {MONEY_MAX}")

    quantized = amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
    if quantized != amount:
        raise InvalidAmountError(
            str(amount), f"more than {MONEY_SCALE} decimal places"
        )
    return quantized


def require_positive(value: Decimal | int | str | None) -> Decimal:
    amount = to_money(value)
    if amount <= ZERO:
        raise InvalidAmountError(str(amount), "must be greater than zero")
    return amount


def require_non_negative(value: Decimal | int | str | None) -> Decimal:
    amount = to_money(value)
    if amount < ZERO:
        raise InvalidAmountError(str(amount), "must not be negative")
    return amount
