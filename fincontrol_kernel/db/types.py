"""
Module: fincontrol_kernel.db.types
Responsibility: Annotated type aliases for column types shared by every model.
    Centralizes monetary precision so that banks, vaults, expenses, incomes and
    salaries all store amounts identically.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money is an exact fixed-point decimal with 2 places (Numeric(12, 2)).
      NEVER use float for monetary amounts.
    - Currency is a free-text tag; no ISO 4217 validation and no conversion.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

MONEY_PRECISION = 12
MONEY_SCALE = 2

# Largest value a Money column can hold
MONEY_MAX = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE) - Decimal("0.01")

# Monetary amount, 2 decimal places
Money = Annotated[Decimal, Numeric(MONEY_PRECISION, MONEY_SCALE)]

# Free-text currency tag (e.g., "BRL", "USD", "points")
CurrencyTag = Annotated[str, String(10)]

# Display names
ShortText = Annotated[str, String(100)]

# Descriptions
LongText = Annotated[str, String(255)]
