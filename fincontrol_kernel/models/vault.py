"""
Module: fincontrol_kernel.models.vault
Responsibility: ORM persistence for savings vaults.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount >= 0 (ck_vault_amount_non_negative).
    - A bank-linked vault was funded from that bank 1:1; the link becomes
      NULL if the bank is deleted and the vault keeps its amount.
    - version is a version_id_col (see models.bank).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fincontrol_kernel.db.base import TimestampedBase
from fincontrol_kernel.models.bank import Bank

DEFAULT_VAULT_CURRENCY = "BRL"


class Vault(TimestampedBase):
    __tablename__ = "vaults"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_vault_amount_non_negative"),
        Index("idx_vault_user", "user_id"),
        Index("idx_vault_bank", "bank_id"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))

    # Free-text tag, no conversion
    currency: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=DEFAULT_VAULT_CURRENCY,
    )

    bank_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("banks.id", ondelete="SET NULL"),
        nullable=True,
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    bank: Mapped[Bank | None] = relationship()

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Vault {self.name}: {self.amount} {self.currency}>"
