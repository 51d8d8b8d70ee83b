"""
Module: fincontrol_kernel.models.category
Responsibility: ORM persistence for expense / income categories.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - name is unique per owner (uq_category_user_name).
    - A category referenced by an expense or extra income cannot be
      deleted (RESTRICT on the referencing foreign keys).
"""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fincontrol_kernel.db.base import TimestampedBase


class Category(TimestampedBase):
    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"
