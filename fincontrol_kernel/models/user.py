"""
Module: fincontrol_kernel.models.user
Responsibility: ORM persistence for the account holder.  Every other row in
    the ledger store is owned by exactly one User.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - email is unique (uq_user_email); services store it lower-cased.
    - salary is never negative (ck_user_salary_non_negative).

Failure modes:
    - IntegrityError on duplicate email if two registrations race past the
      service-level DuplicateError check.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fincontrol_kernel.db.base import TimestampedBase


class User(TimestampedBase):
    """
    Account holder.

    The password arrives already hashed from the identity provider; this
    row never sees a plaintext password.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        CheckConstraint("salary >= 0", name="ck_user_salary_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))

    def __repr__(self) -> str:
        return f"<User {self.email}>"
