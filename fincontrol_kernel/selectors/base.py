"""
Module: fincontrol_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors and the
    owner-scoped lookup every user-facing read goes through.
Architecture position: Kernel > Selectors.  May import from db/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Tenant isolation: ``owned()`` filters on (id, user_id), so a row
      owned by someone else is indistinguishable from a missing row.
    - Session ownership: the caller owns the session and its transaction.

Selectors hand ORM rows to the service layer, which maps them to DTOs
before they leave the kernel.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fincontrol_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller and perform read-only
        queries.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session

    def owned(
        self,
        model: type[ModelType],
        record_id: UUID,
        user_id: UUID,
    ) -> ModelType | None:
        """Return the row with ``record_id`` owned by ``user_id``, if any."""
        stmt = select(model).where(
            model.id == record_id,
            model.user_id == user_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def owned_for_update(
        self,
        model: type[ModelType],
        record_id: UUID,
        user_id: UUID | None = None,
    ) -> ModelType | None:
        """
        Load a row under SELECT ... FOR UPDATE, refreshing identity-map state.

        ``populate_existing`` makes the returned object reflect the locked,
        committed row even if a stale copy is already in the session.  Pass
        ``user_id=None`` only from batch jobs, which act on every owner.
        """
        stmt = select(model).where(model.id == record_id)
        if user_id is not None:
            stmt = stmt.where(model.user_id == user_id)
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()
