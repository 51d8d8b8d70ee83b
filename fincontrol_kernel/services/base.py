"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor (session + injected clock), the owner-scoped lookups
    every service uses, the per-operation transaction boundary, and the
    workflow transition helper shared by the bill and receivable managers.

Architecture position:
    Kernel > Services -- imperative shell.

Transaction boundaries:
    Each public mutating operation runs inside ``self._transaction(...)``:
    commit on success, rollback on any exception, then re-raise.  Balance
    mutations and status changes made inside the block therefore commit or
    roll back together.  ``BalanceService`` is the exception: it only
    flushes and always runs inside another service's transaction.

Failure modes:
    - StaleDataError raised by a version_id_col mismatch during flush or
      commit is rolled back and re-raised as OptimisticLockError.
    - SQLAlchemyError and any other storage error is rolled back and
      propagates unchanged.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fincontrol_kernel.db.base import Base
from fincontrol_kernel.domain.clock import Clock, SystemClock
from fincontrol_kernel.domain.workflow import Transition, Workflow
from fincontrol_kernel.exceptions import (
    InvalidOperationError,
    NotFoundError,
    OptimisticLockError,
    TerminalStatusError,
    UserNotFoundError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.user import User
from fincontrol_kernel.selectors.base import BaseSelector

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller.  The caller owns
        the session's lifetime; the service owns the transaction of each
        public operation it exposes.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()
        self._lookup = BaseSelector(session)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _require_user(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    def _require_owned(
        self,
        model: type[Base],
        record_id: UUID,
        user_id: UUID,
        not_found: type[NotFoundError],
    ):
        record = self._lookup.owned(model, record_id, user_id)
        if record is None:
            raise not_found(str(record_id))
        return record

    def _lock_owned(
        self,
        model: type[Base],
        record_id: UUID,
        user_id: UUID | None,
        not_found: type[NotFoundError],
    ):
        record = self._lookup.owned_for_update(model, record_id, user_id)
        if record is None:
            raise not_found(str(record_id))
        return record

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, entity: str, entity_id: UUID | str | None = None) -> Iterator[None]:
        """Commit the enclosed work, or roll it all back and re-raise."""
        try:
            yield
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning(
                "optimistic_lock_conflict",
                extra={"entity": entity, "entity_id": str(entity_id)},
            )
            raise OptimisticLockError(entity, str(entity_id)) from exc
        except Exception:
            self.session.rollback()
            raise

    # -------------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------------

    @staticmethod
    def _apply_transition(
        workflow: Workflow,
        record,
        action: str,
        entity: str,
    ) -> Transition:
        """Move ``record.status`` along ``workflow`` or raise."""
        if workflow.is_terminal(record.status):
            raise TerminalStatusError(entity, str(record.id), record.status, action)
        transition = workflow.find(record.status, action)
        if transition is None:
            raise InvalidOperationError(
                f"{entity} {record.id}: '{action}' is not allowed from "
                f"status {record.status}"
            )
        record.status = transition.to_state
        return transition

    @staticmethod
    def _guard_not_terminal(workflow: Workflow, record, entity: str, action: str) -> None:
        if workflow.is_terminal(record.status):
            raise TerminalStatusError(entity, str(record.id), record.status, action)
