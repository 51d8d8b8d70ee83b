"""
UserService -- account holder registration and lookup.

The identity provider hashes passwords and issues tokens; this service only
stores the hash it is given and answers "does this user exist".
"""

from uuid import UUID

from sqlalchemy import select

from fincontrol_kernel.domain.dtos import UserCreate, UserInfo
from fincontrol_kernel.domain.money import require_non_negative
from fincontrol_kernel.exceptions import DuplicateError, InvalidOperationError
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.user import User
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.user")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService(BaseService[User]):

    def register(self, request: UserCreate) -> UserInfo:
        """
        Create a user.

        Raises:
            DuplicateError: email already registered (case-insensitive).
            InvalidOperationError: empty name, email or password hash.
            InvalidAmountError: negative or malformed salary.
        """
        email = normalize_email(request.email or "")
        if not request.name or not request.name.strip():
            raise InvalidOperationError("User name is required")
        if not email or "@" not in email:
            raise InvalidOperationError(f"Invalid email: {request.email!r}")
        if not request.password_hash:
            raise InvalidOperationError("Password hash is required")
        salary = require_non_negative(request.salary)

        existing = self.session.execute(
            select(User.id).where(User.email == email)
        ).first()
        if existing is not None:
            raise DuplicateError("User", "email", email)

        user = User(
            name=request.name.strip(),
            email=email,
            password_hash=request.password_hash,
            salary=salary,
        )
        with self._transaction("User"):
            self.session.add(user)
            self.session.flush()

        logger.info("user_registered", extra={"user_id": str(user.id)})
        return UserInfo.from_model(user)

    def get(self, user_id: UUID) -> UserInfo:
        return UserInfo.from_model(self._require_user(user_id))

    def require_user(self, user_id: UUID) -> User:
        """Return the user row or raise UserNotFoundError."""
        return self._require_user(user_id)

    def find_by_email(self, email: str) -> UserInfo | None:
        user = self.session.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()
        return UserInfo.from_model(user) if user is not None else None
