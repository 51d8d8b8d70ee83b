"""
CategoryService -- per-user categories for expenses and extra incomes.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from fincontrol_kernel.domain.dtos import CategoryCreate, CategoryInfo
from fincontrol_kernel.exceptions import (
    CategoryNotFoundError,
    DuplicateError,
    InvalidOperationError,
)
from fincontrol_kernel.logging_config import get_logger
from fincontrol_kernel.models.category import Category
from fincontrol_kernel.models.expense import Expense
from fincontrol_kernel.models.extra_income import ExtraIncome
from fincontrol_kernel.services.base import BaseService

logger = get_logger("services.category")


class CategoryService(BaseService[Category]):

    def create(self, request: CategoryCreate, user_id: UUID) -> CategoryInfo:
        self._require_user(user_id)
        name = (request.name or "").strip()
        if not name:
            raise InvalidOperationError("Category name is required")

        clash = self.session.execute(
            select(Category.id).where(
                Category.user_id == user_id,
                Category.name == name,
            )
        ).first()
        if clash is not None:
            raise DuplicateError("Category", "name", name)

        category = Category(name=name, description=request.description, user_id=user_id)
        with self._transaction("Category"):
            self.session.add(category)
            self.session.flush()

        logger.info(
            "category_created",
            extra={"category_id": str(category.id), "user_id": str(user_id)},
        )
        return CategoryInfo.from_model(category)

    def get(self, category_id: UUID, user_id: UUID) -> CategoryInfo:
        return CategoryInfo.from_model(
            self._require_owned(Category, category_id, user_id, CategoryNotFoundError)
        )

    def list(self, user_id: UUID) -> list[CategoryInfo]:
        rows = self.session.execute(
            select(Category)
            .where(Category.user_id == user_id)
            .order_by(Category.name)
        ).scalars().all()
        return [CategoryInfo.from_model(c) for c in rows]

    def delete(self, category_id: UUID, user_id: UUID) -> None:
        """
        Delete an unused category.

        Raises:
            InvalidOperationError: an expense or extra income still uses it.
        """
        category = self._require_owned(Category, category_id, user_id, CategoryNotFoundError)

        for model, label in ((Expense, "expenses"), (ExtraIncome, "extra incomes")):
            in_use = self.session.execute(
                select(model.id).where(model.category_id == category_id).limit(1)
            ).first()
            if in_use is not None:
                raise InvalidOperationError(
                    f"Category {category_id} is still used by {label}"
                )

        with self._transaction("Category", category_id):
            self.session.delete(category)

        logger.info("category_deleted", extra={"category_id": str(category_id)})
