"""
Boundary Validation

Shape validation (types, lengths, positive amounts) is done by the
pydantic request models. What remains here needs storage access:
a category reference must point at an existing Category.

IMPORTANT: Validation NEVER silently fixes issues. An unknown category
is rejected, not replaced by a default and not dropped.
"""

from typing import Optional

from expense_tracker.models.expense import Category, ExpenseCreate, ExpenseUpdate
from expense_tracker.services.storage import CategoryStorageInterface


class ValidationFailedError(Exception):
    """Input reached the boundary but cannot be accepted. Never retried."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class ExpenseValidator:
    """
    Validates expense payloads against reference data.

    Storage failures during lookup are not validation failures; they
    propagate unchanged.
    """

    def __init__(self, category_storage: CategoryStorageInterface):
        self._categories = category_storage

    async def validate_category(self, slug: Optional[str]) -> Optional[Category]:
        """
        Resolve a category reference.

        Returns:
            The Category, or None when no category was given

        Raises:
            ValidationFailedError: If the slug does not exist
        """
        if not slug:
            return None

        category = await self._categories.find_by_slug(slug)
        if category is None:
            raise ValidationFailedError(
                field="category",
                message=f'Category with slug "{slug}" does not exist',
            )
        return category

    async def validate_create(self, payload: ExpenseCreate) -> None:
        """Check a create payload before it reaches storage."""
        await self.validate_category(payload.category)

    async def validate_update(self, payload: ExpenseUpdate) -> None:
        """Check an update payload; clearing the category is always allowed."""
        await self.validate_category(payload.changes().get("category"))
