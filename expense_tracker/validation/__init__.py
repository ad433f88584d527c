"""Validation package: reference-data checks and the ownership guard."""

from expense_tracker.validation.ownership import (
    AccessError,
    ForbiddenError,
    NotFoundError,
    authorize,
)
from expense_tracker.validation.validator import ExpenseValidator, ValidationFailedError

__all__ = [
    "AccessError",
    "ExpenseValidator",
    "ForbiddenError",
    "NotFoundError",
    "ValidationFailedError",
    "authorize",
]
