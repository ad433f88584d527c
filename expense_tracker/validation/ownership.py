"""
Ownership Guard

Single-record reads, updates and deletes go through authorize() first.

Existence is checked before ownership: a missing ID is NotFound for
everyone; an existing ID owned by someone else is Forbidden.
"""

from typing import Optional

from expense_tracker.models.expense import Expense


class AccessError(Exception):
    """Base exception for single-record access checks."""

    def __init__(self, expense_id: Optional[str], message: str):
        self.expense_id = expense_id
        super().__init__(message)


class NotFoundError(AccessError):
    """No expense exists under the requested ID."""

    def __init__(self, expense_id: Optional[str]):
        super().__init__(expense_id, f"Expense with ID {expense_id} not found")


class ForbiddenError(AccessError):
    """The expense exists but belongs to another caller."""

    def __init__(self, expense_id: Optional[str]):
        super().__init__(expense_id, "You do not have access to this expense")


def authorize(
    record: Optional[Expense],
    caller_id: str,
    expense_id: Optional[str] = None,
) -> Expense:
    """
    Return the record if the caller owns it.

    Args:
        record: Result of the storage lookup (None when absent)
        caller_id: Authenticated caller
        expense_id: Requested ID, for error messages when record is None

    Raises:
        NotFoundError: If record is None
        ForbiddenError: If record belongs to another owner
    """
    if record is None:
        raise NotFoundError(expense_id)
    if record.owner_id != caller_id:
        raise ForbiddenError(record.id)
    return record
