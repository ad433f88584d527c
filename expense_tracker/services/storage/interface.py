"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the query engine decoupled from storage implementation

The engine only ever talks to these contracts. Ownership scoping is
expressed in the ExpenseFilter it passes in; the storage layer never
decides who may see what.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Category, Expense, ExpenseFilter


class SortOrder(str, Enum):
    """Ordering of expenses by spent_at."""
    ASC = "asc"
    DESC = "desc"


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def find_many(
        self,
        expense_filter: ExpenseFilter,
        order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        """
        List expenses matching a filter.

        Args:
            expense_filter: Predicate built by the filter builder
            order: Ordering by spent_at
            offset: Number of results to skip
            limit: Maximum number of results, None for all of them

        Returns:
            Matching expenses in the requested order

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def count(self, expense_filter: ExpenseFilter) -> int:
        """
        Count expenses matching a filter.

        Always equals len(find_many(expense_filter)) with no limit.
        """
        pass

    @abstractmethod
    async def find_unique(self, expense_id: str) -> Optional[Expense]:
        """
        Retrieve an expense by its ID, regardless of owner.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, expense: Expense) -> Expense:
        """
        Persist a new expense.

        Raises:
            DuplicateError: If an expense with the same ID exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, expense: Expense) -> Expense:
        """
        Replace a stored expense with the given version.

        Raises:
            RecordNotFoundError: If the expense doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, expense_id: str) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a row was removed
        """
        pass


class CategoryStorageInterface(ABC):
    """
    Abstract interface for the category reference data.

    Categories are seeded once; the engine only reads them.
    """

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Optional[Category]:
        """Return the category with this slug, or None."""
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """Return all categories ordered by slug."""
        pass

    @abstractmethod
    async def upsert_category(self, category: Category) -> bool:
        """
        Insert a category unless its slug exists already.

        Returns:
            True if the category was inserted
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class StorageConfigurationError(StorageConnectionError):
    """Backend settings are unusable; retrying cannot help."""
    pass


class RecordNotFoundError(StorageError):
    """Tried to overwrite a record the backend does not hold."""
    pass


def order_expenses(
    expenses: list[Expense],
    order: SortOrder = SortOrder.DESC,
    offset: int = 0,
    limit: Optional[int] = None,
) -> list[Expense]:
    """
    Sort by spent_at and cut out a window.

    Ties on spent_at fall back to created_at, then id, so the same
    data always pages the same way. Helper for backends that filter
    in Python.
    """
    ordered = sorted(
        expenses,
        key=lambda e: (e.spent_at, e.created_at, e.id),
        reverse=(order == SortOrder.DESC),
    )
    start = max(offset, 0)
    if limit is None:
        return ordered[start:]
    return ordered[start:start + max(limit, 0)]
