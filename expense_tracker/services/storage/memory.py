"""
In-Memory Storage Implementation

Dict-backed implementations of the storage interfaces. Used as the
default backend when no spreadsheet is configured, and as the storage
in tests.

Records are copied on the way in and on the way out, so callers can
never mutate stored state by holding on to a returned object.
"""

from typing import Iterable, Optional

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Category, Expense, ExpenseFilter
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    RecordNotFoundError,
    SortOrder,
    order_expenses,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses kept in a dict keyed by ID."""

    def __init__(self, expenses: Optional[Iterable[Expense]] = None):
        self._expenses: dict[str, Expense] = {}
        for expense in expenses or []:
            self._expenses[expense.id] = expense.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._expenses)

    async def find_many(
        self,
        expense_filter: ExpenseFilter,
        order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        matching = [e for e in self._expenses.values() if expense_filter.matches(e)]
        window = order_expenses(matching, order=order, offset=offset, limit=limit)
        return [e.model_copy(deep=True) for e in window]

    async def count(self, expense_filter: ExpenseFilter) -> int:
        return sum(1 for e in self._expenses.values() if expense_filter.matches(e))

    async def find_unique(self, expense_id: str) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def create(self, expense: Expense) -> Expense:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def update(self, expense: Expense) -> Expense:
        if expense.id not in self._expenses:
            raise RecordNotFoundError(f"Expense not found in storage: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def delete(self, expense_id: str) -> bool:
        return self._expenses.pop(expense_id, None) is not None


class InMemoryCategoryStorage(CategoryStorageInterface):
    """Categories kept in a dict keyed by slug."""

    def __init__(self, categories: Optional[Iterable[Category]] = None):
        self._categories: dict[str, Category] = {}
        for category in categories or []:
            self._categories.setdefault(category.slug, category)

    async def find_by_slug(self, slug: str) -> Optional[Category]:
        return self._categories.get(slug)

    async def list_categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.slug)

    async def upsert_category(self, category: Category) -> bool:
        if category.slug in self._categories:
            return False
        self._categories[category.slug] = category
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        newest_first = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return newest_first[:limit]
