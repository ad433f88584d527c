"""Shared fixtures: in-memory storages and flows wired the way the app wires them."""

from decimal import Decimal

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.models.expense import Expense
from expense_tracker.orchestrator import ExpenseFlow, QueryFlow
from expense_tracker.seed import DEFAULT_CATEGORIES
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
)


@pytest.fixture
def make_expense():
    """Factory for stored expenses with sensible defaults."""

    def _make(
        amount="10.00",
        category=None,
        spent_at="2024-01-15T10:00:00",
        owner_id="user-1",
        description="Coffee",
        **extra,
    ) -> Expense:
        return Expense(
            owner_id=owner_id,
            description=description,
            amount=Decimal(str(amount)),
            category=category,
            spent_at=spent_at,
            **extra,
        )

    return _make


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def category_storage():
    return InMemoryCategoryStorage(DEFAULT_CATEGORIES)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def expense_flow(expense_storage, category_storage, audit_logger):
    return ExpenseFlow(
        expense_storage=expense_storage,
        category_storage=category_storage,
        audit_logger=audit_logger,
    )


@pytest.fixture
def query_flow(expense_storage, category_storage, audit_logger):
    return QueryFlow(
        expense_storage=expense_storage,
        category_storage=category_storage,
        audit_logger=audit_logger,
    )
