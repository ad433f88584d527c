"""Integration tests for the expense and query flows against in-memory storage."""

from datetime import datetime
from decimal import Decimal

import pytest

from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    GroupByPeriod,
    ListingQuery,
    SummaryQuery,
)
from expense_tracker.orchestrator import ExpenseFlow, QueryFlow, create_app_components
from expense_tracker.ingestion import OcrEventHandler
from expense_tracker.services.storage import InMemoryExpenseStorage, StorageError
from expense_tracker.validation import ForbiddenError, NotFoundError, ValidationFailedError


def create_payload(**overrides) -> ExpenseCreate:
    fields = {
        "description": "Groceries",
        "amount": "42.10",
        "category": "food",
        "spent_at": "2024-01-05T09:30:00",
    }
    fields.update(overrides)
    return ExpenseCreate(**fields)


def event_types(audit_storage) -> list[AuditEventType]:
    return [event.event_type for event in audit_storage.events]


class TestExpenseFlow:
    """Tests for the expense lifecycle."""

    @pytest.mark.asyncio
    async def test_create_binds_owner(self, expense_flow, expense_storage):
        """Test that the caller becomes the owner of a new expense."""
        view = await expense_flow.create(create_payload(), owner_id="user-1")

        assert view.owner_id == "user-1"
        assert view.amount == Decimal("42.10")
        assert view.is_from_ocr is False
        stored = await expense_storage.find_unique(view.id)
        assert stored.owner_id == "user-1"

    @pytest.mark.asyncio
    async def test_create_without_category(self, expense_flow):
        """Test that the category is optional."""
        view = await expense_flow.create(create_payload(category=None), owner_id="user-1")
        assert view.category is None

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_category(self, expense_flow, expense_storage, audit_storage):
        """Test that an unknown category is rejected and nothing is stored."""
        with pytest.raises(ValidationFailedError):
            await expense_flow.create(create_payload(category="spaceships"), owner_id="user-1")

        assert len(expense_storage) == 0
        assert event_types(audit_storage) == [AuditEventType.CATEGORY_REJECTED]

    @pytest.mark.asyncio
    async def test_find_one_is_idempotent(self, expense_flow):
        """Test that reading the same expense twice gives the same view."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        first = await expense_flow.find_one(created.id, "user-1")
        second = await expense_flow.find_one(created.id, "user-1")

        assert first == second == created

    @pytest.mark.asyncio
    async def test_find_one_foreign_expense_is_forbidden(self, expense_flow, audit_storage):
        """Test that another caller cannot read the expense."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        with pytest.raises(ForbiddenError):
            await expense_flow.find_one(created.id, "user-2")

        denied = audit_storage.events[-1]
        assert denied.event_type == AuditEventType.ACCESS_DENIED
        assert denied.details["reason"] == "forbidden"

    @pytest.mark.asyncio
    async def test_find_one_missing_expense(self, expense_flow, audit_storage):
        """Test that an unknown ID is NotFound."""
        with pytest.raises(NotFoundError):
            await expense_flow.find_one("does-not-exist", "user-1")
        assert audit_storage.events[-1].details["reason"] == "not_found"

    @pytest.mark.asyncio
    async def test_update_applies_only_given_fields(self, expense_flow):
        """Test partial update semantics."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        updated = await expense_flow.update(
            created.id, ExpenseUpdate(amount="50.00"), owner_id="user-1"
        )

        assert updated.amount == Decimal("50.00")
        assert updated.description == "Groceries"
        assert updated.category == "food"
        assert updated.owner_id == "user-1"
        assert updated.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_update_can_clear_category(self, expense_flow):
        """Test that an explicit null category clears it."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        updated = await expense_flow.update(
            created.id, ExpenseUpdate.model_validate({"category": None}), owner_id="user-1"
        )
        assert updated.category is None

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_category(self, expense_flow):
        """Test that update validates the new category."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        with pytest.raises(ValidationFailedError):
            await expense_flow.update(
                created.id, ExpenseUpdate(category="spaceships"), owner_id="user-1"
            )
        assert (await expense_flow.find_one(created.id, "user-1")).category == "food"

    @pytest.mark.asyncio
    async def test_update_guard_runs_before_validation(self, expense_flow):
        """Test that a foreign caller gets Forbidden even with a bad category."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        with pytest.raises(ForbiddenError):
            await expense_flow.update(
                created.id, ExpenseUpdate(category="spaceships"), owner_id="user-2"
            )

    @pytest.mark.asyncio
    async def test_remove(self, expense_flow, expense_storage, audit_storage):
        """Test deletion and its acknowledgement."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        result = await expense_flow.remove(created.id, "user-1")

        assert result.id == created.id
        assert result.message == "Expense deleted successfully"
        assert len(expense_storage) == 0
        assert event_types(audit_storage)[-1] == AuditEventType.EXPENSE_DELETED

    @pytest.mark.asyncio
    async def test_remove_foreign_expense_is_forbidden(self, expense_flow, expense_storage):
        """Test that another caller cannot delete the expense."""
        created = await expense_flow.create(create_payload(), owner_id="user-1")

        with pytest.raises(ForbiddenError):
            await expense_flow.remove(created.id, "user-2")
        assert len(expense_storage) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, category_storage):
        """Test that storage errors are audited and re-raised."""

        class BrokenStorage:
            async def create(self, expense):
                raise StorageError("disk full")

        audit_events = []

        class RecordingLogger:
            async def log_storage_error(self, **kwargs):
                audit_events.append(kwargs)

        flow = ExpenseFlow(BrokenStorage(), category_storage, audit_logger=RecordingLogger())

        with pytest.raises(StorageError):
            await flow.create(create_payload(), owner_id="user-1")
        assert audit_events[0]["operation"] == "create"


class TestQueryFlow:
    """Tests for listings and summaries."""

    @pytest.fixture
    def expense_storage(self, make_expense):
        return InMemoryExpenseStorage([
            make_expense(amount="100.50", category="food", spent_at="2024-01-05"),
            make_expense(amount="50.25", category="food", spent_at="2024-01-20"),
            make_expense(amount="30", category=None, spent_at="2024-02-01"),
            make_expense(owner_id="user-2", amount="999", category="food", spent_at="2024-01-10"),
        ])

    @pytest.mark.asyncio
    async def test_listing_is_scoped_and_ordered(self, query_flow):
        """Test that only the caller's expenses come back, newest first."""
        page = await query_flow.list_expenses(ListingQuery(), "user-1")

        assert [e.spent_at for e in page.data] == [
            datetime(2024, 2, 1),
            datetime(2024, 1, 20),
            datetime(2024, 1, 5),
        ]
        assert all(e.owner_id == "user-1" for e in page.data)
        assert (page.meta.total, page.meta.page, page.meta.limit, page.meta.total_pages) == (3, 1, 10, 1)

    @pytest.mark.asyncio
    async def test_listing_pages(self, query_flow):
        """Test that pages partition the result set."""
        first = await query_flow.list_expenses(ListingQuery(page=1, limit=2), "user-1")
        second = await query_flow.list_expenses(ListingQuery(page=2, limit=2), "user-1")
        beyond = await query_flow.list_expenses(ListingQuery(page=3, limit=2), "user-1")

        assert len(first.data) == 2
        assert len(second.data) == 1
        assert beyond.data == []
        assert first.meta.total_pages == 2
        ids = {e.id for e in first.data} | {e.id for e in second.data}
        assert len(ids) == 3

    @pytest.mark.asyncio
    async def test_listing_filters(self, query_flow):
        """Test category and date filters on a listing."""
        page = await query_flow.list_expenses(
            ListingQuery.model_validate({"category": "food", "from": "2024-01-10"}),
            "user-1",
        )
        assert [e.amount for e in page.data] == [Decimal("50.25")]
        assert page.meta.total == 1

    @pytest.mark.asyncio
    async def test_listing_with_no_results(self, query_flow):
        """Test an empty listing."""
        page = await query_flow.list_expenses(ListingQuery(), "nobody")
        assert page.data == []
        assert page.meta.total == 0
        assert page.meta.total_pages == 0

    @pytest.mark.asyncio
    async def test_summary_end_to_end(self, query_flow, audit_storage):
        """Test the monthly summary of the caller's expenses."""
        summary = await query_flow.get_summary(
            SummaryQuery(group_by=GroupByPeriod.MONTH), "user-1"
        )

        assert summary.total == Decimal("180.75")
        assert summary.count == 3
        assert [(c.category, c.total, c.count) for c in summary.by_category] == [
            ("food", Decimal("150.75"), 2),
            ("uncategorized", Decimal("30.00"), 1),
        ]
        assert [(p.period, p.total, p.count) for p in summary.by_time_period] == [
            ("2024-01", Decimal("150.75"), 2),
            ("2024-02", Decimal("30.00"), 1),
        ]
        assert event_types(audit_storage)[-1] == AuditEventType.SUMMARY_EXECUTED

    @pytest.mark.asyncio
    async def test_summary_respects_range(self, query_flow):
        """Test that the summary only covers the requested range."""
        summary = await query_flow.get_summary(
            SummaryQuery.model_validate({"from": "2024-01-15", "to": "2024-01-31"}),
            "user-1",
        )
        assert summary.total == Decimal("50.25")
        assert summary.by_time_period is None

    @pytest.mark.asyncio
    async def test_list_categories(self, query_flow):
        """Test that the seeded categories are listed by slug."""
        categories = await query_flow.list_categories()
        slugs = [c.slug for c in categories]
        assert len(slugs) == 14
        assert slugs == sorted(slugs)


class TestAppComponents:
    """Tests for the wiring factory."""

    @pytest.mark.asyncio
    async def test_in_memory_components(self, monkeypatch):
        """Test that the in-memory wiring works end to end."""
        from expense_tracker.config import get_settings

        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        get_settings.cache_clear()

        expense_flow, query_flow, ocr_handler, sheets_client = create_app_components()

        assert isinstance(expense_flow, ExpenseFlow)
        assert isinstance(query_flow, QueryFlow)
        assert isinstance(ocr_handler, OcrEventHandler)
        assert sheets_client is None

        created = await expense_flow.create(create_payload(), owner_id="user-1")
        page = await query_flow.list_expenses(ListingQuery(), "user-1")
        assert [e.id for e in page.data] == [created.id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
