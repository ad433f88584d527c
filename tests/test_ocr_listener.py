"""Tests for OCR completed event ingestion."""

from decimal import Decimal

import pytest

from expense_tracker.ingestion import OcrEventHandler
from expense_tracker.models.audit import AuditEventType
from expense_tracker.queries import build_filter


def ocr_message(**expense_overrides) -> dict:
    expense_data = {
        "amount": "23.45",
        "description": "Pharmacy",
        "spentAt": "2024-04-02T12:00:00Z",
        "category": "healthcare",
        "confidence": 91.5,
    }
    expense_data.update(expense_overrides)
    return {
        "jobId": "job-1",
        "userId": "user-1",
        "fileUrl": "https://files.example/receipt.jpg",
        "expenseData": expense_data,
    }


@pytest.fixture
def handler(expense_flow, audit_logger):
    return OcrEventHandler(expense_flow, audit_logger)


class TestOcrEventHandler:
    """Tests for OcrEventHandler.handle_ocr_completed."""

    @pytest.mark.asyncio
    async def test_creates_expense_with_provenance(self, handler, expense_storage, audit_storage):
        """Test that a valid event becomes an expense owned by the event's user."""
        view = await handler.handle_ocr_completed(ocr_message())

        assert view is not None
        assert view.owner_id == "user-1"
        assert view.amount == Decimal("23.45")
        assert view.category == "healthcare"
        assert view.is_from_ocr is True
        assert view.ocr_job_id == "job-1"
        assert view.ocr_confidence == 91.5

        assert event_types(audit_storage) == [
            AuditEventType.OCR_EVENT_RECEIVED,
            AuditEventType.EXPENSE_CREATED,
            AuditEventType.OCR_EXPENSE_CREATED,
        ]
        correlation_ids = {event.correlation_id for event in audit_storage.events}
        assert len(correlation_ids) == 1

    @pytest.mark.asyncio
    async def test_missing_description_uses_fallback(self, handler):
        """Test the default description for receipts without one."""
        view = await handler.handle_ocr_completed(ocr_message(description=""))
        assert view.description == "OCR Scanned Receipt"

    @pytest.mark.asyncio
    async def test_missing_category_creates_uncategorized_expense(self, handler, expense_storage):
        """Test that receipts without a category are stored uncategorized."""
        message = ocr_message()
        del message["expenseData"]["category"]

        view = await handler.handle_ocr_completed(message)

        assert view is not None
        assert view.category is None
        assert len(expense_storage) == 1

    @pytest.mark.asyncio
    async def test_sub_cent_amount_is_rounded(self, handler):
        """Test that extracted amounts are rounded half-up to cents."""
        view = await handler.handle_ocr_completed(ocr_message(amount="12.345"))
        assert view.amount == Decimal("12.35")

    @pytest.mark.asyncio
    async def test_configured_fallback_description(self, expense_flow):
        """Test that the fallback description is configurable."""
        handler = OcrEventHandler(expense_flow, fallback_description="Scanned")
        view = await handler.handle_ocr_completed(ocr_message(description=None))
        assert view.description == "Scanned"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [None, 0, -4])
    async def test_invalid_amount_is_dropped(self, handler, expense_storage, audit_storage, amount):
        """Test that events without a positive amount are dropped."""
        assert await handler.handle_ocr_completed(ocr_message(amount=amount)) is None
        assert len(expense_storage) == 0
        assert event_types(audit_storage)[-1] == AuditEventType.OCR_EVENT_DROPPED

    @pytest.mark.asyncio
    async def test_unknown_category_is_dropped(self, handler, expense_storage, audit_storage):
        """Test that OCR output goes through the same category validation."""
        assert await handler.handle_ocr_completed(ocr_message(category="spaceships")) is None
        assert len(expense_storage) == 0

        dropped = audit_storage.events[-1]
        assert dropped.event_type == AuditEventType.OCR_EVENT_DROPPED
        assert dropped.details["error_type"] == "ValidationFailedError"
        assert dropped.entity_id == "job-1"

    @pytest.mark.asyncio
    async def test_malformed_payload_is_dropped(self, handler, audit_storage):
        """Test that a payload missing required fields never raises."""
        assert await handler.handle_ocr_completed({"jobId": "job-2"}) is None

        dropped = audit_storage.events[-1]
        assert dropped.event_type == AuditEventType.OCR_EVENT_DROPPED
        assert dropped.entity_id == "job-2"

    @pytest.mark.asyncio
    async def test_each_event_creates_one_expense(self, handler, expense_storage):
        """Test that handling is not retried behind the caller's back."""
        await handler.handle_ocr_completed(ocr_message())
        await handler.handle_ocr_completed(ocr_message(category="spaceships"))

        assert await expense_storage.count(build_filter("user-1")) == 1


def event_types(audit_storage) -> list[AuditEventType]:
    return [event.event_type for event in audit_storage.events]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
