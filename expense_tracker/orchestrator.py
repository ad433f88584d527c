"""
Main Orchestrator for the Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Expense lifecycle (create → read → update → delete)
2. Queries (listing with pagination, summaries with aggregation)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every single-record access goes through the ownership guard
- No category reference is stored without being resolved first
- Every mutation and every rejection is audited

Flows receive their storages through the constructor.
create_app_components() is the only place that wires real backends.
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.ingestion import OcrEventHandler
from expense_tracker.models.expense import (
    Category,
    DeletionResult,
    Expense,
    ExpenseCreate,
    ExpensePage,
    ExpenseUpdate,
    ExpenseView,
    ListingQuery,
    OcrProvenance,
    SummaryQuery,
    SummaryResult,
    project_expense,
    utcnow,
)
from expense_tracker.queries import QueryExecutor
from expense_tracker.seed import DEFAULT_CATEGORIES
from expense_tracker.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    StorageError,
)
from expense_tracker.validation import (
    AccessError,
    ExpenseValidator,
    ForbiddenError,
    ValidationFailedError,
    authorize,
)


logger = structlog.get_logger(__name__)


class ExpenseFlow:
    """
    Orchestrates the expense lifecycle.

    Flow for a mutation:
    1. Guard → the record exists and belongs to the caller
    2. Validate → category references resolve
    3. Persist → storage write
    4. Audit → record what happened

    Errors are never swallowed here. Rejections are audited and re-raised.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        category_storage: CategoryStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._validator = validator or ExpenseValidator(category_storage)
        self._audit_logger = audit_logger

    async def create(
        self,
        payload: ExpenseCreate,
        owner_id: str,
        provenance: Optional[OcrProvenance] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseView:
        """
        Create an expense owned by the caller.

        Args:
            payload: Validated request fields
            owner_id: Authenticated caller; becomes the permanent owner
            provenance: Set when the expense comes from OCR ingestion

        Raises:
            ValidationFailedError: Unknown category
            StorageError: Write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._validator.validate_create(payload)
        except ValidationFailedError:
            await self._audit_category_rejected(payload.category, owner_id, correlation_id)
            raise

        expense = Expense(
            owner_id=owner_id,
            description=payload.description,
            amount=payload.amount,
            category=payload.category,
            spent_at=payload.spent_at,
            is_from_ocr=provenance is not None,
            ocr_confidence=provenance.confidence if provenance else None,
            ocr_job_id=provenance.job_id if provenance else None,
        )

        try:
            stored = await self._expenses.create(expense)
        except StorageError as e:
            await self._audit_storage_error("create", e, owner_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=stored.id,
                owner_id=owner_id,
                amount=str(stored.amount),
                category=stored.category,
                from_ocr=stored.is_from_ocr,
                correlation_id=correlation_id,
            )

        return project_expense(stored)

    async def find_one(
        self,
        expense_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseView:
        """
        Fetch one expense of the caller.

        Raises:
            NotFoundError: No expense with this ID
            ForbiddenError: The expense belongs to someone else
        """
        expense = await self._load_owned(expense_id, owner_id, correlation_id)
        return project_expense(expense)

    async def update(
        self,
        expense_id: str,
        payload: ExpenseUpdate,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseView:
        """
        Apply a partial update to an expense of the caller.

        The ownership guard runs before category validation, so a caller
        probing someone else's ID learns nothing about categories.
        """
        correlation_id = correlation_id or create_correlation_id()
        current = await self._load_owned(expense_id, owner_id, correlation_id)

        try:
            await self._validator.validate_update(payload)
        except ValidationFailedError:
            await self._audit_category_rejected(payload.category, owner_id, correlation_id)
            raise

        changes = payload.changes()
        updated = current.model_copy(update={**changes, "updated_at": utcnow()})

        try:
            stored = await self._expenses.update(updated)
        except StorageError as e:
            await self._audit_storage_error("update", e, owner_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=stored.id,
                owner_id=owner_id,
                fields=sorted(changes),
                correlation_id=correlation_id,
            )

        return project_expense(stored)

    async def remove(
        self,
        expense_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> DeletionResult:
        """Delete an expense of the caller."""
        correlation_id = correlation_id or create_correlation_id()
        await self._load_owned(expense_id, owner_id, correlation_id)

        try:
            await self._expenses.delete(expense_id)
        except StorageError as e:
            await self._audit_storage_error("delete", e, owner_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )

        return DeletionResult(id=expense_id)

    async def _load_owned(
        self,
        expense_id: str,
        owner_id: str,
        correlation_id: Optional[UUID],
    ) -> Expense:
        record = await self._expenses.find_unique(expense_id)
        try:
            return authorize(record, owner_id, expense_id=expense_id)
        except AccessError as e:
            if self._audit_logger:
                await self._audit_logger.log_access_denied(
                    expense_id=expense_id,
                    owner_id=owner_id,
                    reason="forbidden" if isinstance(e, ForbiddenError) else "not_found",
                    correlation_id=correlation_id,
                )
            raise

    async def _audit_category_rejected(
        self,
        slug: Optional[str],
        owner_id: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and slug:
            await self._audit_logger.log_category_rejected(
                slug=slug,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )

    async def _audit_storage_error(
        self,
        operation: str,
        error: StorageError,
        owner_id: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                owner_id=owner_id,
                correlation_id=correlation_id,
            )


class QueryFlow:
    """
    Orchestrates read-only queries.

    Listing and summary are delegated to the QueryExecutor; this flow adds
    auditing and the category catalogue.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        category_storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._query_executor = QueryExecutor(expense_storage)
        self._categories = category_storage
        self._audit_logger = audit_logger

    async def list_expenses(
        self,
        query: ListingQuery,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ExpensePage:
        """List one page of the caller's expenses, newest first."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            page = await self._query_executor.list_expenses(query, owner_id)
        except StorageError as e:
            await self._audit_storage_error("list_expenses", e, owner_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_listing_executed(
                owner_id=owner_id,
                page=page.meta.page,
                returned=len(page.data),
                total=page.meta.total,
                correlation_id=correlation_id,
            )
        return page

    async def get_summary(
        self,
        query: SummaryQuery,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SummaryResult:
        """Summarize the caller's expenses, optionally as a time series."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            summary = await self._query_executor.summarize(query, owner_id)
        except StorageError as e:
            await self._audit_storage_error("get_summary", e, owner_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_summary_executed(
                owner_id=owner_id,
                count=summary.count,
                group_by=query.group_by.value if query.group_by else None,
                correlation_id=correlation_id,
            )
        return summary

    async def list_categories(self) -> list[Category]:
        """All known categories, ordered by slug."""
        return await self._categories.list_categories()

    async def _audit_storage_error(
        self,
        operation: str,
        error: StorageError,
        owner_id: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                owner_id=owner_id,
                correlation_id=correlation_id,
            )


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseFlow, QueryFlow, OcrEventHandler, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured persistent backend.
                    Set to False to run fully in memory.

    Returns:
        (expense_flow, query_flow, ocr_handler, sheets_client)
    """
    settings = get_settings()
    logging.basicConfig(format="%(message)s", level=settings.app.effective_log_level)

    sheets_client: Optional[GoogleSheetsClient] = None
    expense_storage: ExpenseStorageInterface
    category_storage: CategoryStorageInterface
    audit_storage: AuditStorageInterface

    if use_storage and settings.app.uses_google_sheets:
        sheets_client = GoogleSheetsClient()
        expense_storage = GoogleSheetsExpenseStorage(sheets_client)
        category_storage = GoogleSheetsCategoryStorage(sheets_client)
        audit_storage = GoogleSheetsAuditStorage(sheets_client)
    else:
        expense_storage = InMemoryExpenseStorage()
        category_storage = InMemoryCategoryStorage(DEFAULT_CATEGORIES)
        audit_storage = InMemoryAuditStorage()

    logger.info(
        "components_created",
        backend="google_sheets" if sheets_client else "memory",
        environment=settings.app.app_environment,
    )

    audit_logger = AuditLogger(audit_storage)

    expense_flow = ExpenseFlow(
        expense_storage=expense_storage,
        category_storage=category_storage,
        audit_logger=audit_logger,
    )
    query_flow = QueryFlow(
        expense_storage=expense_storage,
        category_storage=category_storage,
        audit_logger=audit_logger,
    )
    ocr_handler = OcrEventHandler(
        expense_flow=expense_flow,
        audit_logger=audit_logger,
        fallback_description=settings.app.ocr_fallback_description,
    )

    return expense_flow, query_flow, ocr_handler, sheets_client
