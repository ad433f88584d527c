"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Users can view and export their expenses directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (every write is a single row)
- Limited query capabilities (we filter in Python through ExpenseFilter)

gspread is synchronous; every sheet access runs in a worker thread so
the event loop is never blocked.
"""

import asyncio
import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.expense import Category, Expense, ExpenseFilter
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    RecordNotFoundError,
    SortOrder,
    StorageConfigurationError,
    StorageConnectionError,
    StorageError,
    order_expenses,
)


logger = structlog.get_logger(__name__)

# Writes are retried on transient failures only; a duplicate or missing
# row will not fix itself.
write_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, RecordNotFoundError)),
    reraise=True,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "owner_id",
    "description",
    "amount",
    "category",
    "spent_at",
    "created_at",
    "updated_at",
    "is_from_ocr",
    "ocr_confidence",
    "ocr_job_id",
]

# Column mappings for Categories sheet
CATEGORY_COLUMNS = [
    "slug",
    "name",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "owner_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Cell value by position; short rows read as empty."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageConfigurationError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConfigurationError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=1000
        )

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet."""
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Expenses are stored as rows in a worksheet with one expense per row.
    Amounts are written as decimal strings with RAW input, so Sheets
    never turns them into floats.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            expense.id,
            expense.owner_id,
            expense.description,
            str(expense.amount),
            expense.category or "",
            expense.spent_at.isoformat(),
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
            str(expense.is_from_ocr),
            str(expense.ocr_confidence) if expense.ocr_confidence is not None else "",
            expense.ocr_job_id or "",
        ]

    def _row_to_expense(self, row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        return Expense(
            id=_safe_get(row, 0),
            owner_id=_safe_get(row, 1),
            description=_safe_get(row, 2),
            amount=Decimal(_safe_get(row, 3)),
            category=_safe_get(row, 4) or None,
            spent_at=_safe_get(row, 5),
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
            updated_at=datetime.fromisoformat(_safe_get(row, 7)),
            is_from_ocr=_safe_get(row, 8).lower() == "true",
            ocr_confidence=float(_safe_get(row, 9)) if _safe_get(row, 9) else None,
            ocr_job_id=_safe_get(row, 10) or None,
        )

    def _read_rows(self) -> list[list]:
        """All data rows (header excluded)."""
        try:
            sheet = self._client.get_expenses_sheet()
            return sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read expenses: {e}")

    def _load_expenses(self) -> list[Expense]:
        expenses = []
        for row in self._read_rows():
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                expenses.append(self._row_to_expense(row))
            except Exception as e:
                logger.warning("expense_row_skipped", expense_id=row[0], error=str(e))
        return expenses

    def _find_row_index(self, sheet: gspread.Worksheet, expense_id: str) -> Optional[int]:
        """1-based sheet row of an expense, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == expense_id:
                return idx
        return None

    async def find_many(
        self,
        expense_filter: ExpenseFilter,
        order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        """List expenses matching the filter."""
        expenses = await asyncio.to_thread(self._load_expenses)
        matching = [e for e in expenses if expense_filter.matches(e)]
        return order_expenses(matching, order=order, offset=offset, limit=limit)

    async def count(self, expense_filter: ExpenseFilter) -> int:
        """Count expenses matching the filter."""
        expenses = await asyncio.to_thread(self._load_expenses)
        return sum(1 for e in expenses if expense_filter.matches(e))

    async def find_unique(self, expense_id: str) -> Optional[Expense]:
        """Retrieve an expense by its ID."""
        rows = await asyncio.to_thread(self._read_rows)
        for row in rows:
            if row and row[0] == expense_id:
                try:
                    return self._row_to_expense(row)
                except Exception as e:
                    raise StorageError(f"Corrupt expense row {expense_id}: {e}")
        return None

    @write_retry
    async def create(self, expense: Expense) -> Expense:
        """Append a new expense row."""

        def _append() -> None:
            sheet = self._client.get_expenses_sheet()
            if self._find_row_index(sheet, expense.id) is not None:
                raise DuplicateError(f"Expense already exists: {expense.id}")
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")

        try:
            await asyncio.to_thread(_append)
            return expense
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    @write_retry
    async def update(self, expense: Expense) -> Expense:
        """Overwrite the row of an existing expense."""

        def _overwrite() -> None:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row_index(sheet, expense.id)
            if idx is None:
                raise RecordNotFoundError(f"Expense not found in storage: {expense.id}")
            sheet.update(
                range_name=f"A{idx}",
                values=[self._expense_to_row(expense)],
                value_input_option="RAW",
            )

        try:
            await asyncio.to_thread(_overwrite)
            return expense
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete(self, expense_id: str) -> bool:
        """Delete an expense row by ID."""

        def _remove() -> bool:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row_index(sheet, expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True

        try:
            return await asyncio.to_thread(_remove)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """
    Google Sheets implementation of the category reference data.

    The sheet is small and read often, so it is loaded once and cached
    for the lifetime of the storage object.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._cache: Optional[dict[str, Category]] = None

    def _load(self) -> dict[str, Category]:
        if self._cache is None:
            try:
                sheet = self._client.get_categories_sheet()
                rows = sheet.get_all_values()[1:]
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to read categories: {e}")

            categories: dict[str, Category] = {}
            for row in rows:
                if not row or not row[0]:
                    continue
                try:
                    category = Category(slug=_safe_get(row, 0), name=_safe_get(row, 1))
                except Exception as e:
                    logger.warning("category_row_skipped", slug=row[0], error=str(e))
                    continue
                categories.setdefault(category.slug, category)
            self._cache = categories
        return self._cache

    async def find_by_slug(self, slug: str) -> Optional[Category]:
        categories = await asyncio.to_thread(self._load)
        return categories.get(slug)

    async def list_categories(self) -> list[Category]:
        categories = await asyncio.to_thread(self._load)
        return sorted(categories.values(), key=lambda c: c.slug)

    @write_retry
    async def upsert_category(self, category: Category) -> bool:
        """Append the category unless its slug is already present."""

        def _upsert() -> bool:
            categories = self._load()
            if category.slug in categories:
                return False
            sheet = self._client.get_categories_sheet()
            sheet.append_row([category.slug, category.name], value_input_option="RAW")
            categories[category.slug] = category
            return True

        try:
            return await asyncio.to_thread(_upsert)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            owner_id=_safe_get(row, 6) or None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, never raised."""

        def _append() -> None:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

        try:
            await asyncio.to_thread(_append)
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""

        def _read() -> list[list]:
            sheet = self._client.get_audit_sheet()
            return sheet.get_all_values()[1:]

        try:
            rows = await asyncio.to_thread(_read)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception as e:
                    logger.warning("audit_row_skipped", event_id=row[0], error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
