"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    RecordNotFoundError,
    SortOrder,
    StorageConfigurationError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryExpenseStorage",
    "RecordNotFoundError",
    "StorageConfigurationError",
    "SortOrder",
    "StorageConnectionError",
    "StorageError",
]
