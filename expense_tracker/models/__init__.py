"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    UNCATEGORIZED,
    Category,
    CategoryTotal,
    DeletionResult,
    Expense,
    ExpenseCreate,
    ExpenseFilter,
    ExpensePage,
    ExpenseUpdate,
    ExpenseView,
    GroupByPeriod,
    ListingQuery,
    OcrCompletedEvent,
    OcrExpenseData,
    OcrProvenance,
    PageMeta,
    PageWindow,
    PeriodTotal,
    SummaryQuery,
    SummaryResult,
    project_expense,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "UNCATEGORIZED",
    "Category",
    "CategoryTotal",
    "DeletionResult",
    "Expense",
    "ExpenseCreate",
    "ExpenseFilter",
    "ExpensePage",
    "ExpenseUpdate",
    "ExpenseView",
    "GroupByPeriod",
    "ListingQuery",
    "OcrCompletedEvent",
    "OcrExpenseData",
    "OcrProvenance",
    "PageMeta",
    "PageWindow",
    "PeriodTotal",
    "SummaryQuery",
    "SummaryResult",
    "project_expense",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
