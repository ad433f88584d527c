"""Query engine package: filters, pagination, aggregation and execution."""

from expense_tracker.queries.aggregation import (
    period_key,
    summarize,
    summarize_by_category,
    summarize_by_period,
    week_start,
)
from expense_tracker.queries.executor import QueryExecutor
from expense_tracker.queries.filters import build_filter
from expense_tracker.queries.pagination import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    page_meta,
    paginate,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "QueryExecutor",
    "build_filter",
    "page_meta",
    "paginate",
    "period_key",
    "summarize",
    "summarize_by_category",
    "summarize_by_period",
    "week_start",
]
