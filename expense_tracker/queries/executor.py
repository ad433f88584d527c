"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC and ownership-scoped.
Every query is built from the authenticated owner plus request
constraints, executed against storage, and then shaped:

- listing: one page of expenses plus page metadata
- summary: totals, category rollup, optional time series

Storage failures propagate as-is. Nothing here retries or masks them.
"""

import asyncio

from expense_tracker.models.expense import (
    ExpensePage,
    ListingQuery,
    SummaryQuery,
    SummaryResult,
    project_expense,
)
from expense_tracker.queries.aggregation import summarize
from expense_tracker.queries.filters import build_filter
from expense_tracker.queries.pagination import page_meta, paginate
from expense_tracker.services.storage import ExpenseStorageInterface, SortOrder


class QueryExecutor:
    """
    Executes listing and summary queries against expense storage.

    GUARANTEES:
    - Only the caller's own expenses are ever read
    - Listings are ordered newest first (spent_at descending)
    - Summaries are exact Decimal sums
    """

    def __init__(self, storage: ExpenseStorageInterface):
        self._storage = storage

    async def list_expenses(self, query: ListingQuery, owner_id: str) -> ExpensePage:
        """
        Fetch one page of the caller's expenses.

        The page and the total count are independent reads and run
        concurrently; both must finish before the page is assembled.
        """
        expense_filter = build_filter(
            owner_id,
            spent_from=query.spent_from,
            spent_to=query.spent_to,
            category=query.category,
        )
        window = paginate(query.page, query.limit)

        expenses, total = await asyncio.gather(
            self._storage.find_many(
                expense_filter,
                order=SortOrder.DESC,
                offset=window.offset,
                limit=window.limit,
            ),
            self._storage.count(expense_filter),
        )

        return ExpensePage(
            data=[project_expense(expense) for expense in expenses],
            meta=page_meta(total, window.page, window.limit),
        )

    async def summarize(self, query: SummaryQuery, owner_id: str) -> SummaryResult:
        """
        Summarize every expense of the caller in the requested range.

        The matching set is fetched once; totals, the category rollup and
        the optional series are all reduced from that one read.
        """
        expense_filter = build_filter(
            owner_id,
            spent_from=query.spent_from,
            spent_to=query.spent_to,
        )
        records = await self._storage.find_many(expense_filter, order=SortOrder.ASC)
        return summarize(records, group_by=query.group_by)
