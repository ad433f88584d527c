"""
Aggregation Engine

Reduces a set of expenses to a summary: grand total, per-category
totals, and an optional per-period series.

DESIGN DECISION: All sums are exact Decimal additions. Amounts are never
converted to float on the way, so thousands of small additions cannot
drift.

Ordering is fully deterministic:
- categories by total descending, then slug ascending
- periods by key ascending (string order is chronological order for
  every key format below)

Period keys use the calendar fields stored on spent_at as-is.
No timezone conversion happens here.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from expense_tracker.models.expense import (
    UNCATEGORIZED,
    CategoryTotal,
    Expense,
    GroupByPeriod,
    PeriodTotal,
    SummaryResult,
)


ZERO = Decimal("0.00")


def coerce_granularity(value: Union[GroupByPeriod, str, None]) -> Optional[GroupByPeriod]:
    """Map a requested grouping onto GroupByPeriod; unknown values mean no grouping."""
    if value is None or isinstance(value, GroupByPeriod):
        return value
    try:
        return GroupByPeriod(str(value).strip().lower())
    except ValueError:
        return None


def week_start(day: date) -> date:
    """The Sunday that starts the week containing day."""
    # weekday(): Monday=0 .. Sunday=6; days since Sunday is (weekday + 1) % 7
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_key(spent_at: Union[datetime, date], granularity: GroupByPeriod) -> str:
    """
    Bucket key for a timestamp.

    day   -> YYYY-MM-DD
    week  -> YYYY-MM-DD of the Sunday starting the week
    month -> YYYY-MM
    year  -> YYYY
    """
    day = spent_at.date() if isinstance(spent_at, datetime) else spent_at

    if granularity == GroupByPeriod.DAY:
        return day.isoformat()
    if granularity == GroupByPeriod.WEEK:
        return week_start(day).isoformat()
    if granularity == GroupByPeriod.MONTH:
        return f"{day.year:04d}-{day.month:02d}"
    if granularity == GroupByPeriod.YEAR:
        return f"{day.year:04d}"
    raise ValueError(f"Unsupported granularity: {granularity!r}")


def category_of(expense: Expense) -> str:
    return expense.category or UNCATEGORIZED


def _tally(
    records: Iterable[Expense],
    key_of: Callable[[Expense], str],
) -> dict[str, tuple[Decimal, int]]:
    """Sum and count per key, keys in order of first appearance."""
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for expense in records:
        key = key_of(expense)
        totals[key] = totals.get(key, ZERO) + expense.amount
        counts[key] = counts.get(key, 0) + 1
    return {key: (totals[key], counts[key]) for key in totals}


def summarize_by_category(records: Iterable[Expense]) -> list[CategoryTotal]:
    """Per-category totals, largest first; equal totals ordered by slug."""
    rows = [
        CategoryTotal(category=key, total=total, count=count)
        for key, (total, count) in _tally(records, category_of).items()
    ]
    rows.sort(key=lambda row: (-row.total, row.category))
    return rows


def summarize_by_period(
    records: Iterable[Expense],
    granularity: Union[GroupByPeriod, str, None],
) -> Optional[list[PeriodTotal]]:
    """
    Per-period totals in chronological order.

    Returns None (no series at all) when granularity is absent or unknown.
    """
    period = coerce_granularity(granularity)
    if period is None:
        return None

    rows = [
        PeriodTotal(period=key, total=total, count=count)
        for key, (total, count) in _tally(
            records, lambda expense: period_key(expense.spent_at, period)
        ).items()
    ]
    rows.sort(key=lambda row: row.period)
    return rows


def summarize(
    records: Iterable[Expense],
    group_by: Union[GroupByPeriod, str, None] = None,
) -> SummaryResult:
    """
    Full summary of a record set.

    The grand total is summed independently of the category buckets;
    both always agree because every record lands in exactly one bucket.
    """
    records = list(records)
    return SummaryResult(
        total=sum((expense.amount for expense in records), ZERO),
        count=len(records),
        by_category=summarize_by_category(records),
        by_time_period=summarize_by_period(records, group_by),
    )
