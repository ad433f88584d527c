"""
Filter Builder

Turns caller-supplied constraints into the ExpenseFilter the storage
layer consumes.

The owner constraint is not optional and is never taken from request
input: callers pass the authenticated identity explicitly.
"""

from datetime import date, datetime
from typing import Optional, Union

from expense_tracker.models.expense import ExpenseFilter


TimeBound = Union[str, date, datetime, None]


def build_filter(
    owner_id: str,
    spent_from: TimeBound = None,
    spent_to: TimeBound = None,
    category: Optional[str] = None,
) -> ExpenseFilter:
    """
    Build the predicate for a listing or summary.

    Args:
        owner_id: Authenticated caller; always constrains the result
        spent_from: Inclusive lower bound on spent_at
        spent_to: Inclusive upper bound on spent_at
        category: Category slug to match exactly

    Returns:
        A normalized ExpenseFilter

    Bound ordering is not checked: spent_from after spent_to yields an
    empty result rather than an error.
    """
    return ExpenseFilter(
        owner_id=owner_id,
        spent_from=spent_from,
        spent_to=spent_to,
        category=category or None,
    )
