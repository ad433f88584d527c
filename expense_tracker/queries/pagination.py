"""Page/limit arithmetic for listings."""

from expense_tracker.models.expense import PageMeta, PageWindow


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _floor_at_one(value: int) -> int:
    return value if value >= 1 else 1


def paginate(page: int = DEFAULT_PAGE, limit: int = DEFAULT_PAGE_SIZE) -> PageWindow:
    """
    Convert page/limit into an offset window.

    Request models already enforce page >= 1 and 1 <= limit <= 100.
    Values below 1 that slip through are floored to 1 instead of failing.
    """
    page = _floor_at_one(page)
    limit = _floor_at_one(limit)
    return PageWindow(page=page, offset=(page - 1) * limit, limit=limit)


def page_meta(total: int, page: int, limit: int) -> PageMeta:
    """Describe a page; total_pages is ceil(total / limit), 0 when total is 0."""
    page = _floor_at_one(page)
    limit = _floor_at_one(limit)
    total = max(total, 0)
    total_pages = -(-total // limit)
    return PageMeta(total=total, page=page, limit=limit, total_pages=total_pages)
