"""Tests for the filter builder, pagination and aggregation engines."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from expense_tracker.models.expense import GroupByPeriod
from expense_tracker.queries import (
    build_filter,
    page_meta,
    paginate,
    period_key,
    summarize,
    summarize_by_category,
    summarize_by_period,
    week_start,
)


class TestFilterBuilder:
    """Tests for build_filter."""

    def test_owner_is_always_constrained(self, make_expense):
        """Test that another owner's expense never matches."""
        expense_filter = build_filter("user-1")
        assert expense_filter.matches(make_expense(owner_id="user-1"))
        assert not expense_filter.matches(make_expense(owner_id="user-2"))

    def test_bounds_are_inclusive(self, make_expense):
        """Test that both date bounds include their exact instant."""
        expense_filter = build_filter(
            "user-1",
            spent_from="2024-01-01T00:00:00",
            spent_to="2024-01-31T00:00:00",
        )
        assert expense_filter.matches(make_expense(spent_at="2024-01-01T00:00:00"))
        assert expense_filter.matches(make_expense(spent_at="2024-01-31T00:00:00"))
        assert not expense_filter.matches(make_expense(spent_at="2024-01-31T00:00:01"))
        assert not expense_filter.matches(make_expense(spent_at="2023-12-31T23:59:59"))

    def test_bare_to_date_means_midnight(self, make_expense):
        """Test that a date-only upper bound stops at the start of that day."""
        expense_filter = build_filter("user-1", spent_to="2024-01-31")
        assert not expense_filter.matches(make_expense(spent_at="2024-01-31T12:00:00"))

    def test_category_is_exact_match(self, make_expense):
        """Test that category filtering compares slugs exactly."""
        expense_filter = build_filter("user-1", category="food")
        assert expense_filter.matches(make_expense(category="food"))
        assert not expense_filter.matches(make_expense(category="travel"))
        assert not expense_filter.matches(make_expense(category=None))

    def test_empty_category_means_no_constraint(self, make_expense):
        """Test that an empty category string is ignored."""
        expense_filter = build_filter("user-1", category="")
        assert expense_filter.category is None
        assert expense_filter.matches(make_expense(category="travel"))

    def test_inverted_range_matches_nothing(self, make_expense):
        """Test that from after to is an empty range, not an error."""
        expense_filter = build_filter("user-1", spent_from="2024-02-01", spent_to="2024-01-01")
        assert not expense_filter.matches(make_expense(spent_at="2024-01-15"))


class TestPagination:
    """Tests for paginate and page_meta."""

    def test_offset_from_page(self):
        """Test the offset arithmetic."""
        window = paginate(page=3, limit=10)
        assert window.offset == 20
        assert window.limit == 10

    def test_defaults(self):
        """Test the default window."""
        window = paginate()
        assert (window.page, window.offset, window.limit) == (1, 0, 10)

    def test_floors_values_below_one(self):
        """Test that page and limit below 1 are floored."""
        window = paginate(page=0, limit=-5)
        assert (window.page, window.offset, window.limit) == (1, 0, 1)

    def test_total_pages_rounds_up(self):
        """Test that 25 results at 10 per page span 3 pages."""
        meta = page_meta(total=25, page=1, limit=10)
        assert meta.total_pages == 3

    def test_total_pages_exact_multiple(self):
        """Test that an exact multiple does not add a page."""
        assert page_meta(total=30, page=1, limit=10).total_pages == 3

    def test_zero_total_has_zero_pages(self):
        """Test that an empty result has no pages."""
        meta = page_meta(total=0, page=1, limit=10)
        assert meta.total == 0
        assert meta.total_pages == 0

    def test_meta_carries_generation_time(self):
        """Test that meta is stamped with when it was generated."""
        meta = page_meta(total=1, page=1, limit=10)
        assert isinstance(meta.generated_at, datetime)


class TestPeriodKeys:
    """Tests for period bucketing."""

    def test_key_formats(self):
        """Test every granularity's key format."""
        moment = datetime(2024, 3, 7, 15, 30)
        assert period_key(moment, GroupByPeriod.DAY) == "2024-03-07"
        assert period_key(moment, GroupByPeriod.MONTH) == "2024-03"
        assert period_key(moment, GroupByPeriod.YEAR) == "2024"

    def test_week_key_is_preceding_sunday(self):
        """Test that a Wednesday maps to the Sunday starting its week."""
        assert period_key(datetime(2024, 1, 17), GroupByPeriod.WEEK) == "2024-01-14"

    def test_sunday_is_its_own_week_start(self):
        """Test that a Sunday starts its own week."""
        assert week_start(date(2024, 1, 14)) == date(2024, 1, 14)

    def test_saturday_belongs_to_previous_sunday(self):
        """Test that Saturday closes the week that began on Sunday."""
        assert week_start(date(2024, 1, 20)) == date(2024, 1, 14)

    def test_week_can_start_in_previous_year(self):
        """Test weeks straddling a year boundary."""
        assert period_key(datetime(2025, 1, 1), GroupByPeriod.WEEK) == "2024-12-29"

    @pytest.mark.parametrize("granularity", list(GroupByPeriod))
    def test_keys_are_monotonic(self, granularity):
        """Test that later timestamps never get an earlier key."""
        start = datetime(2023, 12, 20, 6, 0)
        moments = [start + timedelta(hours=17 * i) for i in range(120)]
        keys = [period_key(moment, granularity) for moment in moments]
        assert keys == sorted(keys)

    def test_unsupported_granularity_raises(self):
        """Test that period_key refuses unknown granularities."""
        with pytest.raises(ValueError):
            period_key(datetime(2024, 1, 1), "quarter")


class TestAggregation:
    """Tests for summaries."""

    @pytest.fixture
    def records(self, make_expense):
        return [
            make_expense(amount="100.50", category="food", spent_at="2024-01-05"),
            make_expense(amount="50.25", category="food", spent_at="2024-01-20"),
            make_expense(amount="30", category=None, spent_at="2024-02-01"),
        ]

    def test_end_to_end_monthly_summary(self, records):
        """Test the full summary of a small record set."""
        result = summarize(records, GroupByPeriod.MONTH)

        assert result.total == Decimal("180.75")
        assert result.count == 3
        assert [(c.category, c.total, c.count) for c in result.by_category] == [
            ("food", Decimal("150.75"), 2),
            ("uncategorized", Decimal("30.00"), 1),
        ]
        assert [(p.period, p.total, p.count) for p in result.by_time_period] == [
            ("2024-01", Decimal("150.75"), 2),
            ("2024-02", Decimal("30.00"), 1),
        ]

    def test_no_series_without_grouping(self, records):
        """Test that the time series is omitted unless requested."""
        assert summarize(records).by_time_period is None

    def test_unknown_grouping_means_no_series(self, records):
        """Test that an unknown granularity yields no series."""
        assert summarize_by_period(records, "quarter") is None
        assert summarize(records, "fortnight").by_time_period is None

    def test_string_grouping_is_accepted(self, records):
        """Test that plain strings select a granularity."""
        series = summarize_by_period(records, "YEAR")
        assert [(p.period, p.count) for p in series] == [("2024", 3)]

    def test_empty_input(self):
        """Test the summary of nothing."""
        result = summarize([], GroupByPeriod.DAY)
        assert result.total == Decimal("0")
        assert result.count == 0
        assert result.by_category == []
        assert result.by_time_period == []

    def test_category_total_matches_grand_total(self, make_expense):
        """Test that category buckets always add up to the grand total."""
        records = [
            make_expense(amount=f"{i}.{i:02d}", category=["food", "travel", None][i % 3])
            for i in range(1, 40)
        ]
        result = summarize(records)
        assert sum(c.total for c in result.by_category) == result.total
        assert sum(c.count for c in result.by_category) == result.count

    def test_decimal_sums_do_not_drift(self, make_expense):
        """Test that many small amounts sum exactly."""
        records = [make_expense(amount="0.10") for _ in range(1000)]
        assert summarize(records).total == Decimal("100.00")

    def test_category_ties_ordered_by_slug(self, make_expense):
        """Test that equal totals are ordered by slug."""
        records = [
            make_expense(amount="20", category="travel"),
            make_expense(amount="20", category="food"),
            make_expense(amount="5", category="gifts"),
            make_expense(amount="50", category="housing"),
        ]
        assert [c.category for c in summarize_by_category(records)] == [
            "housing",
            "food",
            "travel",
            "gifts",
        ]

    def test_weekly_series(self, make_expense):
        """Test weekly buckets across two weeks."""
        records = [
            make_expense(amount="1", spent_at="2024-01-14T08:00:00"),
            make_expense(amount="2", spent_at="2024-01-20T23:59:00"),
            make_expense(amount="4", spent_at="2024-01-21T00:00:00"),
        ]
        series = summarize_by_period(records, GroupByPeriod.WEEK)
        assert [(p.period, p.total) for p in series] == [
            ("2024-01-14", Decimal("3.00")),
            ("2024-01-21", Decimal("4.00")),
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
