"""Unit tests for date-range reconciliation."""

from datetime import date
from types import SimpleNamespace

import pytest

from timelinetm.reconcile import DateRange, days_between, duration_of, reconcile, shift_range


def item(start, end):
    return SimpleNamespace(start_date=start, end_date=end)


class TestDuration:
    """Inclusive day counting."""

    def test_single_day_lasts_one_day(self):
        assert duration_of(date(2025, 1, 1), date(2025, 1, 1)) == 1

    def test_inclusive_count(self):
        assert duration_of(date(2025, 1, 1), date(2025, 1, 10)) == 10
        assert days_between(date(2025, 1, 1), date(2025, 1, 10)) == 9

    def test_crosses_month_boundary(self):
        assert duration_of(date(2025, 2, 1), date(2025, 3, 5)) == 33

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="before start date"):
            duration_of(date(2025, 1, 10), date(2025, 1, 1))


class TestReconcile:
    """Minimal enclosing range of children."""

    def test_single_child(self):
        result = reconcile([item(date(2025, 4, 1), date(2025, 4, 5))])
        assert result == DateRange(date(2025, 4, 1), date(2025, 4, 5), 5)

    def test_min_start_and_max_end_come_from_different_children(self):
        result = reconcile([
            item(date(2025, 3, 1), date(2025, 3, 5)),
            item(date(2025, 2, 1), date(2025, 2, 10)),
            item(date(2025, 2, 20), date(2025, 3, 2)),
        ])
        assert result.start_date == date(2025, 2, 1)
        assert result.end_date == date(2025, 3, 5)
        assert result.duration == 33

    def test_accepts_generators(self):
        children = (item(date(2025, 1, d), date(2025, 1, d + 1)) for d in (3, 1, 7))
        assert reconcile(children).start_date == date(2025, 1, 1)

    def test_empty_collection_is_not_reconciled(self):
        with pytest.raises(ValueError, match="empty"):
            reconcile([])


class TestShiftRange:

    def test_forward(self):
        assert shift_range(date(2025, 5, 1), date(2025, 5, 3), 5) == (date(2025, 5, 6), date(2025, 5, 8))

    def test_backward_across_year(self):
        assert shift_range(date(2025, 1, 2), date(2025, 1, 4), -3) == (date(2024, 12, 30), date(2025, 1, 1))
