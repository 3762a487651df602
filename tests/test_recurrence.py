"""Tests for recurrence rules of planned items."""

import pytest
from datetime import date
from decimal import Decimal

from finflow.ledger import applicable_items, applies_to, monthly_totals
from finflow.models import Frequency, FutureTransaction


def _planned(frequency, start, end=None, tx_type="expense", amount="100", item_id="f1"):
    return FutureTransaction(
        id=item_id,
        type=tx_type,
        description=f"{frequency} item",
        amount=Decimal(amount),
        frequency=frequency,
        start_date=start,
        end_date=end,
    )


class TestAppliesTo:

    @pytest.mark.parametrize("year, month, expected", [
        (2024, 1, True),
        (2024, 2, False),
        (2024, 3, False),
        (2024, 4, True),
        (2024, 10, True),
        (2025, 1, True),
        (2023, 10, False),
    ])
    def test_quarterly(self, year, month, expected):
        item = _planned("quarterly", date(2024, 1, 1))
        assert applies_to(item, year, month) is expected

    @pytest.mark.parametrize("year, month, expected", [
        (2024, 3, True),
        (2025, 3, True),
        (2025, 4, False),
        (2023, 3, False),
    ])
    def test_yearly(self, year, month, expected):
        item = _planned("yearly", date(2024, 3, 1))
        assert applies_to(item, year, month) is expected

    def test_one_time(self):
        item = _planned("one-time", date(2024, 6, 15))
        assert applies_to(item, 2024, 6)
        assert not applies_to(item, 2024, 7)
        assert not applies_to(item, 2025, 6)

    def test_monthly_within_bounds(self):
        item = _planned("monthly", date(2024, 1, 15), end=date(2024, 3, 31))
        assert not applies_to(item, 2023, 12)
        assert applies_to(item, 2024, 1)
        assert applies_to(item, 2024, 3)
        assert not applies_to(item, 2024, 4)

    def test_start_late_in_month_still_counts(self):
        item = _planned("monthly", date(2024, 1, 31))
        assert applies_to(item, 2024, 1)

    def test_end_date_early_in_month_still_counts(self):
        item = _planned("monthly", date(2024, 1, 1), end=date(2024, 5, 1))
        assert applies_to(item, 2024, 5)
        assert not applies_to(item, 2024, 6)

    def test_unsupported_frequency_never_applies(self):
        item = _planned("biweekly", date(2024, 1, 1))
        assert item.frequency == Frequency.UNSUPPORTED
        assert not applies_to(item, 2024, 1)
        assert not applies_to(item, 2024, 2)


class TestMonthlyTotals:

    def test_sums_by_type(self):
        items = [
            _planned("monthly", date(2024, 1, 1), tx_type="income", amount="1000", item_id="salary"),
            _planned("quarterly", date(2024, 1, 1), amount="300", item_id="insurance"),
            _planned("monthly", date(2024, 1, 1), amount="200", item_id="rent"),
        ]
        january = monthly_totals(items, 2024, 1)
        assert january.income == Decimal("1000")
        assert january.expenses == Decimal("500")
        assert january.net == Decimal("500")

        february = monthly_totals(items, 2024, 2)
        assert february.expenses == Decimal("200")

    def test_empty_plan(self):
        totals = monthly_totals([], 2024, 1)
        assert totals.income == Decimal("0")
        assert totals.net == Decimal("0")

    def test_applicable_items(self):
        items = [
            _planned("one-time", date(2024, 6, 15), item_id="a"),
            _planned("monthly", date(2024, 1, 1), item_id="b"),
        ]
        assert [item.id for item in applicable_items(items, 2024, 5)] == ["b"]
