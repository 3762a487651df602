"""
Recurrence Evaluator

Decides whether a planned item applies to a calendar month.

The check runs in two steps:
1. Boundary: the item must have started by the end of the month and,
   if it has an end date, not ended before the month began.
2. Frequency rule, measured from the month of the start date.

applies_to() is pure and total: it never raises for a well-formed
FutureTransaction and a valid (year, month).
"""

from decimal import Decimal
from typing import Iterable, NamedTuple

from finflow.dates import month_bounds, months_between
from finflow.models.ledger import ZERO, TransactionType
from finflow.models.planner import Frequency, FutureTransaction


class MonthlyPlanTotals(NamedTuple):
    income: Decimal
    expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def applies_to(item: FutureTransaction, year: int, month: int) -> bool:
    """Does `item` contribute to (year, month)?"""
    month_start, month_end = month_bounds(year, month)

    if item.start_date > month_end:
        return False
    if item.end_date is not None and item.end_date < month_start:
        return False

    start = item.start_date
    frequency = item.frequency

    if frequency == Frequency.ONE_TIME:
        return start.year == year and start.month == month
    if frequency == Frequency.MONTHLY:
        return True
    if frequency == Frequency.QUARTERLY:
        since_start = months_between((start.year, start.month), (year, month))
        return since_start >= 0 and since_start % 3 == 0
    if frequency == Frequency.YEARLY:
        return year >= start.year and month == start.month
    if frequency == Frequency.UNSUPPORTED:
        return False

    # Unreachable while every Frequency member is handled above
    raise AssertionError(f"Unhandled frequency: {frequency!r}")


def applicable_items(
    items: Iterable[FutureTransaction],
    year: int,
    month: int,
) -> list[FutureTransaction]:
    return [item for item in items if applies_to(item, year, month)]


def monthly_totals(
    items: Iterable[FutureTransaction],
    year: int,
    month: int,
) -> MonthlyPlanTotals:
    """Planned income and expenses that apply to (year, month)."""
    income = ZERO
    expenses = ZERO
    for item in items:
        if not applies_to(item, year, month):
            continue
        if item.type == TransactionType.INCOME:
            income += item.amount
        else:
            expenses += item.amount
    return MonthlyPlanTotals(income=income, expenses=expenses)
