"""
Projection Engine

Estimates income, expenses and balance for any month the user picks.

Three situations, depending on where the target sits relative to the
recorded ledger:

    A. nothing recorded yet      -> start from zero at the current month
    B. target inside the ledger  -> recorded numbers win over projection
    C. target after the ledger   -> start from the last recorded balance

In A and C the balance is walked forward month by month, adding the
net of every planned item that applies to each month, up to and
including the target month.

The ledger passed in is only read, never modified.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

import structlog

from finflow.dates import (
    is_month_key,
    iter_months,
    month_key,
    months_between,
    next_month,
    parse_month_key,
    today_or,
)
from finflow.ledger.recurrence import applies_to, monthly_totals
from finflow.models.ledger import ZERO, MonthlyBudgetEntry, TransactionType, to_money
from finflow.models.planner import (
    FutureTransaction,
    PlannedMonthGroup,
    PlannerMonth,
    PlannerSummary,
    ProjectedTotals,
)


logger = structlog.get_logger(__name__)


def _net_between(
    items: tuple[FutureTransaction, ...],
    start: tuple[int, int],
    stop: tuple[int, int],
) -> Decimal:
    """Planned net of every month from `start` up to, not including, `stop`."""
    total = ZERO
    steps = months_between(start, stop)
    for year, month in iter_months(start[0], start[1], max(steps, 0)):
        total += monthly_totals(items, year, month).net
    return total


def project(
    future_transactions: Iterable[FutureTransaction],
    monthly_budgets: Mapping[str, MonthlyBudgetEntry],
    target_year: int,
    target_month: int,
    today: Optional[date] = None,
) -> ProjectedTotals:
    """
    Income, expenses and balance for (target_year, target_month).

    Args:
        future_transactions: Planned items
        monthly_budgets: The recorded ledger (output of build_ledger)
        target_year, target_month: Month to project
        today: Reference day for "current month" when nothing is recorded

    Returns:
        ProjectedTotals. For recorded months these are the stored
        values; otherwise income/expenses are the target month's planned
        amounts and balance is the projected closing balance.
    """
    items = tuple(future_transactions)
    target = (target_year, target_month)
    target_key = month_key(*target)
    actual_keys = sorted(key for key in monthly_budgets if is_month_key(key))

    if not actual_keys:
        ref = today_or(today)
        planned = monthly_totals(items, *target)
        running = _net_between(items, (ref.year, ref.month), target)
        logger.debug("projection_from_zero", target=target_key)
        return ProjectedTotals(
            income=planned.income,
            expenses=planned.expenses,
            balance=running + planned.net,
        )

    last_key = actual_keys[-1]
    last = parse_month_key(last_key)

    if months_between(last, target) <= 0:
        actual = monthly_budgets.get(target_key)
        if actual is not None:
            logger.debug("projection_from_actuals", target=target_key)
            return ProjectedTotals(
                income=actual.income,
                expenses=actual.expenses,
                balance=actual.ending_balance,
            )

        # Gap inside the recorded range: hold the last known balance
        preceding = [key for key in actual_keys if key <= target_key]
        balance = monthly_budgets[preceding[-1]].ending_balance if preceding else ZERO
        logger.debug("projection_in_gap", target=target_key)
        return ProjectedTotals(income=ZERO, expenses=ZERO, balance=balance)

    planned = monthly_totals(items, *target)
    running = monthly_budgets[last_key].ending_balance
    running += _net_between(items, next_month(*last), target)
    logger.debug("projection_from_last_actual", target=target_key, last_actual=last_key)
    return ProjectedTotals(
        income=planned.income,
        expenses=planned.expenses,
        balance=running + planned.net,
    )


def projection_source(
    monthly_budgets: Mapping[str, MonthlyBudgetEntry],
    target_year: int,
    target_month: int,
) -> str:
    """Which of the three projection paths applies: 'plan', 'actual', 'gap' or 'extrapolated'."""
    actual_keys = sorted(key for key in monthly_budgets if is_month_key(key))
    if not actual_keys:
        return "plan"
    target_key = month_key(target_year, target_month)
    if target_key <= actual_keys[-1]:
        return "actual" if target_key in monthly_budgets else "gap"
    return "extrapolated"


# =============================================================================
# PLANNER VIEWS
# =============================================================================

def project_horizon(
    future_transactions: Iterable[FutureTransaction],
    starting_balance: Decimal,
    months: int = 12,
    today: Optional[date] = None,
) -> list[PlannerMonth]:
    """
    Month-by-month plan for the `months` months after the current one.

    Each row carries that month's planned income, expenses and net,
    plus the running balance starting from `starting_balance`.
    """
    items = tuple(future_transactions)
    ref = today_or(today)
    start = next_month(ref.year, ref.month)
    running = to_money(starting_balance)

    rows = []
    for year, month in iter_months(start[0], start[1], months):
        planned = monthly_totals(items, year, month)
        running += planned.net
        rows.append(PlannerMonth(
            month_key=month_key(year, month),
            income=planned.income,
            expenses=planned.expenses,
            net=planned.net,
            balance=running,
        ))
    return rows


def summarize_horizon(
    rows: Iterable[PlannerMonth],
    starting_balance: Decimal = ZERO,
) -> PlannerSummary:
    rows = list(rows)
    return PlannerSummary(
        total_income=sum((r.income for r in rows), ZERO),
        total_expenses=sum((r.expenses for r in rows), ZERO),
        ending_balance=rows[-1].balance if rows else to_money(starting_balance),
    )


def group_planned_by_month(
    future_transactions: Iterable[FutureTransaction],
    months: int = 12,
    today: Optional[date] = None,
) -> list[PlannedMonthGroup]:
    """
    Planned items per month, starting with the current month.

    Within a month, income comes before expenses and items are ordered
    by description. Months with nothing planned are left out.
    """
    items = tuple(future_transactions)
    ref = today_or(today)

    groups = []
    for year, month in iter_months(ref.year, ref.month, months):
        matching = [item for item in items if applies_to(item, year, month)]
        if not matching:
            continue
        matching.sort(key=lambda item: (
            item.type != TransactionType.INCOME,
            item.description.lower(),
        ))
        groups.append(PlannedMonthGroup(
            month_key=month_key(year, month),
            transactions=tuple(matching),
        ))
    return groups
