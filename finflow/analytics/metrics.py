"""
Rate-style metrics over recorded transactions.

Every ratio here is defined as 0 when its denominator is 0, so callers
never see NaN, Infinity or a ZeroDivisionError.
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, NamedTuple, Optional

from finflow.dates import add_months, current_month_key, today_or
from finflow.ledger.builder import transaction_month_key
from finflow.models.ledger import ZERO, MonthlyBudgetEntry, Transaction, TransactionType, to_money


NEUTRAL_HEALTH_SCORE = 50
NEUTRAL_EXPENSE_STABILITY = Decimal("0.7")
UNCATEGORIZED = "Uncategorized"

# Component weights of the detailed health score
SAVINGS_WEIGHT = Decimal("0.4")
STABILITY_WEIGHT = Decimal("0.3")
DIVERSITY_WEIGHT = Decimal("0.2")
EMERGENCY_FUND_WEIGHT = Decimal("0.1")

# (months of expenses covered, score), best first
EMERGENCY_FUND_TIERS = ((6, 100), (3, 75), (1, 50))
EMERGENCY_FUND_FLOOR = 25


class HealthBreakdown(NamedTuple):
    """Component scores (0-100) of the detailed health score."""
    savings: Decimal
    stability: Decimal
    diversity: Decimal
    emergency_fund: int
    score: int


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if not denominator:
        return ZERO
    return numerator / denominator


def _recent(
    transactions: Iterable[Transaction],
    today: Optional[date],
    lookback_months: int,
) -> list[Transaction]:
    """Transactions on or after the first day of the month `lookback_months` ago."""
    ref = today_or(today)
    year, month = add_months(ref.year, ref.month, -lookback_months)
    window_start = date(year, month, 1)
    # Undated transactions are booked into the current month, which is in the window
    return [tx for tx in transactions if tx.date is None or tx.date >= window_start]


def _round_score(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def savings_rate(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    lookback_months: int = 3,
) -> Decimal:
    """(income - expenses) / income over the lookback window; 0 without income."""
    income = ZERO
    expenses = ZERO
    for tx in _recent(transactions, today, lookback_months):
        if tx.type == TransactionType.INCOME:
            income += tx.amount
        else:
            expenses += tx.amount
    return safe_ratio(income - expenses, income)


def _savings_score(recent: list[Transaction], today: Optional[date], lookback_months: int) -> Decimal:
    rate = savings_rate(recent, today, lookback_months)
    return min(Decimal(100), max(ZERO, rate) * 200)


def health_score(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    lookback_months: int = 3,
) -> int:
    """
    0-100 score driven by the recent savings rate.

    A neutral 50 is returned when there is nothing recent to judge.
    Saving half of income or more gives the maximum of 90.
    """
    recent = _recent(transactions, today, lookback_months)
    if not recent:
        return NEUTRAL_HEALTH_SCORE

    score = _savings_score(recent, today, lookback_months) * SAVINGS_WEIGHT + NEUTRAL_HEALTH_SCORE
    return _round_score(score)


def expense_share_by_category(
    transactions: Iterable[Transaction],
    month_key: str,
    today: Optional[date] = None,
) -> dict[str, Decimal]:
    """Each category's share (0-1) of one month's expenses."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        if tx.type != TransactionType.EXPENSE:
            continue
        if transaction_month_key(tx, today) != month_key:
            continue
        totals[tx.category or UNCATEGORIZED] += tx.amount

    month_expenses = sum(totals.values(), ZERO)
    return {
        category: safe_ratio(amount, month_expenses)
        for category, amount in sorted(totals.items())
    }


def budget_usage(entry: MonthlyBudgetEntry, limit: Decimal) -> Decimal:
    """Share of a spending limit used by a month's expenses; 0 for no limit."""
    return safe_ratio(entry.expenses, to_money(limit))


# =============================================================================
# DETAILED HEALTH SCORE
# =============================================================================

def _monthly_expenses(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        if tx.type == TransactionType.EXPENSE:
            totals[transaction_month_key(tx, today)] += tx.amount
    return dict(totals)


def _mean_and_deviation(values: list[Decimal]) -> tuple[Decimal, Decimal]:
    """Mean and population standard deviation."""
    count = Decimal(len(values))
    mean = sum(values, ZERO) / count
    variance = sum(((value - mean) ** 2 for value in values), ZERO) / count
    return mean, variance.sqrt()


def expense_stability(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> Decimal:
    """
    How even monthly spending is, from 0 (erratic) to 1 (flat).

    One minus the coefficient of variation of the monthly expense
    totals, clamped to 0-1. With fewer than two months of expenses
    there is no spread to measure and 0.7 is returned.
    """
    totals = list(_monthly_expenses(transactions, today).values())
    if len(totals) < 2:
        return NEUTRAL_EXPENSE_STABILITY

    mean, deviation = _mean_and_deviation(totals)
    return min(Decimal(1), max(ZERO, 1 - safe_ratio(deviation, mean)))


def income_diversity(transactions: Iterable[Transaction]) -> Decimal:
    """1 - sum of squared category shares of income; 0 without income."""
    by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            by_category[tx.category or UNCATEGORIZED] += tx.amount

    total = sum(by_category.values(), ZERO)
    if not total:
        return ZERO
    concentration = sum((safe_ratio(amount, total) ** 2 for amount in by_category.values()), ZERO)
    return 1 - concentration


def emergency_fund_score(
    recent_expenses: Decimal,
    monthly_budgets: Mapping[str, MonthlyBudgetEntry],
    today: Optional[date] = None,
    lookback_months: int = 3,
) -> int:
    """
    Score how many months of spending the current balance covers.

    The monthly spend is recent_expenses spread over lookback_months;
    the balance is the current month's ending balance (0 if the month
    has no entry). No spending gives a neutral 50.
    """
    average = safe_ratio(to_money(recent_expenses), Decimal(lookback_months))
    if not average:
        return NEUTRAL_HEALTH_SCORE

    current = monthly_budgets.get(current_month_key(today))
    balance = current.ending_balance if current else ZERO
    covered = safe_ratio(balance, average)
    for months, score in EMERGENCY_FUND_TIERS:
        if covered >= months:
            return score
    return EMERGENCY_FUND_FLOOR


def health_breakdown(
    transactions: Iterable[Transaction],
    monthly_budgets: Mapping[str, MonthlyBudgetEntry],
    today: Optional[date] = None,
    lookback_months: int = 3,
) -> HealthBreakdown:
    """
    Weighted health score with its components.

    savings 40%, stability 30%, income diversity 20%, emergency fund 10%,
    all measured over the lookback window. Nothing recent to judge gives
    50 for every component.
    """
    recent = _recent(transactions, today, lookback_months)
    if not recent:
        neutral = Decimal(NEUTRAL_HEALTH_SCORE)
        return HealthBreakdown(neutral, neutral, neutral, NEUTRAL_HEALTH_SCORE, NEUTRAL_HEALTH_SCORE)

    savings = _savings_score(recent, today, lookback_months)
    stability = min(Decimal(100), expense_stability(recent, today) * 100)
    diversity = min(Decimal(100), income_diversity(recent) * 100)
    recent_expenses = sum(
        (tx.amount for tx in recent if tx.type == TransactionType.EXPENSE), ZERO,
    )
    emergency = emergency_fund_score(recent_expenses, monthly_budgets, today, lookback_months)

    score = (
        savings * SAVINGS_WEIGHT
        + stability * STABILITY_WEIGHT
        + diversity * DIVERSITY_WEIGHT
        + emergency * EMERGENCY_FUND_WEIGHT
    )
    return HealthBreakdown(savings, stability, diversity, emergency, _round_score(score))


def detect_anomalies(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> list[Transaction]:
    """
    Expenses far from typical monthly spending.

    Flags each expense whose amount differs from the mean monthly
    expense total by more than two standard deviations of those totals.
    Needs at least three months of expenses; returns [] otherwise.
    """
    transactions = list(transactions)
    totals = list(_monthly_expenses(transactions, today).values())
    if len(totals) < 3:
        return []

    mean, deviation = _mean_and_deviation(totals)
    return [
        tx for tx in transactions
        if tx.type == TransactionType.EXPENSE and abs(tx.amount - mean) > 2 * deviation
    ]
