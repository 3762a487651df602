"""
Ledger Builder

Aggregates recorded transactions into per-month income and expense
totals and carries each month's balance into the next ("rollover").

ROLLOVER POLICY (per month, stored on the entry):
- auto_rollover on:  next month starts with this month's ending balance,
                     floored to zero unless allow_negative is set
- auto_rollover off: next month's starting balance is left as it was

New months take their flags from RolloverSettings; months already in
the ledger keep theirs. Income and expenses are always recomputed from
the transactions, so the builder can be re-run on its own output and
produce the same ledger.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

import structlog

from finflow.dates import current_month_key, is_month_key, month_key
from finflow.models.ledger import (
    ZERO,
    MonthlyBudget,
    MonthlyBudgetEntry,
    RolloverSettings,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)


def transaction_month_key(tx: Transaction, today: Optional[date] = None) -> str:
    """Month a transaction is booked into; undated ones go to the current month."""
    if tx.date is None:
        return current_month_key(today)
    return month_key(tx.date.year, tx.date.month)


def month_totals(
    transactions: Iterable[Transaction],
    key: str,
    today: Optional[date] = None,
) -> tuple[Decimal, Decimal]:
    """(income, expenses) of the transactions booked into one month."""
    income = ZERO
    expenses = ZERO
    for tx in transactions:
        if transaction_month_key(tx, today) != key:
            continue
        if tx.type == TransactionType.INCOME:
            income += tx.amount
        else:
            expenses += tx.amount
    return income, expenses


def build_ledger(
    transactions: Iterable[Transaction],
    existing_budgets: Optional[Mapping[str, MonthlyBudgetEntry]] = None,
    settings: Optional[RolloverSettings] = None,
    today: Optional[date] = None,
) -> MonthlyBudget:
    """
    Build the monthly ledger.

    Args:
        transactions: Recorded transactions (any order)
        existing_budgets: Previously built or stored ledger. Only its
            starting balances and rollover flags are read.
        settings: Rollover policy for months that do not exist yet
        today: Reference day for "current month" (defaults to today)

    Returns:
        A new dict keyed by "YYYY-MM" in ascending order. The inputs
        are not modified.
    """
    existing_budgets = existing_budgets or {}
    settings = settings or RolloverSettings()

    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        key = transaction_month_key(tx, today)
        if tx.type == TransactionType.INCOME:
            income[key] += tx.amount
        else:
            expenses[key] += tx.amount

    keys = set(income) | set(expenses) | {current_month_key(today)}
    for key in existing_budgets:
        if is_month_key(key):
            keys.add(key)
        else:
            logger.warning("ledger_month_key_ignored", key=str(key))
    ordered = sorted(keys)

    default = MonthlyBudgetEntry.default(settings)
    starting: dict[str, Decimal] = {}
    for key in ordered:
        starting[key] = existing_budgets.get(key, default).starting_balance

    ledger: MonthlyBudget = {}
    for index, key in enumerate(ordered):
        template = existing_budgets.get(key, default)
        entry = MonthlyBudgetEntry.compute(
            starting_balance=starting[key],
            income=income[key],
            expenses=expenses[key],
            auto_rollover=template.auto_rollover,
            allow_negative=template.allow_negative,
        )
        ledger[key] = entry

        if index == len(ordered) - 1 or not entry.auto_rollover:
            continue

        next_key = ordered[index + 1]
        if entry.ending_balance >= 0 or entry.allow_negative:
            starting[next_key] = entry.ending_balance
        else:
            starting[next_key] = ZERO

    logger.debug(
        "ledger_built",
        months=len(ledger),
        first_month=ordered[0],
        last_month=ordered[-1],
    )
    return ledger


def floored_months(budgets: Mapping[str, MonthlyBudgetEntry]) -> list[str]:
    """
    Months whose negative ending balance was not carried forward.

    These are months with auto_rollover on, allow_negative off and an
    ending balance below zero that have a following month.
    """
    ordered = sorted(budgets)
    return [
        key
        for key in ordered[:-1]
        if budgets[key].auto_rollover
        and not budgets[key].allow_negative
        and budgets[key].ending_balance < 0
    ]


def closing_balance(budgets: Mapping[str, MonthlyBudgetEntry]) -> Decimal:
    """Ending balance of the latest month, or zero for an empty ledger."""
    if not budgets:
        return ZERO
    return budgets[max(budgets)].ending_balance
