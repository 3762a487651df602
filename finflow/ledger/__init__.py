"""Ledger package: monthly rollover, recurrence rules and projection."""

from finflow.ledger.builder import (
    build_ledger,
    closing_balance,
    floored_months,
    month_totals,
    transaction_month_key,
)
from finflow.ledger.recurrence import (
    MonthlyPlanTotals,
    applicable_items,
    applies_to,
    monthly_totals,
)
from finflow.ledger.projection import (
    group_planned_by_month,
    project,
    project_horizon,
    projection_source,
    summarize_horizon,
)

__all__ = [
    "build_ledger",
    "closing_balance",
    "floored_months",
    "month_totals",
    "transaction_month_key",
    "MonthlyPlanTotals",
    "applicable_items",
    "applies_to",
    "monthly_totals",
    "group_planned_by_month",
    "project",
    "project_horizon",
    "projection_source",
    "summarize_horizon",
]
