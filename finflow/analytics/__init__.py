"""Deterministic spending metrics."""

from finflow.analytics.metrics import (
    HealthBreakdown,
    budget_usage,
    detect_anomalies,
    emergency_fund_score,
    expense_share_by_category,
    expense_stability,
    health_breakdown,
    health_score,
    income_diversity,
    safe_ratio,
    savings_rate,
)

__all__ = [
    "HealthBreakdown",
    "budget_usage",
    "detect_anomalies",
    "emergency_fund_score",
    "expense_share_by_category",
    "expense_stability",
    "health_breakdown",
    "health_score",
    "income_diversity",
    "safe_ratio",
    "savings_rate",
]
