"""Salary calculation feeding the planner."""

from finflow.planner.salary import (
    CALCULATED_SALARY,
    calculate_salary,
    is_calculated_salary,
    salary_planned_item,
    upsert_calculated_salary,
)

__all__ = [
    "CALCULATED_SALARY",
    "calculate_salary",
    "is_calculated_salary",
    "salary_planned_item",
    "upsert_calculated_salary",
]
