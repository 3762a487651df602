"""
Salary Calculator

Works out one month's net salary from the base salary, unpaid leave,
hours worked and a KPI bonus, and files the result in the planner as
a one-time income on the 1st of that month.

RULES:
- Working days are the calendar days less 8 off days
- A standard working day is 9 hours
- Hours beyond the standard hours are overtime, paid at the plain
  hourly rate (base / standard hours)
- Each unpaid day deducts base / calendar days

Money results are rounded to cents, half up.

There is at most one calculated salary per month. Calculating again
replaces it and keeps its id, so the planner never counts a month's
salary twice.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import uuid4

import structlog

from finflow.analytics.metrics import safe_ratio
from finflow.dates import first_of_month, month_key
from finflow.errors import SalaryCalculationError
from finflow.models.ledger import ZERO, TransactionType
from finflow.models.planner import Frequency, FutureTransaction, SalaryBreakdown, SalaryInputs


logger = structlog.get_logger(__name__)


OFF_DAYS_PER_MONTH = 8
HOURS_PER_DAY = 9

CALCULATED_SALARY = "Calculated Salary"
SALARY_CATEGORY = "Salary"

_CENT = Decimal("0.01")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def calculate_salary(inputs: SalaryInputs) -> Optional[SalaryBreakdown]:
    """
    Net salary for one month.

    Returns None when there is nothing to calculate: no base salary,
    or a month too short to have any working days.
    """
    working_days = inputs.days - OFF_DAYS_PER_MONTH
    if inputs.base <= 0 or working_days <= 0:
        return None

    standard_hours = Decimal(working_days * HOURS_PER_DAY)
    hourly_rate = safe_ratio(inputs.base, standard_hours)
    overtime_hours = max(inputs.total_hours - standard_hours, ZERO)
    overtime_bonus = overtime_hours * hourly_rate
    deduction = inputs.unpaid_days * safe_ratio(inputs.base, Decimal(inputs.days))
    net = inputs.base - deduction + overtime_bonus + inputs.kpi

    return SalaryBreakdown(
        net=_cents(net),
        deduction=_cents(deduction),
        overtime_bonus=_cents(overtime_bonus),
        kpi_bonus=_cents(inputs.kpi),
        hourly_rate=_cents(hourly_rate),
        overtime_hours=overtime_hours,
    )


def is_calculated_salary(item: FutureTransaction, year: int, month: int) -> bool:
    """True for the calculated salary planned in (year, month)."""
    return (
        item.description == CALCULATED_SALARY
        and item.start_date.year == year
        and item.start_date.month == month
    )


def salary_planned_item(
    breakdown: SalaryBreakdown,
    inputs: SalaryInputs,
    year: int,
    month: int,
    item_id: str,
) -> FutureTransaction:
    """
    Planned one-time income for a calculated salary.

    Raises:
        SalaryCalculationError: If the net salary is not positive
    """
    if breakdown.net <= 0:
        raise SalaryCalculationError(month_key(year, month), f"net salary {breakdown.net} is not positive")

    return FutureTransaction(
        id=item_id,
        type=TransactionType.INCOME,
        description=CALCULATED_SALARY,
        amount=breakdown.net,
        frequency=Frequency.ONE_TIME,
        start_date=first_of_month(year, month),
        category=SALARY_CATEGORY,
        calculation_details=inputs,
    )


def upsert_calculated_salary(
    future_transactions: Iterable[FutureTransaction],
    inputs: SalaryInputs,
    year: int,
    month: int,
    item_id: Optional[str] = None,
) -> tuple[FutureTransaction, ...]:
    """
    File the calculated salary for (year, month) in the planner.

    An existing calculated salary for that month is replaced in place
    and keeps its id. Otherwise the new item is appended, with
    `item_id` or a fresh one.

    Returns:
        The new list of planned items; the input is not modified

    Raises:
        SalaryCalculationError: If the inputs produce no salary
    """
    key = month_key(year, month)
    breakdown = calculate_salary(inputs)
    if breakdown is None:
        raise SalaryCalculationError(key, "no base salary or no working days")

    items = list(future_transactions)
    for index, existing in enumerate(items):
        if is_calculated_salary(existing, year, month):
            items[index] = salary_planned_item(breakdown, inputs, year, month, existing.id)
            logger.info("calculated_salary_updated", month_key=key, net=str(breakdown.net))
            return tuple(items)

    new_item = salary_planned_item(breakdown, inputs, year, month, item_id or uuid4().hex)
    logger.info("calculated_salary_added", month_key=key, net=str(breakdown.net))
    return (*items, new_item)
