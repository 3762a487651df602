"""Tests for the salary calculator and its planner entry."""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from finflow.errors import FinflowError, SalaryCalculationError
from finflow.ledger import project
from finflow.models import Frequency, FutureTransaction, SalaryInputs, TransactionType
from finflow.planner import (
    CALCULATED_SALARY,
    calculate_salary,
    is_calculated_salary,
    upsert_calculated_salary,
)


def _inputs(**overrides):
    data = {
        "base": Decimal("39600"),
        "days": 30,
        "unpaid_days": 2,
        "total_hours": Decimal("208"),
        "kpi": Decimal("500"),
    }
    data.update(overrides)
    return SalaryInputs(**data)


def _rent():
    return FutureTransaction(
        id="rent",
        type="expense",
        description="Rent",
        amount=Decimal("900"),
        start_date=date(2024, 1, 1),
    )


class TestCalculateSalary:

    def test_full_breakdown(self):
        # 22 working days * 9 hours = 198 standard hours at 200 per hour
        breakdown = calculate_salary(_inputs())

        assert breakdown.hourly_rate == Decimal("200")
        assert breakdown.overtime_hours == Decimal("10")
        assert breakdown.overtime_bonus == Decimal("2000")
        assert breakdown.deduction == Decimal("2640")
        assert breakdown.kpi_bonus == Decimal("500")
        assert breakdown.net == Decimal("39460")

    def test_no_overtime_below_standard_hours(self):
        breakdown = calculate_salary(_inputs(total_hours=Decimal("150"), unpaid_days=0, kpi=Decimal("0")))

        assert breakdown.overtime_hours == Decimal("0")
        assert breakdown.net == Decimal("39600")

    def test_results_are_rounded_to_cents(self):
        breakdown = calculate_salary(_inputs(base=Decimal("1000"), unpaid_days=1, total_hours=Decimal("0")))
        assert breakdown.deduction == Decimal("33.33")

    def test_nothing_to_calculate(self):
        assert calculate_salary(_inputs(base=Decimal("0"))) is None
        assert calculate_salary(_inputs(days=8, unpaid_days=0)) is None

    def test_unpaid_days_cannot_exceed_month(self):
        with pytest.raises(ValidationError):
            _inputs(days=28, unpaid_days=29)

    def test_camel_case_input(self):
        inputs = SalaryInputs.model_validate({"base": 39600, "unpaid": 1, "totalHours": 198})
        assert inputs.unpaid_days == 1
        assert inputs.days == 30


class TestUpsertCalculatedSalary:

    def test_adds_one_time_income_on_first_of_month(self):
        future = upsert_calculated_salary((_rent(),), _inputs(), 2024, 5, item_id="s1")

        salary = future[-1]
        assert len(future) == 2
        assert salary.id == "s1"
        assert salary.type == TransactionType.INCOME
        assert salary.description == CALCULATED_SALARY
        assert salary.category == "Salary"
        assert salary.frequency == Frequency.ONE_TIME
        assert salary.start_date == date(2024, 5, 1)
        assert salary.amount == Decimal("39460")
        assert salary.calculation_details == _inputs()

    def test_recalculation_replaces_same_month(self):
        future = upsert_calculated_salary((_rent(),), _inputs(), 2024, 5, item_id="s1")
        future = upsert_calculated_salary(future, _inputs(kpi=Decimal("0")), 2024, 5, item_id="s2")

        salaries = [item for item in future if is_calculated_salary(item, 2024, 5)]
        assert len(future) == 2
        assert [item.id for item in salaries] == ["s1"]
        assert salaries[0].amount == Decimal("38960")

    def test_other_months_are_kept(self):
        future = upsert_calculated_salary((), _inputs(), 2024, 5, item_id="may")
        future = upsert_calculated_salary(future, _inputs(), 2024, 6, item_id="june")

        assert [item.id for item in future] == ["may", "june"]

    def test_generated_id(self):
        future = upsert_calculated_salary((), _inputs(), 2024, 5)
        assert future[0].id

    def test_salary_applies_only_to_its_month(self):
        future = upsert_calculated_salary((_rent(),), _inputs(), 2024, 5, item_id="s1")

        may = project(future, {}, 2024, 5, today=date(2024, 4, 1))
        june = project(future, {}, 2024, 6, today=date(2024, 4, 1))

        assert may.income == Decimal("39460")
        assert june.income == Decimal("0")

    def test_stored_shape(self):
        future = upsert_calculated_salary((), _inputs(), 2024, 5, item_id="s1")
        data = future[0].model_dump(by_alias=True, mode="json")

        assert data["startDate"] == "2024-05-01"
        assert data["calculationDetails"]["unpaid"] == 2
        assert data["calculationDetails"]["totalHours"] == 208.0

    def test_no_salary_raises(self):
        with pytest.raises(SalaryCalculationError):
            upsert_calculated_salary((), _inputs(base=Decimal("0")), 2024, 5)

    def test_non_positive_net_raises(self):
        inputs = _inputs(base=Decimal("3000"), unpaid_days=30, total_hours=Decimal("0"), kpi=Decimal("0"))

        with pytest.raises(SalaryCalculationError) as exc_info:
            upsert_calculated_salary((_rent(),), inputs, 2024, 5)

        assert exc_info.value.month_key == "2024-05"
        assert isinstance(exc_info.value, FinflowError)
