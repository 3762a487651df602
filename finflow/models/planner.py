"""
Planner Models for finflow

Planned (future or recurring) income and expenses, and the shapes the
projection engine returns for them.

DESIGN DECISION: Frequency is a closed enumeration. A raw frequency
string the engine does not know becomes Frequency.UNSUPPORTED, which
never applies to any month. The record survives, contributes nothing,
and the unknown value is logged rather than crashing the planner.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from finflow.models.ledger import TransactionType, ZERO


logger = structlog.get_logger(__name__)


class Frequency(str, Enum):
    """How often a planned item recurs."""
    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    UNSUPPORTED = "unsupported"  # Never applicable


class SalaryInputs(BaseModel):
    """What the salary calculator was given for one month."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    base: Decimal = Field(
        ...,
        ge=0,
        description="Monthly base salary"
    )
    days: int = Field(
        default=30,
        ge=1,
        le=31,
        description="Calendar days in the pay month"
    )
    unpaid_days: int = Field(
        default=0,
        ge=0,
        alias="unpaid",
        description="Days of unpaid leave"
    )
    total_hours: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Hours worked in the month"
    )
    kpi: Decimal = Field(
        default=ZERO,
        ge=0,
        description="KPI bonus"
    )

    @model_validator(mode="after")
    def validate_unpaid_days(self) -> "SalaryInputs":
        if self.unpaid_days > self.days:
            raise ValueError("Unpaid days cannot exceed days in the month")
        return self

    @field_serializer("base", "total_hours", "kpi", when_used="json")
    def money_as_number(self, value: Decimal) -> float:
        return float(value)


class FutureTransaction(BaseModel):
    """
    A planned income or expense with a recurrence rule.

    Created, edited and deleted by the user. The engine only reads it.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    type: TransactionType
    description: str = ""
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount applied in every matching month"
    )
    frequency: Frequency = Frequency.MONTHLY
    start_date: dt.date = Field(
        ...,
        description="First day the item can apply"
    )
    end_date: Optional[dt.date] = Field(
        default=None,
        description="Last day the item can apply (open-ended if None)"
    )
    category: Optional[str] = None
    calculation_details: Optional[SalaryInputs] = Field(
        default=None,
        description="Inputs of the salary calculation that produced this item"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("frequency", mode="before")
    @classmethod
    def coerce_unknown_frequency(cls, v: Any) -> Any:
        if isinstance(v, Frequency):
            return v
        try:
            return Frequency(str(v).strip().lower())
        except ValueError:
            logger.warning("unsupported_frequency", frequency=str(v))
            return Frequency.UNSUPPORTED

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        """Datetimes are reduced to their calendar date."""
        if isinstance(v, dt.datetime):
            return v.date()
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "FutureTransaction":
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


# =============================================================================
# PROJECTION RESULTS
# =============================================================================

class _MoneyModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ProjectedTotals(_MoneyModel):
    """Income, expenses and closing balance for one month."""

    income: Decimal = ZERO
    expenses: Decimal = ZERO
    balance: Decimal = ZERO

    @field_serializer("income", "expenses", "balance", when_used="json")
    def money_as_number(self, value: Decimal) -> float:
        return float(value)


class PlannerMonth(_MoneyModel):
    """One row of a month-by-month planner projection."""

    month_key: str
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    net: Decimal = ZERO
    balance: Decimal = ZERO

    @field_serializer("income", "expenses", "net", "balance", when_used="json")
    def money_as_number(self, value: Decimal) -> float:
        return float(value)


class SalaryBreakdown(_MoneyModel):
    """Result of the salary calculator for one month."""

    net: Decimal
    deduction: Decimal = ZERO
    overtime_bonus: Decimal = ZERO
    kpi_bonus: Decimal = ZERO
    hourly_rate: Decimal = ZERO
    overtime_hours: Decimal = ZERO

    @field_serializer(
        "net", "deduction", "overtime_bonus", "kpi_bonus", "hourly_rate", "overtime_hours",
        when_used="json",
    )
    def money_as_number(self, value: Decimal) -> float:
        return float(value)


class PlannerSummary(_MoneyModel):
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    ending_balance: Decimal = ZERO


class PlannedMonthGroup(BaseModel):
    """Planned items that apply to one month, income first."""
    model_config = ConfigDict(frozen=True)

    month_key: str
    transactions: tuple[FutureTransaction, ...] = ()
