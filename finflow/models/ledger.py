"""
Ledger Models for finflow

These models describe the recorded side of the budget: individual
transactions and the per-month balance sheet built from them.

DESIGN DECISION: Every model is frozen. The engine receives a
snapshot of these values and returns new ones; nothing downstream
can edit a transaction or a ledger entry in place.

DESIGN DECISION: Money is Decimal. Sums of cents stay exact, which is
what lets the ending-balance invariant be checked with `==`.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from finflow.dates import parse_calendar_date


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Coerce a number to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a transaction or planned item."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single recorded income or expense.

    Immutable once created; an edit replaces the whole record.

    The date is a calendar date with no time. Text that cannot be read
    as a date is kept as None instead of rejecting the record; the
    ledger then books it into the current month.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        description="Transaction identifier"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Calendar date of the transaction"
    )
    type: TransactionType
    category: str = Field(
        default="",
        description="Category name (free text, may be empty)"
    )
    description: str = Field(
        default="",
        validation_alias=AliasChoices("description", "desc"),
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Storage hands over numeric timestamps as ids as well."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def lenient_date(cls, v: Any) -> Optional[dt.date]:
        """Parse the date leniently; unreadable values degrade to None."""
        parsed = parse_calendar_date(v)
        if parsed is None and v not in (None, ""):
            logger.warning("transaction_date_unparseable", value=str(v))
        return parsed

    @field_validator("category", mode="before")
    @classmethod
    def none_category(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negative."""
        return self.amount if self.is_income else -self.amount


# =============================================================================
# MONTHLY LEDGER
# =============================================================================

class RolloverSettings(BaseModel):
    """
    Rollover policy applied to newly created ledger months.

    auto_rollover: carry a month's ending balance into the next month.
    allow_negative_rollover: carry negative balances as-is instead of
    flooring them to zero.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    auto_rollover: bool = True
    allow_negative_rollover: bool = False


class MonthlyBudgetEntry(BaseModel):
    """
    Balance sheet for one calendar month.

    INVARIANT: ending_balance == starting_balance + income - expenses.
    Construction fails if the numbers do not add up; use compute()
    to derive the ending balance instead of supplying it.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    starting_balance: Decimal = ZERO
    income: Decimal = Field(default=ZERO, ge=0)
    expenses: Decimal = Field(default=ZERO, ge=0)
    ending_balance: Decimal = ZERO
    auto_rollover: bool = True
    allow_negative: bool = False

    @model_validator(mode="after")
    def check_balance_invariant(self) -> "MonthlyBudgetEntry":
        expected = self.starting_balance + self.income - self.expenses
        if self.ending_balance != expected:
            raise ValueError(
                f"Ending balance {self.ending_balance} does not equal "
                f"starting balance + income - expenses ({expected})"
            )
        return self

    @field_serializer(
        "starting_balance", "income", "expenses", "ending_balance",
        when_used="json",
    )
    def money_as_number(self, value: Decimal) -> float:
        return float(value)

    @classmethod
    def compute(
        cls,
        starting_balance: Decimal = ZERO,
        income: Decimal = ZERO,
        expenses: Decimal = ZERO,
        auto_rollover: bool = True,
        allow_negative: bool = False,
    ) -> "MonthlyBudgetEntry":
        """Build an entry with the ending balance derived from the rest."""
        starting_balance = to_money(starting_balance)
        income = to_money(income)
        expenses = to_money(expenses)
        return cls(
            starting_balance=starting_balance,
            income=income,
            expenses=expenses,
            ending_balance=starting_balance + income - expenses,
            auto_rollover=auto_rollover,
            allow_negative=allow_negative,
        )

    @classmethod
    def default(cls, settings: RolloverSettings) -> "MonthlyBudgetEntry":
        """Empty month carrying the given rollover policy."""
        return cls.compute(
            auto_rollover=settings.auto_rollover,
            allow_negative=settings.allow_negative_rollover,
        )

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


# Keyed by MonthKey ("YYYY-MM"); builders return keys in ascending order
MonthlyBudget = dict[str, MonthlyBudgetEntry]


def budgets_to_export(budgets: Mapping[str, MonthlyBudgetEntry]) -> dict[str, dict]:
    """
    Render a ledger as plain JSON-ready data.

    Keys are sorted and fields use the camelCase names of the export
    file format (startingBalance, endingBalance, ...).
    """
    return {
        key: budgets[key].model_dump(mode="json", by_alias=True)
        for key in sorted(budgets)
    }


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A problem found in one raw record while building a snapshot."""

    record_type: str = Field(
        ...,
        description="Kind of record (transaction, future_transaction, loan, budget)"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Identifier of the record if it had one"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g. 'invalid_record', 'date_fallback')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
