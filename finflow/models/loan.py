"""
Loan Models for finflow

CRITICAL: A loan's status is NOT stored. It is a pure function of the
amount, the payments and the due date, computed on every read. A
status value coming from storage is ignored on input, so a stale
persisted status can never disagree with the payment history.

The day "overdue" is judged against is `as_of` when set, else the
local calendar date. `as_of` is never serialized.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class LoanType(str, Enum):
    """Direction of a loan relative to the user."""
    GIVEN = "given"    # User lent money to someone
    TAKEN = "taken"    # User borrowed money from someone


class LoanStatus(str, Enum):
    """
    Lifecycle stage of a loan.

    Derived in priority order: completed, overdue, partially_paid, pending.
    """
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class LoanPayment(BaseModel):
    """A single repayment. Amount must be strictly positive."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    date: dt.date
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Repaid amount"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Loan(BaseModel):
    """
    Money lent to or borrowed from a person.

    Payments are kept newest-first for display. Status derivation only
    needs their sum, so order does not affect it.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    type: LoanType
    person: str = Field(
        ...,
        min_length=1,
        description="Borrower or lender"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Principal lent or borrowed"
    )
    date: dt.date = Field(
        ...,
        description="Date the money changed hands"
    )
    due_date: Optional[dt.date] = Field(
        default=None,
        description="Repayment due date, if agreed"
    )
    payments: tuple[LoanPayment, ...] = ()
    as_of: Optional[dt.date] = Field(
        default=None,
        exclude=True,
        description="Reference day for status; today if None"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date(cls, v: Any) -> Any:
        """Forms submit an empty string for 'no due date'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @computed_field
    @property
    def status(self) -> LoanStatus:
        # Imported here: the ledger module imports this one
        from finflow.loans.ledger import derive_status

        return derive_status(self, self.as_of)
