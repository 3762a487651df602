"""
Loan Ledger

Derives a loan's status from its payments and due date, and applies
payments by returning a new Loan value.

STATUS PRIORITY (first match wins):
1. completed       - payments cover the full amount
2. overdue         - a due date is set and is before today
3. partially_paid  - something has been repaid
4. pending         - nothing repaid, not overdue

A fully repaid loan is completed even when its due date has passed.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

import structlog

from finflow.dates import today_or
from finflow.errors import LoanPaymentError
from finflow.models.ledger import ZERO
from finflow.models.loan import Loan, LoanPayment, LoanStatus, LoanType


logger = structlog.get_logger(__name__)


class DebtSummary(NamedTuple):
    """Outstanding amounts across all loans."""
    total_given: Decimal   # Still owed to the user
    total_taken: Decimal   # Still owed by the user
    net_position: Decimal  # given - taken


def paid_amount(loan: Loan) -> Decimal:
    return sum((payment.amount for payment in loan.payments), ZERO)


def remaining_amount(loan: Loan) -> Decimal:
    """Amount still outstanding; never negative for overpaid loans."""
    return max(loan.amount - paid_amount(loan), ZERO)


def derive_status(loan: Loan, today: Optional[date] = None) -> LoanStatus:
    paid = paid_amount(loan)

    if paid >= loan.amount:
        return LoanStatus.COMPLETED

    if loan.due_date is not None and loan.due_date < today_or(today):
        return LoanStatus.OVERDUE

    if paid > 0:
        return LoanStatus.PARTIALLY_PAID

    return LoanStatus.PENDING


def with_reference_day(loan: Loan, today: Optional[date]) -> Loan:
    """The same loan with its status judged against `today`."""
    return loan.model_copy(update={"as_of": today})


def _rebuild(loan: Loan, **changes) -> Loan:
    """New Loan with `changes` applied, validated like fresh input."""
    data = loan.model_dump(exclude={"status"})
    data["as_of"] = loan.as_of
    data.update(changes)
    return Loan.model_validate(data)


def _newest_first(payments: Iterable[LoanPayment]) -> tuple[LoanPayment, ...]:
    return tuple(sorted(payments, key=lambda p: p.date, reverse=True))


def add_payment(loan: Loan, payment: LoanPayment) -> Loan:
    """
    Record a repayment.

    Returns a new Loan with the payment added and payments sorted
    newest-first. The status of the returned loan reflects the payment.

    Raises:
        LoanPaymentError: If the loan already has a payment with this id
    """
    if any(existing.id == payment.id for existing in loan.payments):
        raise LoanPaymentError(loan.id, f"duplicate payment id {payment.id}")

    updated = _rebuild(loan, payments=_newest_first((*loan.payments, payment)))
    logger.debug(
        "loan_payment_added",
        loan_id=loan.id,
        payment_id=payment.id,
        status=updated.status.value,
    )
    return updated


def remove_payment(loan: Loan, payment_id: str) -> Loan:
    """Drop a payment by id. Raises LoanPaymentError if it is not there."""
    remaining = tuple(p for p in loan.payments if p.id != payment_id)
    if len(remaining) == len(loan.payments):
        raise LoanPaymentError(loan.id, f"no payment with id {payment_id}")
    return _rebuild(loan, payments=remaining)


def update_due_date(loan: Loan, due_date: Optional[date]) -> Loan:
    return _rebuild(loan, due_date=due_date)


def summarize_loans(loans: Iterable[Loan]) -> DebtSummary:
    total_given = ZERO
    total_taken = ZERO
    for loan in loans:
        outstanding = remaining_amount(loan)
        if loan.type == LoanType.GIVEN:
            total_given += outstanding
        else:
            total_taken += outstanding
    return DebtSummary(
        total_given=total_given,
        total_taken=total_taken,
        net_position=total_given - total_taken,
    )


def overdue_loans(loans: Iterable[Loan], today: Optional[date] = None) -> list[Loan]:
    """Loans whose derived status is overdue, earliest due date first."""
    overdue = [loan for loan in loans if derive_status(loan, today) == LoanStatus.OVERDUE]
    overdue.sort(key=lambda loan: loan.due_date)
    return overdue
