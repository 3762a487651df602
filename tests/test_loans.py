"""Tests for loan status derivation and payments."""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from finflow.errors import FinflowError, LoanPaymentError
from finflow.loans import (
    add_payment,
    derive_status,
    overdue_loans,
    paid_amount,
    remaining_amount,
    remove_payment,
    summarize_loans,
    update_due_date,
    with_reference_day,
)
from finflow.models import Loan, LoanPayment, LoanStatus, LoanType


TODAY = date(2024, 6, 15)


def _loan(loan_id="l1", loan_type="given", amount="1000", due=None, payments=()):
    return Loan(
        id=loan_id,
        type=loan_type,
        person="Ali",
        amount=Decimal(amount),
        date=date(2024, 1, 1),
        due_date=due,
        payments=tuple(payments),
    )


def _payment(payment_id, amount, day=date(2024, 2, 1)):
    return LoanPayment(id=payment_id, date=day, amount=Decimal(amount))


class TestDeriveStatus:
    """Status priority: completed, overdue, partially paid, pending."""

    def test_pending(self):
        assert derive_status(_loan(), TODAY) == LoanStatus.PENDING

    def test_partially_paid(self):
        loan = _loan(payments=[_payment("p1", "300")])
        assert derive_status(loan, TODAY) == LoanStatus.PARTIALLY_PAID

    def test_completed(self):
        loan = _loan(payments=[_payment("p1", "600"), _payment("p2", "400")])
        assert derive_status(loan, TODAY) == LoanStatus.COMPLETED

    def test_overpaid_is_completed(self):
        loan = _loan(payments=[_payment("p1", "1200")])
        assert derive_status(loan, TODAY) == LoanStatus.COMPLETED
        assert remaining_amount(loan) == Decimal("0")

    def test_overdue(self):
        loan = _loan(due=date(2024, 6, 14))
        assert derive_status(loan, TODAY) == LoanStatus.OVERDUE

    def test_overdue_beats_partially_paid(self):
        loan = _loan(due=date(2024, 5, 1), payments=[_payment("p1", "300")])
        assert derive_status(loan, TODAY) == LoanStatus.OVERDUE

    def test_completed_beats_overdue(self):
        loan = _loan(due=date(2024, 5, 1), payments=[_payment("p1", "1000")])
        assert derive_status(loan, TODAY) == LoanStatus.COMPLETED

    def test_due_today_is_not_overdue(self):
        loan = _loan(due=TODAY)
        assert derive_status(loan, TODAY) == LoanStatus.PENDING


class TestReferenceDay:

    def test_status_is_judged_against_reference_day(self):
        loan = _loan(due=date(2030, 1, 1))

        assert with_reference_day(loan, date(2031, 1, 1)).status == LoanStatus.OVERDUE
        assert with_reference_day(loan, date(2029, 1, 1)).status == LoanStatus.PENDING

    def test_reference_day_survives_payments(self):
        loan = with_reference_day(_loan(due=date(2030, 1, 1)), date(2031, 1, 1))

        updated = add_payment(loan, _payment("p1", "100"))

        assert updated.as_of == date(2031, 1, 1)
        assert updated.status == LoanStatus.OVERDUE

    def test_reference_day_is_not_serialized(self):
        loan = with_reference_day(_loan(), TODAY)

        data = loan.model_dump(by_alias=True)

        assert "asOf" not in data
        assert data["status"] == "pending"


class TestPayments:

    def test_add_payment_returns_new_loan(self):
        loan = _loan()
        updated = add_payment(loan, _payment("p1", "400"))

        assert loan.payments == ()
        assert paid_amount(updated) == Decimal("400")
        assert remaining_amount(updated) == Decimal("600")
        assert derive_status(updated, TODAY) == LoanStatus.PARTIALLY_PAID

    def test_payments_are_newest_first(self):
        loan = _loan(payments=[_payment("p1", "100", day=date(2024, 2, 1))])
        loan = add_payment(loan, _payment("p2", "100", day=date(2024, 4, 1)))
        loan = add_payment(loan, _payment("p3", "100", day=date(2024, 3, 1)))

        assert [p.id for p in loan.payments] == ["p2", "p3", "p1"]

    def test_final_payment_completes_loan(self):
        loan = _loan(due=date(2024, 1, 31), payments=[_payment("p1", "700")])
        assert derive_status(loan, TODAY) == LoanStatus.OVERDUE

        updated = add_payment(loan, _payment("p2", "300"))
        assert derive_status(updated, TODAY) == LoanStatus.COMPLETED

    def test_duplicate_payment_id_is_rejected(self):
        loan = _loan(payments=[_payment("p1", "100")])
        with pytest.raises(LoanPaymentError) as exc_info:
            add_payment(loan, _payment("p1", "50"))
        assert exc_info.value.loan_id == "l1"
        assert isinstance(exc_info.value, FinflowError)

    def test_non_positive_payment_is_rejected(self):
        with pytest.raises(ValidationError):
            _payment("p1", "0")

    def test_remove_payment(self):
        loan = _loan(payments=[_payment("p1", "100"), _payment("p2", "200")])
        updated = remove_payment(loan, "p1")
        assert [p.id for p in updated.payments] == ["p2"]

    def test_remove_missing_payment(self):
        with pytest.raises(LoanPaymentError):
            remove_payment(_loan(), "nope")

    def test_update_due_date(self):
        loan = update_due_date(_loan(), date(2024, 6, 1))
        assert loan.due_date == date(2024, 6, 1)
        assert derive_status(loan, TODAY) == LoanStatus.OVERDUE

        cleared = update_due_date(loan, None)
        assert derive_status(cleared, TODAY) == LoanStatus.PENDING


class TestLoanSummary:

    def test_summary_uses_outstanding_amounts(self):
        loans = [
            _loan("g1", "given", "1000", payments=[_payment("p1", "250")]),
            _loan("g2", "given", "500"),
            _loan("t1", "taken", "800", payments=[_payment("p2", "800")]),
            _loan("t2", "taken", "300"),
        ]
        summary = summarize_loans(loans)

        assert summary.total_given == Decimal("1250")
        assert summary.total_taken == Decimal("300")
        assert summary.net_position == Decimal("950")

    def test_empty_summary(self):
        summary = summarize_loans([])
        assert summary.net_position == Decimal("0")

    def test_overdue_loans_sorted_by_due_date(self):
        loans = [
            _loan("a", due=date(2024, 6, 1)),
            _loan("b", due=date(2024, 3, 1)),
            _loan("c", due=date(2024, 7, 1)),
            _loan("d", due=date(2024, 1, 1), payments=[_payment("p1", "1000")]),
        ]
        assert [loan.id for loan in overdue_loans(loans, TODAY)] == ["b", "a"]

    def test_loan_type_enum(self):
        assert _loan(loan_type="taken").type == LoanType.TAKEN
