"""Loan status derivation and payment handling."""

from finflow.loans.ledger import (
    DebtSummary,
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

__all__ = [
    "DebtSummary",
    "add_payment",
    "derive_status",
    "overdue_loans",
    "paid_amount",
    "remaining_amount",
    "remove_payment",
    "summarize_loans",
    "update_due_date",
    "with_reference_day",
]
