"""Tests for turning raw storage records into a snapshot."""

import pytest
from datetime import date
from decimal import Decimal

from finflow.audit import AuditLogger, InMemoryAuditSink
from finflow.models import AuditEventType, Frequency, LoanStatus, LoanType, TransactionType
from finflow.validation import SnapshotNormalizer


TODAY = date(2024, 3, 10)


def _backup():
    return {
        "transactions": [
            {"id": 1706000000000, "date": "2024-01-10", "type": "income",
             "category": "Salary", "desc": "January pay", "amount": 1000},
            {"id": "2", "date": "2024-01-15", "type": "expense",
             "category": "Food", "description": "Groceries", "amount": 400},
        ],
        "futureTransactions": [
            {"id": "f1", "type": "expense", "description": "Rent", "amount": 300,
             "frequency": "monthly", "startDate": "2024-01-01"},
        ],
        "loans": [
            {"id": "l1", "type": "given", "person": "Ali", "amount": 500,
             "date": "2024-01-01", "dueDate": "2024-06-01", "payments": [], "status": "completed"},
        ],
        "monthlyBudgets": {
            "2024-01": {"startingBalance": 250, "income": 1000, "expenses": 400,
                        "endingBalance": 999999, "autoRollover": True, "allowNegative": False},
        },
        "settings": {"autoRollover": True, "allowNegativeRollover": True},
        "currency": "pkr",
    }


class TestCleanSnapshot:

    def test_records_are_converted(self):
        result = SnapshotNormalizer().normalize(_backup(), today=TODAY)
        snapshot = result.snapshot

        assert result.is_clean
        assert result.currency == "PKR"
        assert [tx.id for tx in snapshot.transactions] == ["1706000000000", "2"]
        assert snapshot.transactions[0].description == "January pay"
        assert snapshot.future_transactions[0].frequency == Frequency.MONTHLY
        assert snapshot.settings.allow_negative_rollover is True

    def test_stored_loan_status_is_discarded(self):
        result = SnapshotNormalizer().normalize(_backup(), today=TODAY)
        loan = result.snapshot.loans[0]
        assert loan.status != LoanStatus.COMPLETED
        assert loan.payments == ()

    def test_stored_ending_balance_is_rederived(self):
        result = SnapshotNormalizer().normalize(_backup(), today=TODAY)
        entry = result.snapshot.monthly_budgets["2024-01"]
        assert entry.starting_balance == Decimal("250")
        assert entry.ending_balance == Decimal("850")

    def test_empty_input(self):
        result = SnapshotNormalizer().normalize({}, today=TODAY)
        assert result.is_clean
        assert result.snapshot.transactions == ()
        assert result.snapshot.monthly_budgets == {}
        assert result.currency is None


class TestLegacyShapes:

    def test_nested_future_transactions(self):
        raw = {
            "futureTransactions": {
                "income": [{"description": "Salary", "amount": 1000,
                            "frequency": "monthly", "startDate": "2024-01-01"}],
                "expenses": [{"id": "x", "type": "income", "description": "Gym", "amount": 40,
                              "frequency": "monthly", "startDate": "2024-01-01"}],
            }
        }
        future = SnapshotNormalizer().normalize(raw, today=TODAY).snapshot.future_transactions

        assert [item.type for item in future] == [TransactionType.INCOME, TransactionType.EXPENSE]
        assert future[0].id == "imported-ft-income-0"
        assert future[1].id == "x"

    def test_nested_loans(self):
        raw = {
            "loans": {
                "given": [{"person": "Ali", "amount": 100, "date": "2024-01-01"}],
                "taken": [{"person": "Sara", "amount": 200, "date": "2024-01-02"}],
            }
        }
        loans = SnapshotNormalizer().normalize(raw, today=TODAY).snapshot.loans

        assert [loan.type for loan in loans] == [LoanType.GIVEN, LoanType.TAKEN]
        assert [loan.id for loan in loans] == ["imported-loan-given-0", "imported-loan-taken-0"]

    def test_paid_total_becomes_payment(self):
        raw = {
            "loans": [{"id": "l1", "type": "taken", "person": "Sara", "amount": 200,
                       "date": "2024-01-02", "paid": 50}],
        }
        loan = SnapshotNormalizer().normalize(raw, today=TODAY).snapshot.loans[0]

        assert len(loan.payments) == 1
        assert loan.payments[0].amount == Decimal("50")
        assert loan.status == LoanStatus.PARTIALLY_PAID

    def test_transactions_without_id_get_one(self):
        raw = {"transactions": [{"date": "2024-02-01", "type": "expense", "amount": 5}]}
        snapshot = SnapshotNormalizer().normalize(raw, today=TODAY).snapshot
        assert snapshot.transactions[0].id == "imported-0"


class TestInvalidRecords:

    def test_invalid_records_are_skipped_and_reported(self):
        raw = _backup()
        raw["transactions"].append({"id": "bad", "date": "2024-01-20", "type": "expense", "amount": -5})
        raw["futureTransactions"].append({"id": "f2", "type": "expense", "amount": 10,
                                          "startDate": "2024-05-01", "endDate": "2024-01-01"})
        raw["loans"].append({"id": "l2", "type": "given", "person": "", "amount": 10, "date": "2024-01-01"})

        result = SnapshotNormalizer().normalize(raw, today=TODAY)

        assert len(result.snapshot.transactions) == 2
        assert len(result.snapshot.future_transactions) == 1
        assert len(result.snapshot.loans) == 1
        assert result.skipped_count == 3
        assert {issue.record_id for issue in result.issues} == {"bad", "f2", "l2"}
        assert all(issue.severity == "error" for issue in result.issues)

    def test_unreadable_date_falls_back_with_warning(self):
        raw = {"transactions": [{"id": "t1", "date": "someday", "type": "income", "amount": 10}]}

        result = SnapshotNormalizer().normalize(raw, today=TODAY)

        assert result.snapshot.transactions[0].date is None
        assert result.issues[0].issue_type == "date_fallback"
        assert "2024-03" in result.issues[0].message
        assert result.skipped_count == 0

    def test_malformed_budget_keys_and_entries(self):
        raw = {
            "monthlyBudgets": {
                "Jan 2024": {"startingBalance": 10},
                "2024-02": {"startingBalance": "lots"},
                "2024-03": "nonsense",
                "2024-04": {"startingBalance": "12.50"},
            }
        }

        result = SnapshotNormalizer().normalize(raw, today=TODAY)

        assert list(result.snapshot.monthly_budgets) == ["2024-04"]
        assert result.snapshot.monthly_budgets["2024-04"].starting_balance == Decimal("12.50")
        issue_types = sorted(issue.issue_type for issue in result.issues)
        assert issue_types == ["invalid_month_key", "invalid_record", "invalid_record"]

    def test_invalid_settings_fall_back_to_defaults(self):
        result = SnapshotNormalizer().normalize({"settings": {"autoRollover": "maybe"}}, today=TODAY)
        assert result.snapshot.settings.auto_rollover is True
        assert result.issues[0].record_type == "settings"


class TestAuditIntegration:

    def test_normalization_is_audited(self):
        sink = InMemoryAuditSink()
        raw = {"transactions": [
            {"id": "t1", "date": "someday", "type": "income", "amount": 10},
            {"id": "t2", "type": "loan", "amount": 10},
        ]}

        SnapshotNormalizer(AuditLogger(sink)).normalize(raw, today=TODAY)

        event_types = [event.event_type for event in sink.list_events()]
        assert event_types == [
            AuditEventType.SNAPSHOT_NORMALIZED,
            AuditEventType.RECORD_SKIPPED,
            AuditEventType.DATE_FALLBACK_APPLIED,
        ]


class TestMalformedCollections:

    @pytest.mark.parametrize("field, record_type", [
        ("transactions", "transaction"),
        ("futureTransactions", "future_transaction"),
        ("loans", "loan"),
    ])
    def test_scalar_collection_is_reported(self, field, record_type):
        result = SnapshotNormalizer().normalize({field: 5}, today=TODAY)

        assert result.snapshot.transactions == ()
        assert result.snapshot.future_transactions == ()
        assert result.snapshot.loans == ()
        assert result.skipped_count == 1
        assert result.issues[0].record_type == record_type
        assert "expected a list, got int" in result.issues[0].message

    def test_string_collection_is_not_iterated(self):
        result = SnapshotNormalizer().normalize({"futureTransactions": "rent"}, today=TODAY)

        assert result.snapshot.future_transactions == ()
        assert result.skipped_count == 1

    def test_malformed_legacy_bucket_keeps_the_other_bucket(self):
        raw = {"loans": {"given": 5, "taken": [{"person": "Sara", "amount": 200, "date": "2024-01-02"}]}}

        result = SnapshotNormalizer().normalize(raw, today=TODAY)

        assert [loan.person for loan in result.snapshot.loans] == ["Sara"]
        assert result.issues[0].issue_type == "invalid_record"
        assert result.issues[0].message.startswith("Skipped loan: given")

    def test_budgets_must_be_an_object(self):
        result = SnapshotNormalizer().normalize({"monthlyBudgets": [1]}, today=TODAY)

        assert result.snapshot.monthly_budgets == {}
        assert result.issues[0].record_type == "budget"
        assert result.skipped_count == 1
