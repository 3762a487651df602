"""
Snapshot Normalization

Turns the raw records handed over by storage or a backup file into a
BudgetSnapshot the engine can work with.

DESIGN DECISION: One bad record never sinks the snapshot. Every record
is validated on its own; records that fail are left out and reported
as ValidationIssues so the caller can show them to the user.

LEGACY SHAPES accepted on input:
- futureTransactions as {"income": [...], "expenses": [...]}
- loans as {"given": [...], "taken": [...]}
- "desc" instead of "description" on transactions
- a "paid" total on loans that predate the payment history

Stored values that are derived elsewhere are dropped on the way in:
loan status is recomputed on read and ledger ending balances are
re-derived from starting balance, income and expenses.
"""

from datetime import date
from decimal import InvalidOperation
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from finflow.audit import AuditLogger
from finflow.dates import current_month_key, is_month_key
from finflow.models import (
    FutureTransaction,
    Loan,
    MonthlyBudgetEntry,
    RolloverSettings,
    Transaction,
    TransactionType,
    ValidationIssue,
    to_money,
)
from finflow.models.loan import LoanType
from finflow.orchestrator import BudgetSnapshot


logger = structlog.get_logger(__name__)


class NormalizationResult(BaseModel):
    """A normalized snapshot and everything that had to be fixed or dropped."""
    model_config = ConfigDict(frozen=True)

    snapshot: BudgetSnapshot
    issues: tuple[ValidationIssue, ...] = ()
    currency: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return not self.issues

    @property
    def skipped_count(self) -> int:
        return sum(1 for issue in self.issues if issue.issue_type == "invalid_record")


def _first_error(exc: Exception) -> str:
    """Short, user-facing description of a validation failure."""
    if isinstance(exc, ValidationError):
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        return f"{location}: {error['msg']}" if location else error["msg"]
    return str(exc) or type(exc).__name__


def _record_id(record: Any) -> Optional[str]:
    if isinstance(record, Mapping) and record.get("id") not in (None, ""):
        return str(record["id"])
    return None


def _flatten_buckets(
    raw: Mapping[str, Any],
    buckets: Mapping[str, str],
    id_prefix: str,
) -> tuple[list[Any], list[str]]:
    """
    Flatten a legacy {"bucket": [...]} mapping into one list.

    Each record gets the bucket's type. Records without an id get a
    stable generated one. Buckets that do not hold a list are returned
    separately so the caller can report them.
    """
    records = []
    malformed = []
    for bucket, record_type in buckets.items():
        bucket_records = raw.get(bucket) or []
        if not isinstance(bucket_records, (list, tuple)):
            malformed.append(bucket)
            continue
        for index, record in enumerate(bucket_records):
            if isinstance(record, Mapping):
                record = {**record, "type": record_type}
                if record.get("id") in (None, ""):
                    record["id"] = f"{id_prefix}-{bucket}-{index}"
            records.append(record)
    return records, malformed


class SnapshotNormalizer:
    """
    Validates raw snapshot data record by record.

    Usage:
        result = SnapshotNormalizer().normalize(json.load(backup_file))
        view = flow.compute_view(result.snapshot)
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger

    def normalize(
        self,
        raw: Mapping[str, Any],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> NormalizationResult:
        """
        Build a BudgetSnapshot from raw records.

        Args:
            raw: Mapping with any of transactions, futureTransactions,
                loans, monthlyBudgets, settings and currency
            today: Reference day for the undated-transaction fallback
            correlation_id: Groups the audit events of this run

        Returns:
            NormalizationResult with the snapshot and all issues found
        """
        issues: list[ValidationIssue] = []

        transactions = self._transactions(raw.get("transactions"), issues, today, correlation_id)
        future = self._future_transactions(raw.get("futureTransactions"), issues, correlation_id)
        loans = self._loans(raw.get("loans"), issues, correlation_id)
        budgets = self._budgets(raw.get("monthlyBudgets"), issues, correlation_id)
        settings = self._settings(raw.get("settings"), issues)

        snapshot = BudgetSnapshot(
            transactions=tuple(transactions),
            settings=settings,
            future_transactions=tuple(future),
            loans=tuple(loans),
            monthly_budgets=budgets,
        )

        if self._audit_logger:
            self._audit_logger.log_snapshot_normalized(
                transaction_count=len(transactions),
                future_count=len(future),
                loan_count=len(loans),
                issue_count=len(issues),
                correlation_id=correlation_id,
            )

        currency = raw.get("currency")
        return NormalizationResult(
            snapshot=snapshot,
            issues=tuple(issues),
            currency=str(currency).strip().upper() if currency else None,
        )

    # =========================================================================
    # PER-RECORD VALIDATION
    # =========================================================================

    def _skip(
        self,
        issues: list[ValidationIssue],
        record_type: str,
        record: Any,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> None:
        record_id = _record_id(record)
        issues.append(ValidationIssue(
            record_type=record_type,
            record_id=record_id,
            issue_type="invalid_record",
            message=f"Skipped {record_type}: {reason}",
            severity="error",
        ))
        logger.warning("record_skipped", record_type=record_type, record_id=record_id, reason=reason)
        if self._audit_logger:
            self._audit_logger.log_record_skipped(
                record_type=record_type,
                record_id=record_id,
                reason=reason,
                correlation_id=correlation_id,
            )

    def _records(
        self,
        raw: Any,
        record_type: str,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID],
        buckets: Optional[Mapping[str, str]] = None,
        id_prefix: str = "imported",
    ) -> list[Any]:
        """
        Raw records of one collection.

        A collection that is not a list, or a legacy bucket that does not
        hold one, is reported and contributes nothing.
        """
        if raw is None:
            return []
        if isinstance(raw, (list, tuple)):
            return list(raw)
        if buckets is not None and isinstance(raw, Mapping):
            records, malformed = _flatten_buckets(raw, buckets, id_prefix)
            for bucket in malformed:
                reason = f"{bucket}: expected a list, got {type(raw[bucket]).__name__}"
                self._skip(issues, record_type, None, reason, correlation_id)
            return records
        self._skip(issues, record_type, None, f"expected a list, got {type(raw).__name__}", correlation_id)
        return []

    def _transactions(
        self,
        raw: Any,
        issues: list[ValidationIssue],
        today: Optional[date],
        correlation_id: Optional[UUID],
    ) -> list[Transaction]:
        transactions = []
        records = self._records(raw, "transaction", issues, correlation_id)
        for index, record in enumerate(records):
            if isinstance(record, Mapping) and record.get("id") in (None, ""):
                record = {**record, "id": f"imported-{index}"}
            try:
                tx = Transaction.model_validate(record)
            except ValidationError as e:
                self._skip(issues, "transaction", record, _first_error(e), correlation_id)
                continue

            if tx.date is None:
                fallback = current_month_key(today)
                issues.append(ValidationIssue(
                    record_type="transaction",
                    record_id=tx.id,
                    issue_type="date_fallback",
                    message=f"No readable date; booked into {fallback}",
                    severity="warning",
                ))
                if self._audit_logger:
                    self._audit_logger.log_date_fallback(
                        transaction_id=tx.id,
                        month_key=fallback,
                        correlation_id=correlation_id,
                    )
            transactions.append(tx)
        return transactions

    def _future_transactions(
        self,
        raw: Any,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID],
    ) -> list[FutureTransaction]:
        records = self._records(
            raw,
            "future_transaction",
            issues,
            correlation_id,
            buckets={"income": TransactionType.INCOME.value, "expenses": TransactionType.EXPENSE.value},
            id_prefix="imported-ft",
        )
        future = []
        for record in records:
            try:
                future.append(FutureTransaction.model_validate(record))
            except ValidationError as e:
                self._skip(issues, "future_transaction", record, _first_error(e), correlation_id)
        return future

    def _loans(
        self,
        raw: Any,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID],
    ) -> list[Loan]:
        records = self._records(
            raw,
            "loan",
            issues,
            correlation_id,
            buckets={"given": LoanType.GIVEN.value, "taken": LoanType.TAKEN.value},
            id_prefix="imported-loan",
        )
        loans = []
        for record in records:
            if isinstance(record, Mapping):
                record = self._loan_record(record)
            try:
                loans.append(Loan.model_validate(record))
            except ValidationError as e:
                self._skip(issues, "loan", record, _first_error(e), correlation_id)
        return loans

    @staticmethod
    def _loan_record(record: Mapping[str, Any]) -> dict[str, Any]:
        """Drop the stored status and turn a legacy paid total into a payment."""
        data = {key: value for key, value in record.items() if key not in ("status", "asOf", "as_of")}
        paid = data.pop("paid", None)
        if paid and not data.get("payments"):
            data["payments"] = [{
                "id": f"{data.get('id')}-paid",
                "date": data.get("date"),
                "amount": paid,
            }]
        return data

    def _budgets(
        self,
        raw: Any,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID],
    ) -> dict[str, MonthlyBudgetEntry]:
        budgets: dict[str, MonthlyBudgetEntry] = {}
        if raw is None:
            return budgets
        if not isinstance(raw, Mapping):
            self._skip(issues, "budget", None, f"expected an object, got {type(raw).__name__}", correlation_id)
            return budgets
        for key in sorted(raw, key=str):
            record = raw[key]
            if not is_month_key(key):
                issues.append(ValidationIssue(
                    record_type="budget",
                    record_id=str(key),
                    issue_type="invalid_month_key",
                    message=f"Ignored ledger month {key!r} (expected YYYY-MM)",
                    severity="warning",
                ))
                continue
            if not isinstance(record, Mapping):
                self._skip(issues, "budget", {"id": key}, "not an object", correlation_id)
                continue
            try:
                budgets[key] = MonthlyBudgetEntry.compute(
                    starting_balance=to_money(record.get("startingBalance") or 0),
                    income=to_money(record.get("income") or 0),
                    expenses=to_money(record.get("expenses") or 0),
                    auto_rollover=record.get("autoRollover", True),
                    allow_negative=record.get("allowNegative", False),
                )
            except (ValueError, InvalidOperation, TypeError) as e:
                self._skip(issues, "budget", {"id": key}, _first_error(e), correlation_id)
        return budgets

    @staticmethod
    def _settings(raw: Any, issues: list[ValidationIssue]) -> RolloverSettings:
        if not raw:
            return RolloverSettings()
        try:
            return RolloverSettings.model_validate(raw)
        except ValidationError as e:
            issues.append(ValidationIssue(
                record_type="settings",
                issue_type="invalid_record",
                message=f"Rollover settings ignored: {_first_error(e)}",
                severity="warning",
            ))
            return RolloverSettings()
