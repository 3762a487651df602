"""
Main Orchestrator for finflow

This module ties the engine components together and defines the
end-to-end recompute flow:

    snapshot -> ledger -> projection -> loans -> health -> LedgerView

DESIGN DECISION: The orchestrator enforces the boundaries:
- The engine only ever sees an immutable BudgetSnapshot
- All derived numbers are published together in one LedgerView, so a
  reader never sees a new ledger next to an old projection
- Every recompute is audited under one correlation id

Persistence, backup files and rendering are the caller's business.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from finflow.analytics import (
    HealthBreakdown,
    detect_anomalies,
    health_breakdown,
    health_score,
    savings_rate,
)
from finflow.audit import AuditLogger, InMemoryAuditSink, configure_logging, create_correlation_id
from finflow.config import get_settings
from finflow.dates import current_month_key, month_key, today_or
from finflow.errors import LoanPaymentError
from finflow.ledger import (
    build_ledger,
    closing_balance,
    floored_months,
    project,
    project_horizon,
    projection_source,
)
from finflow.loans import DebtSummary, add_payment, overdue_loans, summarize_loans, with_reference_day
from finflow.models import (
    FutureTransaction,
    Loan,
    LoanPayment,
    LoanStatus,
    MonthlyBudget,
    MonthlyBudgetEntry,
    PlannerMonth,
    ProjectedTotals,
    RolloverSettings,
    Transaction,
)


class BudgetSnapshot(BaseModel):
    """
    Everything the engine reads, captured at one point in time.

    Callers build a new snapshot after every change and hand it to
    LedgerFlow; nothing in the engine holds on to it.
    """
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    settings: RolloverSettings = Field(default_factory=RolloverSettings)
    future_transactions: tuple[FutureTransaction, ...] = ()
    loans: tuple[Loan, ...] = ()
    monthly_budgets: dict[str, MonthlyBudgetEntry] = Field(default_factory=dict)


class LedgerView(BaseModel):
    """
    Every derived number for one snapshot, published together.

    Loans are anchored to the view's reference day, so `loan.status`,
    `loan_statuses` and `overdue_loan_ids` always agree.
    """
    model_config = ConfigDict(frozen=True)

    month_key: str
    budgets: dict[str, MonthlyBudgetEntry]
    projection: ProjectedTotals
    loans: tuple[Loan, ...] = ()
    loan_statuses: dict[str, LoanStatus] = Field(default_factory=dict)
    debt_summary: DebtSummary
    overdue_loan_ids: tuple[str, ...] = ()
    health_score: int
    health: HealthBreakdown
    savings_rate: Decimal
    anomalies: tuple[Transaction, ...] = ()
    planner: tuple[PlannerMonth, ...] = ()


class LedgerFlow:
    """
    Orchestrates a full recompute.

    Flow:
    1. Rebuild  -> monthly ledger from transactions and stored budgets
    2. Project  -> totals for the month the user is looking at
    3. Loans    -> debt summary and overdue detection
    4. Health   -> savings rate, health scores and unusual expenses
    5. Plan     -> month-by-month planner rows (optional)

    Safe to call again on every change; each call is independent.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        horizon_months: int = 12,
        lookback_months: int = 3,
    ):
        self._audit_logger = audit_logger
        self._horizon_months = horizon_months
        self._lookback_months = lookback_months

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    def rebuild_ledger(
        self,
        snapshot: BudgetSnapshot,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyBudget:
        """Build the ledger for a snapshot and audit the result."""
        budgets = build_ledger(
            snapshot.transactions,
            existing_budgets=snapshot.monthly_budgets,
            settings=snapshot.settings,
            today=today,
        )

        if self._audit_logger:
            keys = sorted(budgets)
            self._audit_logger.log_ledger_built(
                month_count=len(keys),
                first_month=keys[0] if keys else None,
                last_month=keys[-1] if keys else None,
                closing_balance=str(closing_balance(budgets)),
                correlation_id=correlation_id,
            )
            for key in floored_months(budgets):
                self._audit_logger.log_negative_balance_floored(
                    month_key=key,
                    ending_balance=str(budgets[key].ending_balance),
                    correlation_id=correlation_id,
                )

        return budgets

    def project_month(
        self,
        snapshot: BudgetSnapshot,
        budgets: MonthlyBudget,
        year: int,
        month: int,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ProjectedTotals:
        projection = project(
            snapshot.future_transactions,
            budgets,
            year,
            month,
            today=today,
        )

        if self._audit_logger:
            self._audit_logger.log_projection_computed(
                month_key=month_key(year, month),
                balance=str(projection.balance),
                source=projection_source(budgets, year, month),
                correlation_id=correlation_id,
            )

        return projection

    def compute_view(
        self,
        snapshot: BudgetSnapshot,
        year: Optional[int] = None,
        month: Optional[int] = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
        include_planner: bool = False,
    ) -> LedgerView:
        """
        Run the whole engine over a snapshot.

        Args:
            snapshot: Inputs for this recompute
            year, month: Month to project (defaults to the current month)
            today: Reference day (defaults to today)
            correlation_id: Groups the audit events of this recompute
            include_planner: Also compute the month-by-month plan

        Returns:
            LedgerView with every derived number
        """
        correlation_id = correlation_id or create_correlation_id()
        ref = today_or(today)
        if year is None or month is None:
            year, month = ref.year, ref.month

        budgets = self.rebuild_ledger(snapshot, today=ref, correlation_id=correlation_id)
        projection = self.project_month(
            snapshot, budgets, year, month, today=ref, correlation_id=correlation_id,
        )

        loans = tuple(with_reference_day(loan, ref) for loan in snapshot.loans)
        loan_statuses = {loan.id: loan.status for loan in loans}
        overdue = overdue_loans(loans, today=ref)
        if self._audit_logger:
            for loan in overdue:
                self._audit_logger.log_loan_overdue(
                    loan_id=loan.id,
                    person=loan.person,
                    due_date=loan.due_date.isoformat(),
                    correlation_id=correlation_id,
                )

        planner: tuple[PlannerMonth, ...] = ()
        if include_planner:
            current = budgets.get(current_month_key(ref))
            start = current.ending_balance if current else closing_balance(budgets)
            planner = tuple(project_horizon(
                snapshot.future_transactions,
                start,
                months=self._horizon_months,
                today=ref,
            ))

        return LedgerView(
            month_key=month_key(year, month),
            budgets=budgets,
            projection=projection,
            loans=loans,
            loan_statuses=loan_statuses,
            debt_summary=summarize_loans(loans),
            overdue_loan_ids=tuple(loan.id for loan in overdue),
            health_score=health_score(
                snapshot.transactions, today=ref, lookback_months=self._lookback_months,
            ),
            health=health_breakdown(
                snapshot.transactions, budgets, today=ref, lookback_months=self._lookback_months,
            ),
            savings_rate=savings_rate(
                snapshot.transactions, today=ref, lookback_months=self._lookback_months,
            ),
            anomalies=tuple(detect_anomalies(snapshot.transactions, today=ref)),
            planner=planner,
        )

    def record_loan_payment(
        self,
        loan: Loan,
        payment: LoanPayment,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Loan:
        """
        Apply a payment and audit it.

        The returned loan's status is judged against `today`.
        A rejected payment is audited as a system error and re-raised.

        Raises:
            LoanPaymentError: If the payment id is already on the loan
        """
        correlation_id = correlation_id or create_correlation_id()
        loan = with_reference_day(loan, today_or(today))

        old_status = loan.status
        try:
            updated = add_payment(loan, payment)
        except LoanPaymentError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="loan_payment_rejected",
                    error_message=str(e),
                    details={"loan_id": loan.id, "payment_id": payment.id},
                    correlation_id=correlation_id,
                )
            raise
        new_status = updated.status

        if self._audit_logger:
            self._audit_logger.log_loan_payment_added(
                loan_id=loan.id,
                payment_id=payment.id,
                amount=str(payment.amount),
                correlation_id=correlation_id,
            )
            if new_status != old_status:
                self._audit_logger.log_loan_status_changed(
                    loan_id=loan.id,
                    old_status=old_status.value,
                    new_status=new_status.value,
                    correlation_id=correlation_id,
                )

        return updated


def create_app_components() -> tuple[LedgerFlow, AuditLogger, RolloverSettings]:
    """
    Factory function to create all application components.

    Reads settings, configures logging and wires an in-memory audit
    sink into the flow.

    Returns:
        (ledger_flow, audit_logger, default_rollover_settings)
    """
    settings = get_settings()
    configure_logging(settings.app.effective_log_level)

    audit_logger = AuditLogger(InMemoryAuditSink())
    planner = settings.planner

    ledger_flow = LedgerFlow(
        audit_logger=audit_logger,
        horizon_months=planner.horizon_months,
        lookback_months=planner.health_lookback_months,
    )

    return ledger_flow, audit_logger, settings.ledger.rollover()
