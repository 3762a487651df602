"""
Data Models Package

This package contains all Pydantic models used by finflow.
Every engine input and output conforms to these schemas.
"""

from finflow.models.ledger import (
    MonthlyBudget,
    MonthlyBudgetEntry,
    RolloverSettings,
    Transaction,
    TransactionType,
    ValidationIssue,
    budgets_to_export,
    to_money,
)
from finflow.models.planner import (
    Frequency,
    FutureTransaction,
    PlannedMonthGroup,
    PlannerMonth,
    PlannerSummary,
    ProjectedTotals,
    SalaryBreakdown,
    SalaryInputs,
)
from finflow.models.loan import (
    Loan,
    LoanPayment,
    LoanStatus,
    LoanType,
)
from finflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "MonthlyBudget",
    "MonthlyBudgetEntry",
    "RolloverSettings",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "budgets_to_export",
    "to_money",
    # Planner models
    "Frequency",
    "FutureTransaction",
    "PlannedMonthGroup",
    "PlannerMonth",
    "PlannerSummary",
    "ProjectedTotals",
    "SalaryBreakdown",
    "SalaryInputs",
    # Loan models
    "Loan",
    "LoanPayment",
    "LoanStatus",
    "LoanType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
