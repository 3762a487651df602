"""
Audit Models for finflow

Every ledger rebuild, projection and loan status change is recorded
as an audit event. This provides:
1. Traceability of how a displayed balance was produced
2. Debugging information when records had to be skipped or coerced
3. A history of loan status transitions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each engine operation has its own event type.
    """
    # Snapshot intake
    SNAPSHOT_NORMALIZED = "snapshot_normalized"
    RECORD_SKIPPED = "record_skipped"
    DATE_FALLBACK_APPLIED = "date_fallback_applied"

    # Ledger
    LEDGER_BUILT = "ledger_built"
    NEGATIVE_BALANCE_FLOORED = "negative_balance_floored"

    # Projection
    PROJECTION_COMPUTED = "projection_computed"

    # Loans
    LOAN_PAYMENT_ADDED = "loan_payment_added"
    LOAN_STATUS_CHANGED = "loan_status_changed"
    LOAN_OVERDUE_DETECTED = "loan_overdue_detected"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant engine run creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'ledger', 'loan', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one recompute)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.ledger_built(month_count, first, last, cid)
        event = AuditEventBuilder.loan_status_changed(loan_id, old, new, cid)
    """

    @staticmethod
    def snapshot_normalized(
        transaction_count: int,
        future_count: int,
        loan_count: int,
        issue_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_NORMALIZED,
            severity=AuditSeverity.WARNING if issue_count else AuditSeverity.INFO,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=(
                f"Snapshot normalized: {transaction_count} transactions, "
                f"{future_count} planned items, {loan_count} loans"
            ),
            details={
                "transactions": transaction_count,
                "future_transactions": future_count,
                "loans": loan_count,
                "issues": issue_count,
            },
        )

    @staticmethod
    def record_skipped(
        record_type: str,
        record_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type=record_type,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Skipped invalid {record_type}",
            error_message=reason,
        )

    @staticmethod
    def date_fallback_applied(
        transaction_id: str,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATE_FALLBACK_APPLIED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction without a readable date booked into {month_key}",
            details={"month_key": month_key},
        )

    @staticmethod
    def ledger_built(
        month_count: int,
        first_month: Optional[str],
        last_month: Optional[str],
        closing_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_BUILT,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger built with {month_count} months",
            details={
                "months": month_count,
                "first_month": first_month,
                "last_month": last_month,
                "closing_balance": closing_balance,
            },
        )

    @staticmethod
    def negative_balance_floored(
        month_key: str,
        ending_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NEGATIVE_BALANCE_FLOORED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            entity_id=month_key,
            correlation_id=correlation_id,
            description=f"Negative balance of {month_key} not carried forward",
            details={"ending_balance": ending_balance},
        )

    @staticmethod
    def projection_computed(
        month_key: str,
        balance: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROJECTION_COMPUTED,
            entity_type="projection",
            entity_id=month_key,
            correlation_id=correlation_id,
            description=f"Projected balance for {month_key}: {balance}",
            details={
                "balance": balance,
                "source": source,
            },
        )

    @staticmethod
    def loan_payment_added(
        loan_id: str,
        payment_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_PAYMENT_ADDED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} recorded",
            details={
                "payment_id": payment_id,
                "amount": amount,
            },
        )

    @staticmethod
    def loan_status_changed(
        loan_id: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_STATUS_CHANGED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Loan status changed: {old_status} -> {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
            },
        )

    @staticmethod
    def loan_overdue_detected(
        loan_id: str,
        person: str,
        due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_OVERDUE_DETECTED,
            severity=AuditSeverity.WARNING,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Loan with {person} is overdue",
            details={"due_date": due_date},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
