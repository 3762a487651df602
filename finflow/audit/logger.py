"""
Audit Logger

DESIGN DECISION: Every ledger rebuild, projection and loan change made
through the flow is logged. This provides:
1. Traceability of displayed numbers
2. Debugging capability when records were skipped or coerced
3. A history of loan status transitions

The audit logger:
- Is synchronous, like the engine it sits next to
- Gracefully handles failures (a broken sink never breaks a recompute)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finflow.audit.sink import AuditSink
from finflow.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route finflow logs to stderr at the given level.

    structlog hands records to the stdlib logger named after each
    module, so setting the level on the package logger covers them all.
    """
    package_logger = logging.getLogger("finflow")
    package_logger.setLevel(level.upper())
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditSink (for persistence and user visibility)
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Destination for events.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("finflow.audit")

    @property
    def sink(self) -> Optional[AuditSink]:
        return self._sink

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink is not None:
            try:
                return self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_ledger_built(
        self,
        month_count: int,
        first_month: Optional[str],
        last_month: Optional[str],
        closing_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ledger_built(
            month_count=month_count,
            first_month=first_month,
            last_month=last_month,
            closing_balance=closing_balance,
            correlation_id=correlation_id,
        ))

    def log_negative_balance_floored(
        self,
        month_key: str,
        ending_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.negative_balance_floored(
            month_key=month_key,
            ending_balance=ending_balance,
            correlation_id=correlation_id,
        ))

    def log_projection_computed(
        self,
        month_key: str,
        balance: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.projection_computed(
            month_key=month_key,
            balance=balance,
            source=source,
            correlation_id=correlation_id,
        ))

    def log_loan_payment_added(
        self,
        loan_id: str,
        payment_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.loan_payment_added(
            loan_id=loan_id,
            payment_id=payment_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_loan_status_changed(
        self,
        loan_id: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.loan_status_changed(
            loan_id=loan_id,
            old_status=old_status,
            new_status=new_status,
            correlation_id=correlation_id,
        ))

    def log_loan_overdue(
        self,
        loan_id: str,
        person: str,
        due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.loan_overdue_detected(
            loan_id=loan_id,
            person=person,
            due_date=due_date,
            correlation_id=correlation_id,
        ))

    def log_snapshot_normalized(
        self,
        transaction_count: int,
        future_count: int,
        loan_count: int,
        issue_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.snapshot_normalized(
            transaction_count=transaction_count,
            future_count=future_count,
            loan_count=loan_count,
            issue_count=issue_count,
            correlation_id=correlation_id,
        ))

    def log_date_fallback(
        self,
        transaction_id: str,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.date_fallback_applied(
            transaction_id=transaction_id,
            month_key=month_key,
            correlation_id=correlation_id,
        ))

    def log_record_skipped(
        self,
        record_type: str,
        record_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_skipped(
            record_type=record_type,
            record_id=record_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a recompute (one state change in the UI).
    Pass it through all subsequent operations.
    """
    return uuid4()
