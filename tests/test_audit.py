"""Tests for the audit logger and sinks."""

import logging

from finflow.audit import (
    AuditLogger,
    AuditSink,
    InMemoryAuditSink,
    configure_logging,
    create_correlation_id,
)
from finflow.models import AuditEventBuilder, AuditEventType


class FailingSink(AuditSink):
    """Sink whose storage is unavailable."""

    def append_event(self, event):
        raise ConnectionError("storage offline")

    def list_events(self, event_type=None, entity_id=None, limit=100):
        return []


class TestInMemoryAuditSink:

    def test_events_are_listed_most_recent_first(self):
        sink = InMemoryAuditSink()
        sink.append_event(AuditEventBuilder.ledger_built(1, "2024-01", "2024-01", "0"))
        sink.append_event(AuditEventBuilder.projection_computed("2024-02", "10", "plan"))

        events = sink.list_events()

        assert len(sink) == 2
        assert [e.event_type for e in events] == [
            AuditEventType.PROJECTION_COMPUTED,
            AuditEventType.LEDGER_BUILT,
        ]

    def test_filters_and_limit(self):
        sink = InMemoryAuditSink()
        for loan_id in ("l1", "l2", "l1"):
            sink.append_event(AuditEventBuilder.loan_payment_added(loan_id, "p", "10"))
        sink.append_event(AuditEventBuilder.ledger_built(0, None, None, "0"))

        assert len(sink.list_events(event_type=AuditEventType.LOAN_PAYMENT_ADDED)) == 3
        assert len(sink.list_events(entity_id="l1")) == 2
        assert len(sink.list_events(limit=1)) == 1


class TestAuditLogger:

    def test_log_appends_to_sink(self):
        sink = InMemoryAuditSink()
        audit_logger = AuditLogger(sink)

        assert audit_logger.log(AuditEventBuilder.ledger_built(2, "2024-01", "2024-02", "5")) is True
        assert len(sink) == 1

    def test_log_without_sink(self):
        assert AuditLogger().log(AuditEventBuilder.ledger_built(0, None, None, "0")) is True

    def test_sink_failure_does_not_raise(self):
        audit_logger = AuditLogger(FailingSink())
        assert audit_logger.log(AuditEventBuilder.system_error("boom", "details")) is False

    def test_helpers_share_correlation_id(self):
        sink = InMemoryAuditSink()
        audit_logger = AuditLogger(sink)
        correlation_id = create_correlation_id()

        audit_logger.log_ledger_built(3, "2024-01", "2024-03", "100", correlation_id=correlation_id)
        audit_logger.log_negative_balance_floored("2024-02", "-5", correlation_id=correlation_id)
        audit_logger.log_loan_status_changed("l1", "pending", "completed", correlation_id=correlation_id)
        audit_logger.log_record_skipped("loan", "l9", "bad amount", correlation_id=correlation_id)
        audit_logger.log_date_fallback("t1", "2024-03", correlation_id=correlation_id)

        events = sink.list_events()
        assert len(events) == 5
        assert {e.correlation_id for e in events} == {correlation_id}
        assert events[0].event_type == AuditEventType.DATE_FALLBACK_APPLIED

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


class TestConfigureLogging:

    def test_sets_package_level(self):
        configure_logging("debug")
        assert logging.getLogger("finflow").level == logging.DEBUG

        configure_logging("WARNING")
        assert logging.getLogger("finflow").level == logging.WARNING
        assert len(logging.getLogger("finflow").handlers) == 1
