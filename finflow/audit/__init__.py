"""Audit logging package."""

from finflow.audit.logger import AuditLogger, configure_logging, create_correlation_id
from finflow.audit.sink import AuditSink, InMemoryAuditSink

__all__ = [
    "AuditLogger",
    "AuditSink",
    "InMemoryAuditSink",
    "configure_logging",
    "create_correlation_id",
]
