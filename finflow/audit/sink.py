"""
Audit Sink Interface

DESIGN DECISION: Where audit events end up is the caller's business.
The logger only needs somewhere to append them. Persisting to browser
storage, a file or a spreadsheet is done by implementing this interface
outside the engine; the in-memory sink covers tests and short-lived
sessions.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finflow.models.audit import AuditEvent, AuditEventType


class AuditSink(ABC):
    """Append-only destination for audit events."""

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event.

        Returns:
            True if the event was stored
        """
        pass

    @abstractmethod
    def list_events(
        self,
        event_type: Optional[AuditEventType] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        List stored events, most recent first.

        Args:
            event_type: Filter by event type
            entity_id: Filter by entity
            limit: Maximum number of events to return
        """
        pass


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list. Nothing is ever removed."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def list_events(
        self,
        event_type: Optional[AuditEventType] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        matching = [
            event for event in reversed(self._events)
            if (event_type is None or event.event_type == event_type)
            and (entity_id is None or event.entity_id == entity_id)
        ]
        return matching[:limit]

    def __len__(self) -> int:
        return len(self._events)
