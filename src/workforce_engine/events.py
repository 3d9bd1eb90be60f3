"""Domain events published after a state change has been committed.

Delivery (email, push, webhooks) belongs to whoever consumes the sink; the
engine only hands events over.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Protocol

from .core.exceptions import CollaboratorError
from .database.connection import DatabaseConnection
from .database.mysql_base import db_cursor

logger = logging.getLogger(__name__)

ATTENDANCE_OVERTIME_DETECTED = "attendance.overtime_detected"
LEAVE_REQUESTED = "leave.requested"
LEAVE_APPROVED = "leave.approved"
LEAVE_REJECTED = "leave.rejected"
LEAVE_CANCELLED = "leave.cancelled"
PAYROLL_GENERATED = "payroll.generated"
PAYROLL_SUBMITTED = "payroll.submitted"
PAYROLL_APPROVED = "payroll.approved"
PAYROLL_PAID = "payroll.paid"


@dataclass(frozen=True)
class DomainEvent:
    name: str
    entity_id: str
    occurred_at: datetime
    payload: dict = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.event_id,
            "name": self.name,
            "entityId": self.entity_id,
            "occurredAt": self.occurred_at.isoformat(),
            "payload": self.payload,
        }


class EventSink(Protocol):
    def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError


class LoggingEventSink:
    def __init__(self, level: int = logging.INFO):
        self._level = level

    def publish(self, event: DomainEvent) -> None:
        logger.log(self._level, "event %s entity=%s payload=%s", event.name, event.entity_id, event.payload)


class MySQLEventOutbox:
    """Appends events to the domain_events table for an external relay to deliver."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def publish(self, event: DomainEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO domain_events(event_id, name, entity_id, occurred_at, payload)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    event.event_id,
                    event.name,
                    str(event.entity_id),
                    event.occurred_at,
                    json.dumps(event.payload, default=str),
                ),
            )


class CompositeEventSink:
    """Fan out to several sinks; every sink is tried even if an earlier one fails."""

    def __init__(self, sinks: Iterable[EventSink]):
        self._sinks = list(sinks)

    def publish(self, event: DomainEvent) -> None:
        failed = 0
        for sink in self._sinks:
            try:
                sink.publish(event)
            except Exception:
                failed += 1
                logger.exception("Event sink %s failed for %s", type(sink).__name__, event.name)
        if failed:
            raise CollaboratorError(f"{failed} event sink(s) failed for {event.name}")
