"""Realtime event data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class EventKind(StrEnum):
    """Pipeline stage (or connection lifecycle step) an event describes."""

    VALIDATION = "validation"
    WORKFLOW = "workflow"
    MEMORY_UPDATE = "memory_update"
    COMPLETED = "completed"
    CONNECTED = "connected"


class EventStatus(StrEnum):
    """Progress status carried by an event."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.ERROR)


class Severity(StrEnum):
    """Severity assigned to a submitted error message."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Event:
    """One state transition broadcast on the EventBus.

    Immutable once created.  ``id`` plus ``kind`` identify a pipeline-stage
    occurrence, but nothing deduplicates on them: publishing the same id
    twice delivers two events.
    """

    id: str
    kind: EventKind
    message: str
    status: EventStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    payload: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        """Render the event in its JSON wire shape.

        Field names are fixed: ``{id, type, message, timestamp, status, data?}``.
        """
        wire: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }
        if self.payload is not None:
            wire["data"] = self.payload
        return wire
