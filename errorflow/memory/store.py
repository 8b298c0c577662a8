"""Process-wide aggregate of processed errors.

MemoryState  -- Immutable value: counters, recent workflows, tallies.
MemoryStore  -- Holder of the current MemoryState.  Every write replaces
                the whole value in one assignment, so readers never see a
                half-applied update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from errorflow.models.analysis import WorkflowRecord

_log = structlog.get_logger(component="memory.store")

WORKFLOW_HISTORY_LIMIT = 10
LAST_PROCESSED_MAX_CHARS = 100


@dataclass(frozen=True)
class MemoryStatistics:
    """Occurrence tallies keyed by classification label and by severity."""

    error_types: dict[str, int] = field(default_factory=dict)
    severity_count: dict[str, int] = field(default_factory=dict)
    average_processing_time_ms: float = 0.0


@dataclass(frozen=True)
class MemoryState:
    """Snapshot value of the shared memory.  Never mutated in place."""

    total_errors: int = 0
    last_processed: str | None = None
    workflows: tuple[WorkflowRecord, ...] = ()
    statistics: MemoryStatistics = field(default_factory=MemoryStatistics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "last_processed": self.last_processed,
            "workflows": [w.to_dict() for w in self.workflows],
            "statistics": {
                "error_types": dict(self.statistics.error_types),
                "severity_count": dict(self.statistics.severity_count),
                "average_processing_time_ms": round(self.statistics.average_processing_time_ms, 2),
            },
        }


class MemoryStore:
    """Owner of the current MemoryState.

    Created once by the application bootstrap and handed to the pipeline and
    the API.  Only ``commit`` (called by the pipeline) and ``clear`` write.
    """

    def __init__(self) -> None:
        self._state = MemoryState()

    @property
    def state(self) -> MemoryState:
        return self._state

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-ready copy of the full state."""
        return self._state.to_dict()

    def commit(self, record: WorkflowRecord, error_text: str, duration_ms: float = 0.0) -> MemoryState:
        """Fold one completed workflow into the aggregate.

        Builds the next state from the current one, then swaps it in.
        Returns the new state.
        """
        current = self._state
        total = current.total_errors + 1

        error_types = dict(current.statistics.error_types)
        error_types[record.result.error_type] = error_types.get(record.result.error_type, 0) + 1

        severity_count = dict(current.statistics.severity_count)
        severity = str(record.result.severity)
        severity_count[severity] = severity_count.get(severity, 0) + 1

        prev_avg = current.statistics.average_processing_time_ms
        average = prev_avg + (duration_ms - prev_avg) / total

        self._state = MemoryState(
            total_errors=total,
            last_processed=error_text[:LAST_PROCESSED_MAX_CHARS],
            workflows=(record, *current.workflows)[:WORKFLOW_HISTORY_LIMIT],
            statistics=MemoryStatistics(
                error_types=error_types,
                severity_count=severity_count,
                average_processing_time_ms=average,
            ),
        )
        _log.debug("memory_committed", workflow_id=record.id, total_errors=total)
        return self._state

    def clear(self) -> dict[str, Any]:
        """Reset every field to its initial zero value and return the snapshot."""
        self._state = MemoryState()
        _log.info("memory_cleared")
        return self.snapshot()

    def summary(self) -> dict[str, Any]:
        """Headline figures derived from the current state."""
        state = self._state
        top_error_type = "None"
        if state.statistics.error_types:
            top_error_type = max(state.statistics.error_types.items(), key=lambda kv: kv[1])[0]
        return {
            "total_errors": state.total_errors,
            "last_processed": state.last_processed,
            "recent_workflows": len(state.workflows),
            "top_error_type": top_error_type,
        }
