"""Multi-stage processing pipeline for submitted error messages.

Stages run in fixed order and each one publishes on the EventBus:

    validate  -> validation/processing   (validation/error on empty input)
    analyze   -> workflow/processing
    commit    -> memory_update/completed (payload: memory snapshot)
    finalize  -> completed/completed     (payload: workflow result)

The synchronous return value to the caller does not depend on anyone
being subscribed.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog

from errorflow.analysis.agent import ErrorAnalysisAgent
from errorflow.errors import PipelineError, ValidationError
from errorflow.memory.store import MemoryStore
from errorflow.models.analysis import WorkflowRecord, WorkflowResult
from errorflow.models.events import Event, EventKind, EventStatus
from errorflow.observability.metrics import pipeline_duration_seconds, submissions_total
from errorflow.realtime.bus import EventBus

_log = structlog.get_logger(component="pipeline.worker")

DEFAULT_STAGE_DELAY = 0.5


@dataclass
class SubmissionResult:
    """What the submitting caller gets back once all stages completed."""

    event_id: str
    workflow: WorkflowResult
    memory: dict[str, Any]
    agent: dict[str, Any]
    duration_ms: float = 0.0
    events_published: list[str] = field(default_factory=list)


def new_event_id() -> str:
    return f"evt_{uuid4().hex[:12]}"


class ProcessingPipeline:
    """Runs one submission through validate -> analyze -> commit -> finalize.

    Args:
        bus:         EventBus that receives one event per stage transition.
        memory:      Shared MemoryStore; written only by the commit stage.
        agent:       Analysis provider.  Treated as total: it absorbs its
                     own provider failures.
        stage_delay: Seconds to pause after the validate and analyze
                     announcements, so viewers can follow progress.
    """

    def __init__(
        self,
        bus: EventBus,
        memory: MemoryStore,
        agent: ErrorAnalysisAgent,
        stage_delay: float = DEFAULT_STAGE_DELAY,
    ) -> None:
        self._bus = bus
        self._memory = memory
        self._agent = agent
        self._stage_delay = stage_delay

    @property
    def agent(self) -> ErrorAnalysisAgent:
        return self._agent

    async def submit(self, error_text: str | None, event_id: str | None = None) -> SubmissionResult:
        """Process one error message.

        Raises:
            ValidationError: *error_text* is empty or whitespace-only.
            PipelineError:   any later stage failed unexpectedly.
        """
        event_id = event_id or new_event_id()
        started = time.perf_counter()
        published: list[str] = []
        log = _log.bind(event_id=event_id)

        # --- 1. Validate ------------------------------------------------
        self._publish(
            published,
            f"{event_id}_validation",
            EventKind.VALIDATION,
            "Validating error input...",
            EventStatus.PROCESSING,
        )
        await self._pause()
        if not error_text or not error_text.strip():
            self._publish(
                published,
                f"{event_id}_error",
                EventKind.VALIDATION,
                "Validation failed: Empty error message",
                EventStatus.ERROR,
            )
            submissions_total.labels(outcome="invalid").inc()
            log.info("submission_rejected", reason="empty_input")
            raise ValidationError(event_id)

        stage = EventKind.WORKFLOW
        try:
            # --- 2. Analyze ---------------------------------------------
            self._publish(
                published,
                f"{event_id}_workflow",
                EventKind.WORKFLOW,
                "AI Agent analyzing error...",
                EventStatus.PROCESSING,
            )
            await self._pause()
            error_record = await self._agent.analyze_error(event_id, error_text)
            result = WorkflowResult.from_record(error_record)

            # The completed payload is built before the commit; after the
            # commit only bus publishes remain, and those never raise.
            stage = EventKind.COMPLETED
            completion = {**result.to_dict(), "agent_metadata": self._agent.get_metadata()}

            # --- 3. Commit ----------------------------------------------
            stage = EventKind.MEMORY_UPDATE
            duration_ms = (time.perf_counter() - started) * 1000
            record = WorkflowRecord(id=event_id, result=result, timestamp=datetime.now(tz=UTC).isoformat())
            snapshot = self._memory.commit(record, error_text, duration_ms).to_dict()
            self._publish(
                published,
                f"{event_id}_memory",
                EventKind.MEMORY_UPDATE,
                "Memory store updated",
                EventStatus.COMPLETED,
                {"memory": snapshot},
            )

            # --- 4. Finalize --------------------------------------------
            self._publish(
                published,
                event_id,
                EventKind.COMPLETED,
                f"AI Agent completed analysis: {result.error_type} ({result.confidence}% confidence)",
                EventStatus.COMPLETED,
                completion,
            )
        except Exception as exc:
            submissions_total.labels(outcome="failed").inc()
            log.error("pipeline_failed", stage=stage.value, error=str(exc), exc_info=True)
            self._publish(
                published,
                f"{event_id}_error",
                stage,
                "Processing failed",
                EventStatus.ERROR,
            )
            raise PipelineError(event_id, stage.value, exc) from exc

        elapsed = time.perf_counter() - started
        submissions_total.labels(outcome="success").inc()
        pipeline_duration_seconds.observe(elapsed)
        log.info(
            "submission_processed",
            error_type=result.error_type,
            severity=result.severity.value,
            source=result.source.value,
            duration_ms=round(elapsed * 1000, 1),
        )
        return SubmissionResult(
            event_id=event_id,
            workflow=result,
            memory=snapshot,
            agent={"name": self._agent.name, "state": self._agent.get_state()},
            duration_ms=elapsed * 1000,
            events_published=published,
        )

    def _publish(
        self,
        published: list[str],
        event_id: str,
        kind: EventKind,
        message: str,
        status: EventStatus,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self._bus.publish(Event(id=event_id, kind=kind, message=message, status=status, payload=payload))
        published.append(event_id)

    async def _pause(self) -> None:
        if self._stage_delay > 0:
            await asyncio.sleep(self._stage_delay)
