"""Integration tests: submissions flowing through the pipeline, bus and memory."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from errorflow.analysis.agent import ErrorAnalysisAgent
from errorflow.analysis.llm import LLMAnalyzer
from errorflow.errors import PipelineError, ValidationError
from errorflow.memory.store import WORKFLOW_HISTORY_LIMIT, MemoryStore
from errorflow.models.analysis import AnalysisSource
from errorflow.models.config import LLMConfig
from errorflow.models.events import EventKind, EventStatus, Severity
from errorflow.pipeline.worker import ProcessingPipeline
from errorflow.realtime.bus import EventBus

from .conftest import EventRecorder

pytestmark = pytest.mark.integration


class TestSuccessfulSubmission:
    async def test_publishes_four_stages_in_order(
        self, pipeline: ProcessingPipeline, recorder: EventRecorder
    ) -> None:
        result = await pipeline.submit("TypeError: Cannot read property 'x' of undefined", "evt_a")

        assert recorder.pairs == [
            ("validation", "processing"),
            ("workflow", "processing"),
            ("memory_update", "completed"),
            ("completed", "completed"),
        ]
        assert [e.id for e in recorder.events] == ["evt_a_validation", "evt_a_workflow", "evt_a_memory", "evt_a"]
        assert result.events_published == [e.id for e in recorder.events]

    async def test_type_error_classification(self, pipeline: ProcessingPipeline, memory: MemoryStore) -> None:
        result = await pipeline.submit("TypeError: Cannot read property 'x' of undefined", "evt_a")

        assert result.workflow.severity is Severity.HIGH
        assert result.workflow.error_type == "Type Error"
        assert result.workflow.confidence == 60
        assert memory.state.total_errors == 1
        assert memory.state.statistics.error_types == {"Type Error": 1}
        assert memory.state.statistics.severity_count == {"high": 1}

    async def test_payloads_carry_memory_and_result(
        self, pipeline: ProcessingPipeline, recorder: EventRecorder
    ) -> None:
        await pipeline.submit("database is locked", "evt_db")

        memory_event, completed = recorder.events[2], recorder.events[3]
        assert memory_event.payload is not None
        assert memory_event.payload["memory"]["total_errors"] == 1
        assert completed.payload is not None
        assert completed.payload["error_type"] == "Database Error"
        assert completed.payload["agent_metadata"]["name"] == "ErrorAnalysisAgent"
        assert completed.message == "AI Agent completed analysis: Database Error (60% confidence)"

    async def test_event_id_generated_when_absent(
        self, pipeline: ProcessingPipeline, recorder: EventRecorder
    ) -> None:
        result = await pipeline.submit("boom")

        assert result.event_id.startswith("evt_")
        assert recorder.events[-1].id == result.event_id

    async def test_works_without_subscribers(self, pipeline: ProcessingPipeline, bus: EventBus) -> None:
        assert bus.subscriber_count == 0
        result = await pipeline.submit("fatal: out of memory")
        assert result.workflow.severity is Severity.CRITICAL

    async def test_history_capped_newest_first(self, pipeline: ProcessingPipeline, memory: MemoryStore) -> None:
        for i in range(WORKFLOW_HISTORY_LIMIT + 2):
            await pipeline.submit(f"error number {i}", f"evt_{i}")

        workflows = memory.state.workflows
        assert memory.state.total_errors == WORKFLOW_HISTORY_LIMIT + 2
        assert len(workflows) == WORKFLOW_HISTORY_LIMIT
        assert workflows[0].id == f"evt_{WORKFLOW_HISTORY_LIMIT + 1}"
        assert workflows[-1].id == "evt_2"


class TestValidation:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    async def test_blank_input_rejected(
        self, pipeline: ProcessingPipeline, memory: MemoryStore, recorder: EventRecorder, text: str | None
    ) -> None:
        with pytest.raises(ValidationError):
            await pipeline.submit(text, "evt_v")

        assert [(e.id, e.kind, e.status) for e in recorder.events] == [
            ("evt_v_validation", EventKind.VALIDATION, EventStatus.PROCESSING),
            ("evt_v_error", EventKind.VALIDATION, EventStatus.ERROR),
        ]
        assert memory.state.total_errors == 0


class TestFailures:
    async def test_agent_failure_publishes_single_error(
        self, pipeline: ProcessingPipeline, memory: MemoryStore, recorder: EventRecorder
    ) -> None:
        pipeline.agent.analyze_error = AsyncMock(side_effect=RuntimeError("analysis exploded"))

        with pytest.raises(PipelineError) as excinfo:
            await pipeline.submit("TypeError", "evt_f")

        assert excinfo.value.stage == "workflow"
        errors = [e for e in recorder.events if e.status is EventStatus.ERROR]
        assert len(errors) == 1
        assert errors[0].id == "evt_f_error"
        assert errors[0].kind is EventKind.WORKFLOW
        assert memory.state.total_errors == 0

    async def test_commit_failure_leaves_memory_untouched(
        self, pipeline: ProcessingPipeline, memory: MemoryStore, recorder: EventRecorder, monkeypatch
    ) -> None:
        await pipeline.submit("first error", "evt_ok")
        before = memory.snapshot()

        def _broken_commit(*_args, **_kwargs):
            raise OSError("disk gone")

        monkeypatch.setattr(memory, "commit", _broken_commit)
        with pytest.raises(PipelineError) as excinfo:
            await pipeline.submit("second error", "evt_bad")

        assert excinfo.value.stage == "memory_update"
        bad = recorder.for_prefix("evt_bad")
        assert [(e.kind, e.status) for e in bad] == [
            (EventKind.VALIDATION, EventStatus.PROCESSING),
            (EventKind.WORKFLOW, EventStatus.PROCESSING),
            (EventKind.MEMORY_UPDATE, EventStatus.ERROR),
        ]
        assert memory.snapshot() == before

    async def test_finalize_failure_happens_before_commit(
        self, pipeline: ProcessingPipeline, memory: MemoryStore, recorder: EventRecorder, monkeypatch
    ) -> None:
        def _broken_metadata():
            raise RuntimeError("metadata unavailable")

        monkeypatch.setattr(pipeline.agent, "get_metadata", _broken_metadata)
        with pytest.raises(PipelineError) as excinfo:
            await pipeline.submit("TypeError", "evt_fin")

        assert excinfo.value.stage == "completed"
        assert [(e.kind, e.status) for e in recorder.events] == [
            (EventKind.VALIDATION, EventStatus.PROCESSING),
            (EventKind.WORKFLOW, EventStatus.PROCESSING),
            (EventKind.COMPLETED, EventStatus.ERROR),
        ]
        assert memory.state.total_errors == 0

    async def test_failing_subscriber_does_not_break_submission(
        self, pipeline: ProcessingPipeline, bus: EventBus, recorder: EventRecorder
    ) -> None:
        def _explode(_event) -> None:
            raise RuntimeError("subscriber bug")

        bus.subscribe(_explode)
        result = await pipeline.submit("network unreachable", "evt_n")

        assert result.workflow.error_type == "Network Error"
        assert len(recorder.events) == 4


class TestConcurrency:
    async def test_concurrent_submissions_keep_per_submission_order(
        self, bus: EventBus, memory: MemoryStore, recorder: EventRecorder, agent
    ) -> None:
        pipeline = ProcessingPipeline(bus=bus, memory=memory, agent=agent, stage_delay=0.01)
        ids = [f"evt_c{i}" for i in range(5)]

        await asyncio.gather(*(pipeline.submit(f"TypeError {i}", eid) for i, eid in enumerate(ids)))

        for eid in ids:
            kinds = [e.kind for e in recorder.for_prefix(eid)]
            assert kinds == [EventKind.VALIDATION, EventKind.WORKFLOW, EventKind.MEMORY_UPDATE, EventKind.COMPLETED]
        assert memory.state.total_errors == 5
        assert len(memory.state.workflows) == 5


class TestProviderFallback:
    @pytest.mark.parametrize(
        "payload",
        [
            {"choices": [{"message": {"content": '{"type": "X", "confidence": NaN}'}}]},
            {"choices": [{"message": {"content": '{"type": "X", "confidence": Infinity}'}}]},
            {"choices": ["not-an-object"]},
            {"choices": [{"message": "plain text reply"}]},
        ],
    )
    async def test_malformed_llm_reply_falls_back_to_rules(
        self, bus: EventBus, memory: MemoryStore, recorder: EventRecorder, payload: dict
    ) -> None:
        transport = httpx.MockTransport(lambda _request: httpx.Response(200, json=payload))
        llm = LLMAnalyzer(LLMConfig(enabled=True, max_retries=0), transport=transport)
        pipeline = ProcessingPipeline(bus=bus, memory=memory, agent=ErrorAnalysisAgent(llm=llm), stage_delay=0)

        result = await pipeline.submit("TypeError: boom", "evt_p")

        assert result.workflow.source is AnalysisSource.RULES
        assert result.workflow.error_type == "Type Error"
        assert [e.status for e in recorder.events].count(EventStatus.ERROR) == 0
        assert memory.state.total_errors == 1
        await llm.aclose()
