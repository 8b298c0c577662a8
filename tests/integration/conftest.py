"""Shared fixtures for ErrorFlow integration tests.

Provides the bus, memory store, agent and pipeline wired together the way
the application bootstrap wires them, with the stage pause disabled so
tests run at full speed.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from errorflow.analysis.agent import ErrorAnalysisAgent
from errorflow.api.app import create_app
from errorflow.memory.store import MemoryStore
from errorflow.models.config import ErrorFlowConfig
from errorflow.models.events import Event
from errorflow.pipeline.worker import ProcessingPipeline
from errorflow.realtime.bus import EventBus


class EventRecorder:
    """Bus subscriber that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    @property
    def pairs(self) -> list[tuple[str, str]]:
        return [(e.kind.value, e.status.value) for e in self.events]

    def for_prefix(self, event_id: str) -> list[Event]:
        return [e for e in self.events if e.id == event_id or e.id.startswith(f"{event_id}_")]


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def memory() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def agent() -> ErrorAnalysisAgent:
    return ErrorAnalysisAgent()


@pytest.fixture()
def pipeline(bus: EventBus, memory: MemoryStore, agent: ErrorAnalysisAgent) -> ProcessingPipeline:
    return ProcessingPipeline(bus=bus, memory=memory, agent=agent, stage_delay=0)


@pytest.fixture()
def recorder(bus: EventBus) -> EventRecorder:
    rec = EventRecorder()
    bus.subscribe(rec)
    return rec


@pytest.fixture()
def app(pipeline: ProcessingPipeline, bus: EventBus, memory: MemoryStore, agent: ErrorAnalysisAgent):
    return create_app(pipeline=pipeline, bus=bus, memory=memory, agent=agent, config=ErrorFlowConfig())


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
