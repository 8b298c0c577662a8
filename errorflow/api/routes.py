"""Route handlers for the ErrorFlow REST API.

All dependencies are read from ``request.app.state`` (populated by
``create_app``), never from module globals.
"""

from __future__ import annotations

import inspect
from typing import Any

import structlog
from fastapi import APIRouter, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.background import BackgroundTask

from errorflow.analysis.agent import ErrorAnalysisAgent
from errorflow.api.schemas import CapabilityRequest, ErrorResponse, HealthResponse, SubmitRequest
from errorflow.errors import PipelineError, ValidationError
from errorflow.memory.store import MemoryStore
from errorflow.models.config import StreamConfig
from errorflow.pipeline.worker import ProcessingPipeline
from errorflow.realtime.bus import EventBus
from errorflow.realtime.stream import EventStreamConnection

_log = structlog.get_logger(component="api.routes")

router = APIRouter()

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


@router.post("/worker")
async def submit_error(body: SubmitRequest, request: Request) -> Any:
    """Run one error message through the processing pipeline."""
    pipeline: ProcessingPipeline = request.app.state.pipeline
    try:
        result = await pipeline.submit(body.error, body.event_id)
    except ValidationError as exc:
        return _error(400, "INVALID_INPUT", exc.detail)
    except PipelineError as exc:
        _log.error("submission_failed", event_id=exc.event_id, stage=exc.stage, error=str(exc.cause))
        return _error(500, "PROCESSING_FAILED", "Processing failed")

    return {
        "success": True,
        "event_id": result.event_id,
        "workflow": result.workflow.to_dict(),
        "memory": result.memory,
        "agent": jsonable_encoder(result.agent),
    }


@router.get("/worker")
async def worker_status(request: Request) -> Any:
    """Agent metadata, memory snapshot and derived statistics."""
    agent: ErrorAnalysisAgent = request.app.state.agent
    memory: MemoryStore = request.app.state.memory
    return {
        "success": True,
        "agent": jsonable_encoder(
            {
                "metadata": agent.get_metadata(),
                "state": agent.get_state(),
                "statistics": await agent.get_statistics(),
            }
        ),
        "memory": memory.snapshot(),
        "summary": memory.summary(),
    }


# ---------------------------------------------------------------------------
# Realtime stream
# ---------------------------------------------------------------------------


@router.get("/events")
async def stream_events(request: Request) -> StreamingResponse:
    """Open a server-sent event stream of pipeline events."""
    bus: EventBus = request.app.state.bus
    config = request.app.state.config
    stream_cfg: StreamConfig = config.stream if config is not None else StreamConfig()

    connection = EventStreamConnection(
        bus,
        keepalive_seconds=stream_cfg.keepalive_seconds,
        max_pending=stream_cfg.max_pending,
    )
    connection.open()
    return StreamingResponse(
        connection.frames(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
        background=BackgroundTask(connection.close),
    )


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


@router.get("/memory")
async def get_memory(request: Request) -> Any:
    memory: MemoryStore = request.app.state.memory
    return memory.snapshot()


@router.delete("/memory")
async def clear_memory(request: Request) -> Any:
    memory: MemoryStore = request.app.state.memory
    return {"success": True, "memory": memory.clear()}


# ---------------------------------------------------------------------------
# Agent capabilities
# ---------------------------------------------------------------------------


@router.get("/agent/search")
async def search_errors(request: Request, q: str = Query(min_length=1, max_length=200)) -> Any:
    agent: ErrorAnalysisAgent = request.app.state.agent
    records = await agent.execute("search_similar_errors", q)
    return {"success": True, "results": jsonable_encoder(records)}


@router.post("/agent/{capability}")
async def call_capability(capability: str, body: CapabilityRequest, request: Request) -> Any:
    """Invoke an agent capability by name.

    Unknown names map to 404 and a wrong argument count to 400.  Failures
    inside the capability itself reach the generic 500 handler.
    """
    agent: ErrorAnalysisAgent = request.app.state.agent
    handler = agent.capabilities.get(capability)
    if handler is not None:
        try:
            inspect.signature(handler).bind(*body.args)
        except TypeError as exc:
            return _error(400, "INVALID_ARGUMENTS", str(exc))
    data = await agent.execute(capability, *body.args)
    return {"success": True, "data": jsonable_encoder(data)}


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from errorflow import __version__

    bus: EventBus = request.app.state.bus
    agent: ErrorAnalysisAgent = request.app.state.agent
    return HealthResponse(
        version=__version__,
        subscribers=bus.subscriber_count,
        llm_enabled=agent.llm_enabled,
    )


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
