"""FastAPI application factory for ErrorFlow.

Usage::

    from errorflow.api.app import create_app

    app = create_app(
        pipeline=pipeline,
        bus=bus,
        memory=memory,
        agent=agent,
        config=config,
    )

Used by both the production bootstrap (``errorflow.app``) and tests, which
pass fresh component instances per test.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from errorflow.api.routes import router
from errorflow.api.schemas import ErrorResponse
from errorflow.errors import UnknownCapabilityError

if TYPE_CHECKING:
    from errorflow.analysis.agent import ErrorAnalysisAgent
    from errorflow.memory.store import MemoryStore
    from errorflow.models.config import ErrorFlowConfig
    from errorflow.pipeline.worker import ProcessingPipeline
    from errorflow.realtime.bus import EventBus

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    pipeline: ProcessingPipeline,
    bus: EventBus,
    memory: MemoryStore,
    agent: ErrorAnalysisAgent,
    config: ErrorFlowConfig | None = None,
) -> FastAPI:
    """Create and configure the ErrorFlow FastAPI application.

    Args:
        pipeline: ProcessingPipeline bound to the same bus, memory and agent.
        bus:      EventBus that the SSE endpoint subscribes to.
        memory:   Shared MemoryStore served by the memory endpoints.
        agent:    ErrorAnalysisAgent for status and capability calls.
        config:   ErrorFlowConfig.  Only the stream settings are read here.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from errorflow import __version__

    app = FastAPI(
        title="ErrorFlow",
        summary="Error classification with realtime progress streaming",
        version=__version__,
        description=(
            "ErrorFlow classifies free-text error messages with keyword rules, "
            "optionally refined by an LLM, and streams every processing stage "
            "to connected viewers over server-sent events."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.pipeline = pipeline
    app.state.bus = bus
    app.state.memory = memory
    app.state.agent = agent
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to the 400 error envelope."""
        errors = exc.errors()
        detail = ""
        if errors:
            locs = errors[0].get("loc", ())
            field = str(locs[-1]) if locs else ""
            detail = f"{field}: {errors[0].get('msg', '')}" if field else str(errors[0].get("msg", ""))

        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_INPUT", detail=detail).model_dump(),
        )

    @app.exception_handler(UnknownCapabilityError)
    async def capability_exception_handler(
        _request: Request,
        exc: UnknownCapabilityError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="UNKNOWN_CAPABILITY", detail=str(exc)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
