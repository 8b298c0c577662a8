"""Request and response schemas for the ErrorFlow REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    """Body of ``POST /worker``.

    ``error`` defaults to empty so a missing field goes through the pipeline's
    validate stage (and its ``validation/error`` event) like an empty one.
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str = ""
    event_id: str | None = Field(default=None, alias="eventId", max_length=128)


class CapabilityRequest(BaseModel):
    """Body of ``POST /agent/{capability}``."""

    args: list[str] = Field(default_factory=list, max_length=8)


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    success: bool = False
    error: str
    detail: str = ""


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    subscribers: int
    llm_enabled: bool
