"""Exception hierarchy for ErrorFlow."""

from __future__ import annotations


class ErrorFlowError(Exception):
    """Base class for all ErrorFlow errors."""


class ValidationError(ErrorFlowError):
    """Submitted error text was empty or whitespace-only."""

    def __init__(self, event_id: str, detail: str = "Empty error message") -> None:
        super().__init__(detail)
        self.event_id = event_id
        self.detail = detail


class ProviderError(ErrorFlowError):
    """The LLM provider failed or returned output that could not be used.

    Never escapes the analysis agent: the agent falls back to rule-based
    classification when it sees this.
    """

    def __init__(self, reason: str, detail: str = "") -> None:
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason
        self.detail = detail


class PipelineError(ErrorFlowError):
    """Unexpected failure inside the analyze, commit or finalize stage."""

    def __init__(self, event_id: str, stage: str, cause: Exception) -> None:
        super().__init__(f"Pipeline stage '{stage}' failed for {event_id}: {cause}")
        self.event_id = event_id
        self.stage = stage
        self.cause = cause


class StartupError(ErrorFlowError):
    """A required component could not be started by the application bootstrap."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class UnknownCapabilityError(ErrorFlowError, LookupError):
    """Raised when an agent is asked to run a capability it does not expose."""

    def __init__(self, agent: str, name: str) -> None:
        super().__init__(f"Agent '{agent}' has no callable capability '{name}'")
        self.agent = agent
        self.name = name
