"""Core data structures for ErrorFlow."""

from errorflow.models.analysis import (
    AnalysisSource,
    ErrorAnalysis,
    ErrorRecord,
    WorkflowRecord,
    WorkflowResult,
)
from errorflow.models.config import ErrorFlowConfig
from errorflow.models.events import Event, EventKind, EventStatus, Severity

__all__ = [
    "AnalysisSource",
    "ErrorAnalysis",
    "ErrorFlowConfig",
    "ErrorRecord",
    "Event",
    "EventKind",
    "EventStatus",
    "Severity",
    "WorkflowRecord",
    "WorkflowResult",
]
