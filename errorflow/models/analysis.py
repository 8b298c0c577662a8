"""Error analysis and workflow result data structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from errorflow.models.events import Severity


class AnalysisSource(StrEnum):
    """Which provider produced an analysis."""

    RULES = "rules"
    LLM = "llm"


@dataclass(frozen=True)
class ErrorAnalysis:
    """Structured classification of one error message."""

    type: str
    category: str
    root_cause: str
    suggestions: list[str] = field(default_factory=list)
    related_patterns: list[str] = field(default_factory=list)
    confidence: int = 0  # 0-100


@dataclass(frozen=True)
class ErrorRecord:
    """Agent-side record of one analysed error.  ``error`` holds at most 500 chars."""

    id: str
    error: str
    analysis: ErrorAnalysis
    timestamp: str  # ISO-8601 UTC
    severity: Severity
    source: AnalysisSource = AnalysisSource.RULES


@dataclass(frozen=True)
class WorkflowResult:
    """The classification outcome returned to the submitting caller."""

    error_type: str
    category: str
    severity: Severity
    suggestions: list[str]
    root_cause: str
    confidence: int
    processed_at: str
    source: AnalysisSource = AnalysisSource.RULES

    @classmethod
    def from_record(cls, record: ErrorRecord) -> WorkflowResult:
        return cls(
            error_type=record.analysis.type or "Unknown",
            category=record.analysis.category,
            severity=record.severity,
            suggestions=list(record.analysis.suggestions),
            root_cause=record.analysis.root_cause,
            confidence=record.analysis.confidence,
            processed_at=record.timestamp,
            source=record.source,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WorkflowRecord:
    """One completed pipeline run, kept in the bounded memory history."""

    id: str
    result: WorkflowResult
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "result": self.result.to_dict(), "timestamp": self.timestamp}
