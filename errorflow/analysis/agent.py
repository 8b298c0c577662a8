"""Error analysis agent.

BaseAgent           -- Named, versioned holder of state, schedules and an
                       explicit capability table (name -> coroutine).
ErrorAnalysisAgent  -- Classifies error messages with an optional LLM and
                       a rule-based fallback; keeps its own rolling history.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import structlog

from errorflow.analysis.llm import LLMAnalyzer
from errorflow.analysis.rules import categorize_error, detect_severity, rule_based_analysis
from errorflow.errors import ProviderError, UnknownCapabilityError
from errorflow.models.analysis import AnalysisSource, ErrorAnalysis, ErrorRecord
from errorflow.observability.metrics import provider_fallbacks_total

_log = structlog.get_logger(component="analysis.agent")

RECENT_ERRORS_LIMIT = 20
ERROR_TEXT_MAX_CHARS = 500

Capability = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class Schedule:
    """A named maintenance task and when it should run."""

    schedule: str
    method: str


class AgentStatus(StrEnum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    ERROR = "error"


@dataclass(frozen=True)
class ErrorAnalysisState:
    total_analyzed: int = 0
    recent_errors: tuple[ErrorRecord, ...] = ()
    error_patterns: dict[str, int] = field(default_factory=dict)
    last_analysis: str | None = None
    agent_status: AgentStatus = AgentStatus.IDLE


class BaseAgent:
    """Common agent plumbing.

    Subclasses populate ``capabilities`` in their constructor; only names
    in that table can be invoked through ``execute``.
    """

    def __init__(self, name: str, description: str = "", version: str = "1.0.0") -> None:
        self.name = name
        self.description = description
        self.version = version
        self.capabilities: dict[str, Capability] = {}
        self._schedules: list[Schedule] = []

    def schedule(self, when: str, method: str) -> None:
        if not callable(getattr(self, method, None)):
            raise ValueError(f"Cannot schedule unknown method '{method}'")
        self._schedules.append(Schedule(schedule=when, method=method))

    def get_schedules(self) -> list[Schedule]:
        return list(self._schedules)

    async def execute(self, name: str, *args: Any) -> Any:
        """Dispatch to the capability registered under *name*."""
        handler = self.capabilities.get(name)
        if handler is None:
            raise UnknownCapabilityError(self.name, name)
        return await handler(*args)

    def get_metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "schedules": [asdict(s) for s in self.get_schedules()],
            "capabilities": sorted(self.capabilities),
        }


class ErrorAnalysisAgent(BaseAgent):
    """Analyses error messages and tracks recent results.

    Args:
        llm: Optional LLM analyser.  When absent, or when it raises
             ProviderError, the keyword rules produce the analysis.
    """

    def __init__(self, llm: LLMAnalyzer | None = None) -> None:
        super().__init__(
            name="ErrorAnalysisAgent",
            description="AI-powered error analysis and pattern recognition",
            version="1.0.0",
        )
        self._llm = llm
        self._state = ErrorAnalysisState()
        self.capabilities = {
            "analyze_error": self.analyze_error,
            "search_similar_errors": self.search_similar_errors,
            "get_statistics": self.get_statistics,
        }
        self.schedule("daily at 11:59pm", "generate_daily_summary")
        self.schedule("every 6 hours", "analyze_patterns")

    @property
    def llm_enabled(self) -> bool:
        return self._llm is not None

    def get_state(self) -> dict[str, Any]:
        state = self._state
        return {
            "total_analyzed": state.total_analyzed,
            "recent_errors": [_record_to_dict(r) for r in state.recent_errors],
            "error_patterns": dict(state.error_patterns),
            "last_analysis": state.last_analysis,
            "agent_status": state.agent_status.value,
        }

    async def analyze_error(self, error_id: str, error_message: str) -> ErrorRecord:
        """Classify one error and record it in the agent's history."""
        self._state = replace(self._state, agent_status=AgentStatus.ANALYZING)
        try:
            severity = detect_severity(error_message)
            category = categorize_error(error_message)
            analysis, source = await self._analyze(error_message, category)

            record = ErrorRecord(
                id=error_id,
                error=error_message[:ERROR_TEXT_MAX_CHARS],
                analysis=analysis,
                timestamp=_now_iso(),
                severity=severity,
                source=source,
            )

            patterns = dict(self._state.error_patterns)
            patterns[analysis.type] = patterns.get(analysis.type, 0) + 1
            self._state = ErrorAnalysisState(
                total_analyzed=self._state.total_analyzed + 1,
                recent_errors=(record, *self._state.recent_errors)[:RECENT_ERRORS_LIMIT],
                error_patterns=patterns,
                last_analysis=_now_iso(),
                agent_status=AgentStatus.IDLE,
            )
            return record
        except Exception:
            self._state = replace(self._state, agent_status=AgentStatus.ERROR)
            raise

    async def search_similar_errors(self, query: str) -> list[ErrorRecord]:
        needle = query.lower()
        return [
            record
            for record in self._state.recent_errors
            if needle in record.error.lower()
            or needle in record.analysis.type.lower()
            or needle in record.analysis.category.lower()
        ]

    async def get_statistics(self) -> dict[str, Any]:
        severity_distribution: dict[str, int] = {}
        for record in self._state.recent_errors:
            key = record.severity.value
            severity_distribution[key] = severity_distribution.get(key, 0) + 1
        return {
            "total_analyzed": self._state.total_analyzed,
            "pattern_counts": dict(self._state.error_patterns),
            "severity_distribution": severity_distribution,
            "recent_error_count": len(self._state.recent_errors),
        }

    async def generate_daily_summary(self) -> str:
        stats = await self.get_statistics()
        return (
            f"Daily Summary: {stats['total_analyzed']} errors analyzed, "
            f"{stats['recent_error_count']} recent errors tracked."
        )

    async def analyze_patterns(self) -> list[tuple[str, int]]:
        """Log and return error patterns, most frequent first."""
        ranked = sorted(self._state.error_patterns.items(), key=lambda kv: kv[1], reverse=True)
        _log.info(
            "pattern_analysis",
            recent_errors=len(self._state.recent_errors),
            patterns=len(ranked),
            top=ranked[:3],
        )
        return ranked

    async def _analyze(self, error_message: str, category: str) -> tuple[ErrorAnalysis, AnalysisSource]:
        if self._llm is None:
            return rule_based_analysis(error_message, category), AnalysisSource.RULES
        try:
            return await self._llm.analyze(error_message, category), AnalysisSource.LLM
        except ProviderError as exc:
            provider_fallbacks_total.labels(reason=exc.reason).inc()
            _log.warning("llm_fallback", reason=exc.reason, error=str(exc))
            return rule_based_analysis(error_message, category), AnalysisSource.RULES


def _record_to_dict(record: ErrorRecord) -> dict[str, Any]:
    return asdict(record)


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
