"""Keyword rules for severity, category and fallback analysis.

These are deterministic and never fail; the agent uses them whenever no
LLM is configured or the LLM call does not produce a usable answer.
"""

from __future__ import annotations

from errorflow.models.analysis import ErrorAnalysis
from errorflow.models.events import Severity

RULE_CONFIDENCE = 60
MAX_SUGGESTIONS = 5

# Checked in order; first match wins.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Syntax", ("syntax",)),
    ("Type", ("type",)),
    ("Reference", ("reference",)),
    ("Network", ("network",)),
    ("Timeout", ("timeout",)),
    ("Security", ("auth", "permission")),
    ("Database", ("database", "sql")),
)

_BASE_SUGGESTIONS = (
    "Review error logs for additional context",
    "Check recent code changes",
)

_CATEGORY_SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "Syntax": ("Validate code syntax", "Check for missing brackets or semicolons"),
    "Network": ("Verify network connectivity", "Check API endpoints", "Review timeout settings"),
    "Type": ("Check type definitions", "Validate input data types"),
    "Database": ("Check database connection", "Verify query syntax", "Review schema changes"),
}


def detect_severity(error: str) -> Severity:
    lowered = error.lower()
    if "critical" in lowered or "fatal" in lowered:
        return Severity.CRITICAL
    if "error" in lowered or "exception" in lowered:
        return Severity.HIGH
    if "warning" in lowered:
        return Severity.MEDIUM
    return Severity.LOW


def categorize_error(error: str) -> str:
    lowered = error.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "General"


def rule_based_analysis(error: str, category: str | None = None) -> ErrorAnalysis:
    """Build an ErrorAnalysis from keyword rules alone."""
    category = category or categorize_error(error)
    suggestions = [*_BASE_SUGGESTIONS, *_CATEGORY_SUGGESTIONS.get(category, ())]
    return ErrorAnalysis(
        type=f"{category} Error",
        category=category,
        root_cause=f"Detected {category.lower()} issue in the system",
        suggestions=suggestions[:MAX_SUGGESTIONS],
        related_patterns=[category],
        confidence=RULE_CONFIDENCE,
    )
