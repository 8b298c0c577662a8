"""Unit tests for keyword-based severity, category and fallback analysis."""

from __future__ import annotations

import pytest

from errorflow.analysis.rules import (
    MAX_SUGGESTIONS,
    RULE_CONFIDENCE,
    categorize_error,
    detect_severity,
    rule_based_analysis,
)
from errorflow.models.events import Severity


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("FATAL: out of memory", Severity.CRITICAL),
        ("critical disk failure", Severity.CRITICAL),
        ("TypeError: Cannot read property 'x' of undefined", Severity.HIGH),
        ("Unhandled exception in worker", Severity.HIGH),
        ("Warning: deprecated API", Severity.MEDIUM),
        ("something odd happened", Severity.LOW),
        ("Fatal error occurred", Severity.CRITICAL),
    ],
)
def test_detect_severity(message: str, expected: Severity) -> None:
    assert detect_severity(message) is expected


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("SyntaxError: unexpected token", "Syntax"),
        ("TypeError: x is not a function", "Type"),
        ("ReferenceError: foo is not defined", "Reference"),
        ("network unreachable", "Network"),
        ("request timeout after 30s", "Timeout"),
        ("Authentication failed", "Security"),
        ("permission denied", "Security"),
        ("SQL constraint violated", "Database"),
        ("database is locked", "Database"),
        ("segmentation fault", "General"),
        # first match wins: "syntax" is checked before "type"
        ("syntax error in type annotation", "Syntax"),
    ],
)
def test_categorize_error(message: str, expected: str) -> None:
    assert categorize_error(message) == expected


class TestRuleBasedAnalysis:
    def test_type_error_analysis(self) -> None:
        analysis = rule_based_analysis("TypeError: Cannot read property 'x' of undefined")
        assert analysis.type == "Type Error"
        assert analysis.category == "Type"
        assert analysis.confidence == RULE_CONFIDENCE
        assert analysis.root_cause == "Detected type issue in the system"
        assert "Check type definitions" in analysis.suggestions
        assert analysis.related_patterns == ["Type"]

    def test_suggestions_capped(self) -> None:
        analysis = rule_based_analysis("network down", "Network")
        assert len(analysis.suggestions) == MAX_SUGGESTIONS
        assert analysis.suggestions[0] == "Review error logs for additional context"

    def test_general_category_has_base_suggestions_only(self) -> None:
        analysis = rule_based_analysis("it broke")
        assert analysis.type == "General Error"
        assert analysis.suggestions == [
            "Review error logs for additional context",
            "Check recent code changes",
        ]

    def test_explicit_category_overrides_detection(self) -> None:
        assert rule_based_analysis("TypeError", "Database").category == "Database"
