"""Error analysis: keyword rules, optional LLM analyser, and the analysis agent."""

from errorflow.analysis.agent import AgentStatus, BaseAgent, ErrorAnalysisAgent, Schedule
from errorflow.analysis.llm import LLMAnalyzer
from errorflow.analysis.rules import categorize_error, detect_severity, rule_based_analysis

__all__ = [
    "AgentStatus",
    "BaseAgent",
    "ErrorAnalysisAgent",
    "LLMAnalyzer",
    "Schedule",
    "categorize_error",
    "detect_severity",
    "rule_based_analysis",
]
