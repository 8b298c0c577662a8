"""Shared in-memory state for processed errors."""

from errorflow.memory.store import WORKFLOW_HISTORY_LIMIT, MemoryState, MemoryStatistics, MemoryStore

__all__ = ["WORKFLOW_HISTORY_LIMIT", "MemoryState", "MemoryStatistics", "MemoryStore"]
