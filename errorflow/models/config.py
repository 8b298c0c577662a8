"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LLMConfig:
    """OpenAI-compatible chat completion endpoint (Ollama by default)."""

    enabled: bool = False
    endpoint: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    api_key: str = ""
    timeout_seconds: int = 30
    max_retries: int = 1
    temperature: float = 0.3
    max_tokens: int = 500


@dataclass
class PipelineConfig:
    """Processing pipeline configuration."""

    stage_delay_ms: int = 500


@dataclass
class StreamConfig:
    """Server-sent event stream configuration."""

    keepalive_seconds: int = 30
    max_pending: int = 0  # 0 = unbounded per-connection queue


@dataclass
class AgentConfig:
    """Analysis agent maintenance schedule."""

    pattern_analysis_interval_seconds: int = 21600


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class ErrorFlowConfig:
    """Top-level ErrorFlow configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
