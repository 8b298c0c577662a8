"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from errorflow.models.config import (
    AgentConfig,
    APIConfig,
    ErrorFlowConfig,
    LLMConfig,
    LogConfig,
    PipelineConfig,
    StreamConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"ERRORFLOW_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("json", "console"):
        raise ValueError(f"Invalid log format: {value}. Must be 'json' or 'console'")
    return value.lower()


def load_config() -> ErrorFlowConfig:
    """Load configuration from ERRORFLOW_* environment variables."""
    return ErrorFlowConfig(
        llm=LLMConfig(
            enabled=_env_bool("LLM_ENABLED", False),
            endpoint=_env("LLM_ENDPOINT", "http://localhost:11434").rstrip("/"),
            model=_env("LLM_MODEL", "llama3.1:8b"),
            api_key=_env("LLM_API_KEY", ""),
            timeout_seconds=_env_int("LLM_TIMEOUT", 30, min_val=5, max_val=120),
            max_retries=_env_int("LLM_MAX_RETRIES", 1, min_val=0, max_val=5),
            temperature=_env_float("LLM_TEMPERATURE", 0.3),
            max_tokens=_env_int("LLM_MAX_TOKENS", 500, min_val=64),
        ),
        pipeline=PipelineConfig(
            stage_delay_ms=_env_int("PIPELINE_STAGE_DELAY_MS", 500, min_val=0, max_val=10000),
        ),
        stream=StreamConfig(
            keepalive_seconds=_env_int("STREAM_KEEPALIVE_SECONDS", 30, min_val=1, max_val=300),
            max_pending=_env_int("STREAM_MAX_PENDING", 0, min_val=0),
        ),
        agent=AgentConfig(
            pattern_analysis_interval_seconds=_env_int("AGENT_PATTERN_INTERVAL", 21600, min_val=60),
        ),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
