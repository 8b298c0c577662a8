"""Structured logging configuration using structlog.

ErrorFlow's own modules log through structlog.  Standard-library loggers
(uvicorn, httpx) are pointed at the same stream so a single process writes
one log, and httpx's per-request INFO lines are held back unless the
service runs at debug level.
"""

from __future__ import annotations

import logging
import sys

import structlog

_NOISY_LIBRARY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog for JSON (or console) output to stderr.

    Args:
        level: One of debug, info, warning, error.
        fmt:   ``json`` for machine-readable lines, ``console`` for local runs.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: structlog.types.Processor
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(name)s %(levelname)s %(message)s", stream=sys.stderr, level=log_level)
    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
