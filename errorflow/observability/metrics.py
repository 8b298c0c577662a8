"""Prometheus collectors for ErrorFlow.

All collectors live on the default registry and are exposed by
``GET /api/v1/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

events_published_total = Counter(
    "errorflow_events_published_total",
    "Events published on the in-process event bus.",
    ["kind", "status"],
)

subscriber_failures_total = Counter(
    "errorflow_subscriber_failures_total",
    "Subscriber callbacks that raised during publish.",
)

stream_connections_active = Gauge(
    "errorflow_stream_connections_active",
    "Currently open server-sent event connections.",
)

stream_frames_dropped_total = Counter(
    "errorflow_stream_frames_dropped_total",
    "Frames dropped because a connection's pending queue was full.",
)

submissions_total = Counter(
    "errorflow_submissions_total",
    "Error submissions processed by the pipeline, by outcome.",
    ["outcome"],  # success | invalid | failed
)

pipeline_duration_seconds = Histogram(
    "errorflow_pipeline_duration_seconds",
    "Wall-clock duration of successful pipeline runs.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

provider_fallbacks_total = Counter(
    "errorflow_provider_fallbacks_total",
    "LLM analyses that fell back to rule-based classification.",
    ["reason"],
)
