"""
Prometheus metrics for the aggregation engine.

Defines module-level metric objects (singletons, thread-safe) recorded by
the retrieval orchestrator and the engine facade. Recording is gated by
``MetricsConfig.enabled`` so library users pay nothing by default.

Since every CLI invocation computes one snapshot and exits, metrics are
exposed through the node-exporter textfile collector: when
``MetricsConfig.textfile`` is set, the CLI writes the registry there
after the run via [write_textfile()][nostryears.core.metrics.write_textfile].

Architecture:
    EVENTS_RETRIEVED:        Events kept per retrieval phase (after dedup).
    RELAY_FAILURES:          Relays dropped from a phase.
    PHASE_DURATION_SECONDS:  Histogram of phase latency.
    SNAPSHOTS_COMPUTED:      Snapshots produced, by source (fresh or cache).
"""

from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for Prometheus metric recording.

    ``textfile`` should point into the node-exporter textfile collector
    directory and end in ``.prom``.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    textfile: str | None = Field(
        default=None, description="Write metrics to this file after each CLI run"
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

EVENTS_RETRIEVED = Counter(
    "nostryears_events_retrieved",
    "Events retrieved per phase after cross-relay deduplication",
    ["phase"],
)

RELAY_FAILURES = Counter(
    "nostryears_relay_failures",
    "Relays dropped from a retrieval phase after a connection or query error",
    ["phase"],
)

PHASE_DURATION_SECONDS = Histogram(
    "nostryears_phase_duration_seconds",
    "Duration of a retrieval phase in seconds",
    ["phase"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300, 600),
)

SNAPSHOTS_COMPUTED = Counter(
    "nostryears_snapshots_computed",
    "Statistics snapshots produced",
    ["source"],
)


def write_textfile(config: MetricsConfig) -> bool:
    """Write the default registry to ``config.textfile``.

    Returns:
        ``True`` if a file was written, ``False`` when metrics are disabled
        or no path is configured.
    """
    if not config.enabled or not config.textfile:
        return False
    write_to_textfile(config.textfile, REGISTRY)
    return True
