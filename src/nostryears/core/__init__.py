"""Core layer providing logging, errors, configuration loading and metrics.

Sits in the middle of the diamond DAG -- depends only on
``nostryears.models`` and is depended upon by ``nostryears.services``.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostryears.core.logger.Logger].
    NostrYearsError: Root of the exception hierarchy.
        See [nostryears.core.exceptions][].
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
    MetricsConfig: Prometheus metric recording settings.
"""

from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    NostrYearsError,
    ProtocolError,
    PublishingError,
    RelayTimeoutError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    EVENTS_RETRIEVED,
    PHASE_DURATION_SECONDS,
    RELAY_FAILURES,
    SNAPSHOTS_COMPUTED,
    MetricsConfig,
    write_textfile,
)
from .yaml import load_yaml


__all__ = [
    "EVENTS_RETRIEVED",
    "PHASE_DURATION_SECONDS",
    "RELAY_FAILURES",
    "SNAPSHOTS_COMPUTED",
    "ConfigurationError",
    "ConnectivityError",
    "Logger",
    "MetricsConfig",
    "NostrYearsError",
    "ProtocolError",
    "PublishingError",
    "RelayTimeoutError",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "write_textfile",
]
