r"""nostryears -- Yearly Nostr activity statistics.

Given a public key, a relay set, and a time window, nostryears retrieves
the subject's events and the events referencing it, folds them into a
statistics snapshot, ranks the identities the subject interacts with, and
compares the snapshot against snapshots other users have published.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Retrieval, accumulation, ranking, publishing
             /   |   \
          core  nips  utils    Logging/errors/config; wire formats; relay I/O
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O, depends only on stdlib.
    core: Exceptions, structured logging, YAML loading, metrics.
    nips: Zap invoices (NIP-57), profiles (NIP-01), published snapshots (NIP-78).
    utils: Relay pool over nostr-sdk, key handling, text analysis.
    services: The statistics engine and its components.

Note:
    For lightweight usage, import directly from subpackages::

        from nostryears.models import StatsSnapshot
        from nostryears.services import StatsEngine

    Top-level imports (``from nostryears import StatsEngine``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostryears")

__all__ = [
    "Event",
    "EventKind",
    "EventRetriever",
    "Logger",
    "Period",
    "PublishedSnapshot",
    "RelayPool",
    "SnapshotPublisher",
    "SnapshotReconciler",
    "StatsConfig",
    "StatsEngine",
    "StatsSnapshot",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("nostryears.core", "Logger"),
    "Event": ("nostryears.models", "Event"),
    "EventKind": ("nostryears.models", "EventKind"),
    "Period": ("nostryears.models", "Period"),
    "StatsSnapshot": ("nostryears.models", "StatsSnapshot"),
    "PublishedSnapshot": ("nostryears.nips", "PublishedSnapshot"),
    "RelayPool": ("nostryears.utils.protocol", "RelayPool"),
    "EventRetriever": ("nostryears.services", "EventRetriever"),
    "SnapshotPublisher": ("nostryears.services", "SnapshotPublisher"),
    "SnapshotReconciler": ("nostryears.services", "SnapshotReconciler"),
    "StatsConfig": ("nostryears.services", "StatsConfig"),
    "StatsEngine": ("nostryears.services", "StatsEngine"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostryears' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
