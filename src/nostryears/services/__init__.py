"""The statistics pipeline: retrieval, accumulation, ranking, publishing.

Services are the top layer of the diamond DAG, depending on
[nostryears.core][nostryears.core], [nostryears.nips][nostryears.nips],
[nostryears.utils][nostryears.utils], and [nostryears.models][nostryears.models].

```text
StatsEngine.compute
  -> SnapshotReconciler.find_cached      (skipped with force=True)
  -> EventRetriever.retrieve             phases A, B, C + profile
  -> accumulate                          counts, histograms, top-N
       -> rank                           affinity ranking
StatsEngine.percentiles -> SnapshotReconciler.population -> calculate_all_percentiles
SnapshotPublisher.publish                kind 30078 record (needs keys)
```

Attributes:
    StatsEngine: Facade computing one snapshot per call.
    StatsConfig: Pydantic settings, loadable from YAML.
    EventRetriever: Phased, deduplicated multi-relay retrieval.
    MetricAccumulator: Event fold producing a
        [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot].
    SnapshotReconciler: Cache lookup, recent listing, and population.
    SnapshotPublisher: Signs and broadcasts snapshots; read-only without keys.
"""

from .accumulator import MetricAccumulator, accumulate
from .affinity import DirectionalCounts, balance, rank
from .configs import StatsConfig
from .engine import StatsEngine, StatsReport
from .percentile import (
    PercentileData,
    calculate_all_percentiles,
    compatible_population,
    format_percentile,
    percentile,
)
from .progress import (
    LoggingProgressListener,
    ProgressListener,
    ProgressRecorder,
    ProgressReporter,
    ProgressUpdate,
)
from .publisher import PublishOutcome, SnapshotPublisher
from .reconciler import RecentSnapshot, SnapshotReconciler
from .retrieval import EventRetriever, RetrievalResult


__all__ = [
    "DirectionalCounts",
    "EventRetriever",
    "LoggingProgressListener",
    "MetricAccumulator",
    "PercentileData",
    "ProgressListener",
    "ProgressRecorder",
    "ProgressReporter",
    "ProgressUpdate",
    "PublishOutcome",
    "RecentSnapshot",
    "RetrievalResult",
    "SnapshotPublisher",
    "SnapshotReconciler",
    "StatsConfig",
    "StatsEngine",
    "StatsReport",
    "accumulate",
    "balance",
    "calculate_all_percentiles",
    "compatible_population",
    "format_percentile",
    "percentile",
    "rank",
]
