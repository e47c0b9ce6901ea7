"""
Statistics engine facade.

[StatsEngine.compute()][nostryears.services.engine.StatsEngine.compute]
ties the pipeline together:

```text
validate request -> reconciler.find_cached (unless force)
                 -> retriever.retrieve -> accumulate (+ affinity rank)
```

A cache hit re-fetches only the profile, since profiles are not part of
the published record, and yields a snapshot without affinity ranking.

Examples:
    ```python
    from nostryears.services import StatsConfig, StatsEngine
    from nostryears.utils.protocol import RelayPool

    config = StatsConfig.from_yaml("config/nostryears.yaml")
    async with RelayPool(config.pool) as pool:
        engine = StatsEngine(pool, config)
        report = await engine.compute(subject, config.relays, since, until)
        print(report.snapshot.kind1_count, report.from_cache)
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostryears.core.exceptions import ConfigurationError, ProtocolError
from nostryears.core.logger import Logger
from nostryears.core.metrics import SNAPSHOTS_COMPUTED
from nostryears.models import FetchPhase, Period, Profile, StatsSnapshot

from .accumulator import accumulate
from .configs import StatsConfig, validate_relay_url
from .percentile import PercentileData, calculate_all_percentiles
from .progress import ProgressReporter
from .reconciler import SnapshotReconciler
from .retrieval import EventRetriever


if TYPE_CHECKING:
    from collections.abc import Sequence

    from nostryears.utils.protocol import EventSource

    from .progress import ProgressListener


_HEX_KEY = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True, slots=True)
class StatsReport:
    """Result of one computation."""

    snapshot: StatsSnapshot
    profile: Profile | None = None
    from_cache: bool = False


class StatsEngine:
    """Computes statistics snapshots for subjects.

    Args:
        source: Event source, usually a
            [RelayPool][nostryears.utils.protocol.RelayPool] owned by the caller.
        config: Engine settings; defaults when omitted.
    """

    def __init__(self, source: EventSource, config: StatsConfig | None = None) -> None:
        self._config = config or StatsConfig()
        self._retriever = EventRetriever(
            source,
            progress_step=self._config.progress_step,
            metrics_enabled=self._config.metrics.enabled,
        )
        self._reconciler = SnapshotReconciler(self._retriever, self._config.relays)
        self._logger = Logger("engine")

    @property
    def config(self) -> StatsConfig:
        return self._config

    @property
    def retriever(self) -> EventRetriever:
        return self._retriever

    @property
    def reconciler(self) -> SnapshotReconciler:
        return self._reconciler

    @staticmethod
    def validate_request(
        subject: str, relays: Sequence[str], since: int, until: int
    ) -> tuple[list[str], Period]:
        """Check a request before any relay is contacted.

        Returns:
            The normalized, duplicate-free relay list and the window.

        Raises:
            ConfigurationError: On an invalid subject, an empty or invalid
                relay set, or an empty or inverted window.
        """
        if not isinstance(subject, str) or not _HEX_KEY.match(subject):
            raise ConfigurationError(f"subject must be a 64-char lowercase hex key: {subject!r}")
        if not relays:
            raise ConfigurationError("at least one relay is required")
        try:
            normalized = list(dict.fromkeys(validate_relay_url(url) for url in relays))
            period = Period(since=since, until=until)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(str(e)) from e
        return normalized, period

    async def compute(
        self,
        subject: str,
        relays: Sequence[str],
        since: int,
        until: int,
        *,
        force: bool = False,
        listener: ProgressListener | None = None,
    ) -> StatsReport:
        """Compute (or load) the snapshot of *subject* for *relays* over ``[since, until)``.

        Args:
            subject: Hex public key.
            relays: Relay set; also part of the cache key.
            since: Window start (inclusive).
            until: Window end (exclusive).
            force: Skip the published-snapshot cache.
            listener: Optional progress observer.

        Raises:
            ConfigurationError: If the request is invalid.
        """
        relay_list, period = self.validate_request(subject, relays, since, until)
        metrics_enabled = self._config.metrics.enabled

        if not force:
            cached = await self._reconciler.find_cached(subject, relay_list, since, until)
            if cached is not None:
                try:
                    snapshot = cached.to_snapshot()
                except ProtocolError as e:
                    self._logger.warning("cache_unusable", subject=subject, error=str(e))
                else:
                    profile = await self._retriever.fetch_profile(subject, relay_list)
                    ProgressReporter(listener, since, until).begin(
                        FetchPhase.DONE, "Loaded published snapshot"
                    )
                    if metrics_enabled:
                        SNAPSHOTS_COMPUTED.labels(source="cache").inc()
                    return StatsReport(snapshot=snapshot, profile=profile, from_cache=True)

        result = await self._retriever.retrieve(subject, relay_list, since, until, listener)

        reporter = ProgressReporter(listener, since, until, self._config.progress_step)
        reporter.begin(FetchPhase.CALCULATING)
        snapshot = accumulate(
            result.own_events,
            result.incoming_events,
            result.sent_zap_events,
            subject,
            period=period,
            relays=relay_list,
            settings=self._config,
        )
        reporter.begin(FetchPhase.DONE)

        if metrics_enabled:
            SNAPSHOTS_COMPUTED.labels(source="fresh").inc()
        self._logger.info(
            "snapshot_computed",
            subject=subject,
            posts=snapshot.kind1_count,
            reactions=snapshot.kind7_count,
            affinity=len(snapshot.affinity_ranking),
        )
        return StatsReport(snapshot=snapshot, profile=result.profile, from_cache=False)

    async def percentiles(
        self, snapshot: StatsSnapshot, *, same_relays: bool = False
    ) -> PercentileData:
        """Rank *snapshot* against published snapshots for the same window.

        Args:
            snapshot: The snapshot to rank.
            same_relays: Restrict the population to the snapshot's relay set.
        """
        population = await self._reconciler.population(
            snapshot.period, snapshot.relays if same_relays else None
        )
        self._logger.debug("percentiles_computed", population=len(population))
        return calculate_all_percentiles(snapshot, population)
