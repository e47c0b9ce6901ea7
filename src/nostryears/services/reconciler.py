"""
Match requests against previously published snapshots.

A published record is a kind 30078 event with the namespace ``d`` tag
(see [nostryears.nips.nip78][]). The reconciler answers three questions:

- [find_cached()][nostryears.services.reconciler.SnapshotReconciler.find_cached]:
  did the subject already publish a snapshot for exactly this relay set
  and window, with the current schema version?
- [recent()][nostryears.services.reconciler.SnapshotReconciler.recent]:
  which subjects published lately (one entry per author)?
- [population()][nostryears.services.reconciler.SnapshotReconciler.population]:
  which records can the percentile engine rank against?

Records whose content does not parse are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostryears.core.exceptions import ProtocolError
from nostryears.core.logger import Logger
from nostryears.models import DEFAULT_RELAYS, SNAPSHOT_NAMESPACE, SNAPSHOT_TOPIC, EventKind
from nostryears.nips.nip78 import PublishedSnapshot
from nostryears.utils.protocol import EventFilter

from .percentile import compatible_population


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nostryears.models import Event, Period

    from .retrieval import EventRetriever


DEFAULT_RECENT_LIMIT = 20

# Records requested per wanted entry; repeat publishers collapse to one entry.
_RECENT_OVERFETCH = 3


@dataclass(frozen=True, slots=True)
class RecentSnapshot:
    """One entry of the recent-results listing."""

    pubkey: str
    created_at: int
    snapshot: PublishedSnapshot

    @property
    def is_current(self) -> bool:
        return self.snapshot.is_current


class SnapshotReconciler:
    """Looks up published snapshots through an
    [EventRetriever][nostryears.services.retrieval.EventRetriever].

    Args:
        retriever: Used for multi-relay lookups.
        relays: Relays consulted for [recent()][nostryears.services.reconciler.SnapshotReconciler.recent]
            and [population()][nostryears.services.reconciler.SnapshotReconciler.population].
    """

    def __init__(self, retriever: EventRetriever, relays: Sequence[str] = DEFAULT_RELAYS) -> None:
        self._retriever = retriever
        self._relays = tuple(relays)
        self._logger = Logger("reconciler")

    def _parse(self, events: Iterable[Event]) -> list[PublishedSnapshot]:
        parsed = []
        for event in events:
            try:
                parsed.append(PublishedSnapshot.from_event(event))
            except ProtocolError as e:
                self._logger.debug("snapshot_skipped", event_id=event.id, error=str(e))
        return parsed

    async def find_cached(
        self, subject: str, relays: Sequence[str], since: int, until: int
    ) -> PublishedSnapshot | None:
        """Newest current-version record of *subject* for exactly these relays and window.

        Relay sets are compared unordered; a subset or superset is a miss.
        """
        event_filter = EventFilter(
            kinds=(EventKind.APPLICATION_DATA,),
            authors=(subject,),
            tags={"d": (SNAPSHOT_NAMESPACE,)},
        )
        events = await self._retriever.fetch_all(event_filter, relays)
        matches = [
            s
            for s in self._parse(events)
            if s.pubkey == subject and s.is_current and s.matches(relays, since, until)
        ]
        if not matches:
            self._logger.debug("cache_miss", subject=subject, candidates=len(events))
            return None
        best = max(matches, key=lambda s: s.created_at)
        self._logger.info("cache_hit", subject=subject, created_at=best.created_at)
        return best

    async def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[RecentSnapshot]:
        """Latest record per author, newest first, at most *limit* entries.

        Records from other schema versions are listed too; check
        [is_current][nostryears.services.reconciler.RecentSnapshot.is_current].
        """
        if limit <= 0:
            return []
        event_filter = EventFilter(
            kinds=(EventKind.APPLICATION_DATA,),
            tags={"t": (SNAPSHOT_TOPIC,)},
            limit=limit * _RECENT_OVERFETCH,
        )
        events = await self._retriever.fetch_all(event_filter, self._relays)

        latest: dict[str, RecentSnapshot] = {}
        for snapshot in self._parse(events):
            if snapshot.pubkey is None:
                continue
            current = latest.get(snapshot.pubkey)
            if current is None or snapshot.created_at > current.created_at:
                latest[snapshot.pubkey] = RecentSnapshot(
                    pubkey=snapshot.pubkey, created_at=snapshot.created_at, snapshot=snapshot
                )
        entries = sorted(latest.values(), key=lambda r: r.created_at, reverse=True)
        return entries[:limit]

    async def population(
        self, period: Period, relays: Iterable[str] | None = None
    ) -> list[PublishedSnapshot]:
        """Current-version records for *period*, one per author.

        Args:
            period: Window the records must cover exactly.
            relays: When given, keep only records computed over this relay set.
        """
        event_filter = EventFilter(
            kinds=(EventKind.APPLICATION_DATA,),
            tags={"d": (SNAPSHOT_NAMESPACE,)},
        )
        events = await self._retriever.fetch_all(event_filter, self._relays)
        population = compatible_population(self._parse(events), period=period, relays=relays)
        self._logger.debug("population_loaded", records=len(events), compatible=len(population))
        return population
