"""
Phased, deduplicated, progress-reporting event retrieval.

One call to [EventRetriever.retrieve()][nostryears.services.retrieval.EventRetriever.retrieve]
runs three phases strictly in sequence, each fanning out to every relay
concurrently:

```text
A  fetching_own        authors=[subject]  kinds {1, 6, 7, 42, 30023, 9734}
B  fetching_incoming   #p=[subject]       kinds {1, 7, 9735}
C  fetching_zaps       #P=[subject]       kind 9735 (zaps sent by subject)
```

A kind 0 profile lookup is started before phase A and awaited only when
the result is assembled.

Within a phase, results are merged across relays, duplicates are dropped
by event ID (first occurrence wins), and events outside ``[since, until)``
are discarded. A relay that fails to connect or errors mid-query is
logged and dropped from that phase together with its partial events;
if every relay fails the phase yields an empty list.

See Also:
    [ProgressReporter][nostryears.services.progress.ProgressReporter]:
        Progress estimation from event timestamps.
    [RelayPool][nostryears.utils.protocol.RelayPool]: Production
        [EventSource][nostryears.utils.protocol.EventSource].
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostryears.core.logger import Logger
from nostryears.core.metrics import EVENTS_RETRIEVED, PHASE_DURATION_SECONDS, RELAY_FAILURES
from nostryears.models import Event, EventKind, FetchPhase, Period, Profile
from nostryears.nips.nip01 import profile_from_event
from nostryears.utils.protocol import EventFilter

from .progress import DEFAULT_PROGRESS_STEP, ProgressReporter


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nostryears.utils.protocol import EventSource

    from .progress import ProgressListener


OWN_KINDS: tuple[int, ...] = (
    EventKind.TEXT_NOTE,
    EventKind.REPOST,
    EventKind.REACTION,
    EventKind.CHANNEL_MESSAGE,
    EventKind.LONG_FORM_ARTICLE,
    EventKind.ZAP_REQUEST,
)
INCOMING_KINDS: tuple[int, ...] = (
    EventKind.TEXT_NOTE,
    EventKind.REACTION,
    EventKind.ZAP_RECEIPT,
)
SENT_ZAP_KINDS: tuple[int, ...] = (EventKind.ZAP_RECEIPT,)


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """Events gathered for one subject, each list newest first and duplicate-free."""

    own_events: tuple[Event, ...] = ()
    incoming_events: tuple[Event, ...] = ()
    sent_zap_events: tuple[Event, ...] = ()
    profile: Profile | None = None


class EventRetriever:
    """Runs the three retrieval phases against an [EventSource][nostryears.utils.protocol.EventSource].

    Args:
        source: Where events come from (usually a
            [RelayPool][nostryears.utils.protocol.RelayPool]).
        progress_step: Minimum progress advance between two updates.
        metrics_enabled: Record Prometheus counters for each phase.
    """

    def __init__(
        self,
        source: EventSource,
        *,
        progress_step: float = DEFAULT_PROGRESS_STEP,
        metrics_enabled: bool = False,
    ) -> None:
        self._source = source
        self._progress_step = progress_step
        self._metrics_enabled = metrics_enabled
        self._logger = Logger("retrieval")

    async def retrieve(
        self,
        subject: str,
        relays: Sequence[str],
        since: int,
        until: int,
        listener: ProgressListener | None = None,
    ) -> RetrievalResult:
        """Retrieve the subject's own, incoming, and sent-zap events.

        Args:
            subject: Hex public key of the subject.
            relays: Relay URLs to query. Empty yields an empty result.
            since: Window start (inclusive, unix seconds).
            until: Window end (exclusive, unix seconds).
            listener: Optional progress observer.

        Returns:
            A [RetrievalResult][nostryears.services.retrieval.RetrievalResult].

        Raises:
            ValueError: If ``since >= until``.
        """
        period = Period(since=since, until=until)
        reporter = ProgressReporter(listener, since, until, self._progress_step)
        relay_list = list(dict.fromkeys(relays))
        # Relay `until` is inclusive; the window end is exclusive.
        last_second = until - 1

        self._logger.info(
            "retrieval_started", subject=subject, relays=len(relay_list), since=since, until=until
        )
        profile_task = asyncio.create_task(self.fetch_profile(subject, relay_list))
        try:
            own = await self._run_phase(
                FetchPhase.FETCHING_OWN,
                EventFilter(kinds=OWN_KINDS, authors=(subject,), since=since, until=last_second),
                relay_list,
                period,
                reporter,
            )
            incoming = await self._run_phase(
                FetchPhase.FETCHING_INCOMING,
                EventFilter(
                    kinds=INCOMING_KINDS, tags={"p": (subject,)}, since=since, until=last_second
                ),
                relay_list,
                period,
                reporter,
            )
            sent_zaps = await self._run_phase(
                FetchPhase.FETCHING_ZAPS,
                EventFilter(
                    kinds=SENT_ZAP_KINDS, tags={"P": (subject,)}, since=since, until=last_second
                ),
                relay_list,
                period,
                reporter,
            )
        except BaseException:
            profile_task.cancel()
            raise

        profile = await profile_task
        self._logger.info(
            "retrieval_completed",
            subject=subject,
            own=len(own),
            incoming=len(incoming),
            sent_zaps=len(sent_zaps),
            profile=profile is not None,
        )
        return RetrievalResult(
            own_events=tuple(own),
            incoming_events=tuple(incoming),
            sent_zap_events=tuple(sent_zaps),
            profile=profile,
        )

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _run_phase(
        self,
        phase: FetchPhase,
        event_filter: EventFilter,
        relays: list[str],
        period: Period,
        reporter: ProgressReporter,
    ) -> list[Event]:
        reporter.begin(phase)
        started = time.monotonic()

        batches = await asyncio.gather(
            *(self._query_relay(url, event_filter, phase, reporter) for url in relays)
        )

        merged: dict[str, Event] = {}
        responded = 0
        for batch in batches:
            if batch is None:
                continue
            responded += 1
            for event in batch:
                if period.contains(event.created_at) and event.id not in merged:
                    merged[event.id] = event

        events = sorted(merged.values(), key=lambda e: e.created_at, reverse=True)
        elapsed = time.monotonic() - started

        if relays and responded == 0:
            self._logger.warning("phase_failed", phase=phase.value, relays=len(relays))
        else:
            self._logger.debug(
                "phase_completed",
                phase=phase.value,
                events=len(events),
                responded=responded,
                relays=len(relays),
                duration_s=round(elapsed, 3),
            )

        if self._metrics_enabled:
            EVENTS_RETRIEVED.labels(phase=phase.value).inc(len(events))
            PHASE_DURATION_SECONDS.labels(phase=phase.value).observe(elapsed)
            failed = len(relays) - responded
            if failed:
                RELAY_FAILURES.labels(phase=phase.value).inc(failed)

        reporter.end()
        return events

    async def _query_relay(
        self,
        relay_url: str,
        event_filter: EventFilter,
        phase: FetchPhase,
        reporter: ProgressReporter,
    ) -> list[Event] | None:
        """Drain one relay; ``None`` when the relay failed."""
        events: list[Event] = []
        try:
            async for event in self._source.query(relay_url, event_filter):
                events.append(event)
                reporter.observe(event.created_at)
        except Exception as e:  # Intentionally broad: nostr-sdk FFI raises arbitrary types
            self._logger.warning(
                "relay_query_failed",
                relay=relay_url,
                phase=phase.value,
                error=str(e),
                error_type=type(e).__name__,
                dropped=len(events),
            )
            return None
        return events

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def _collect(self, relay_url: str, event_filter: EventFilter) -> list[Event]:
        try:
            return [event async for event in self._source.query(relay_url, event_filter)]
        except Exception as e:  # Intentionally broad: nostr-sdk FFI raises arbitrary types
            self._logger.warning("relay_lookup_failed", relay=relay_url, error=str(e))
            return []

    async def fetch_all(self, event_filter: EventFilter, relays: Iterable[str]) -> list[Event]:
        """Query every relay concurrently and merge by ID, newest first."""
        batches = await asyncio.gather(
            *(self._collect(url, event_filter) for url in dict.fromkeys(relays))
        )
        merged: dict[str, Event] = {}
        for batch in batches:
            for event in batch:
                merged.setdefault(event.id, event)
        return sorted(merged.values(), key=lambda e: e.created_at, reverse=True)

    async def fetch_profile(self, subject: str, relays: Iterable[str]) -> Profile | None:
        """Latest kind 0 profile of *subject* across relays, or ``None``."""
        event_filter = EventFilter(kinds=(EventKind.SET_METADATA,), authors=(subject,), limit=1)
        events = await self.fetch_all(event_filter, relays)
        return profile_from_event(events[0] if events else None)

    async def fetch_profiles(
        self, pubkeys: Iterable[str], relays: Iterable[str]
    ) -> dict[str, Profile]:
        """Latest profile of each pubkey; pubkeys without a valid profile are omitted."""
        authors = tuple(dict.fromkeys(pubkeys))
        if not authors:
            return {}
        event_filter = EventFilter(kinds=(EventKind.SET_METADATA,), authors=authors)
        latest: dict[str, Event] = {}
        for event in await self.fetch_all(event_filter, relays):
            latest.setdefault(event.pubkey, event)
        profiles: dict[str, Profile] = {}
        for pubkey, event in latest.items():
            profile = profile_from_event(event)
            if profile is not None:
                profiles[pubkey] = profile
        return profiles

    async def fetch_event(self, event_id: str, relays: Iterable[str]) -> Event | None:
        """Look up a single event by ID on any relay."""
        events = await self.fetch_all(EventFilter(ids=(event_id,), limit=1), relays)
        return events[0] if events else None
