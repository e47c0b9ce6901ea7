"""
Fold retrieved events into a [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot].

[MetricAccumulator][nostryears.services.accumulator.MetricAccumulator]
collects events through ``add_own``, ``add_incoming`` and ``add_sent_zap``
and folds them once, in [build()][nostryears.services.accumulator.MetricAccumulator.build]:
own events first, then incoming events, then sent zaps. Folding in a fixed
order makes the result independent of the order events were added in,
except for first-seen tie-breaks in the top-N lists.

Per-kind rules for the subject's own events:

```text
1      post      count, URL-free chars, images; replies feed "reply sent to X"
6      repost    count
7      reaction  count, glyph frequency ("+" when empty); "reaction sent to X"
42     chat      count
30023  article   count, URL-free chars
9734   zap req.  sent zap when no phase-C receipt embeds it
```

Incoming events authored by the subject are ignored. A reaction whose
target is one of the subject's posts increments that post's counter; a
reply tagging the subject records "reply received from X"; a zap receipt
tagging the subject counts as a received zap.

Month (``YYYY-MM``) and hour-of-day buckets use a fixed UTC offset
(``activity_timezone_offset_minutes``, UTC+9 by default), never the host
timezone.

See Also:
    [rank()][nostryears.services.affinity.rank]: Applied to the
        directional counts at build time.
    [nostryears.nips.nip57][]: Zap amount and sender helpers.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from nostryears.core.logger import Logger
from nostryears.models import (
    DEFAULT_REACTION_GLYPH,
    SCHEMA_VERSION,
    EventKind,
    HourlyActivity,
    MonthlyActivity,
    Period,
    ReactionCount,
    StatsSnapshot,
    TopPost,
    ZapTotals,
)
from nostryears.nips.nip57 import (
    embedded_zap_request_id,
    zap_receipt_amount_sats,
    zap_recipient,
    zap_request_amount_sats,
    zap_sender,
)
from nostryears.utils.text import count_chars_without_urls, count_images

from .affinity import DirectionalCounts, rank
from .configs import StatsConfig


if TYPE_CHECKING:
    from collections.abc import Iterable

    from nostryears.models import Event


_HOURS_PER_DAY = 24
_DECEMBER = 12

_ACTIVITY_KINDS = frozenset(
    {
        EventKind.TEXT_NOTE,
        EventKind.REPOST,
        EventKind.REACTION,
        EventKind.CHANNEL_MESSAGE,
        EventKind.LONG_FORM_ARTICLE,
    }
)

_MONTH_FIELDS = {
    EventKind.TEXT_NOTE: "kind1",
    EventKind.REPOST: "kind6",
    EventKind.REACTION: "kind7",
    EventKind.CHANNEL_MESSAGE: "kind42",
    EventKind.LONG_FORM_ARTICLE: "kind30023",
}


def month_keys(period: Period, tz: timezone) -> list[str]:
    """Every ``YYYY-MM`` from ``since`` to ``until - 1`` in *tz*, inclusive."""
    start = datetime.fromtimestamp(period.since, tz)
    end = datetime.fromtimestamp(period.until - 1, tz)
    keys = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == _DECEMBER else (year, month + 1)
    return keys


class MetricAccumulator:
    """Single-use fold of one subject's events into a snapshot.

    Args:
        subject: Hex public key of the subject.
        period: Window; events outside it are ignored.
        relays: Relay set the events were retrieved from.
        settings: Limits, timezone offset and affinity algorithm.
    """

    def __init__(
        self,
        subject: str,
        period: Period,
        relays: Iterable[str],
        settings: StatsConfig | None = None,
    ) -> None:
        self._subject = subject
        self._period = period
        self._relays = tuple(relays)
        self._settings = settings or StatsConfig()
        self._tz = timezone(timedelta(minutes=self._settings.activity_timezone_offset_minutes))
        self._logger = Logger("accumulator")

        self._seen: set[str] = set()
        self._own: list[Event] = []
        self._incoming: list[Event] = []
        self._sent_zaps: list[Event] = []

    # -------------------------------------------------------------------------
    # Collection
    # -------------------------------------------------------------------------

    def _accept(self, event: Event) -> bool:
        if event.id in self._seen or not self._period.contains(event.created_at):
            return False
        self._seen.add(event.id)
        return True

    def add_own(self, events: Iterable[Event]) -> None:
        """Add events authored by the subject (phase A)."""
        for event in events:
            if event.pubkey != self._subject:
                self._logger.debug("own_event_foreign_author", event_id=event.id)
                continue
            if self._accept(event):
                self._own.append(event)

    def add_incoming(self, events: Iterable[Event]) -> None:
        """Add events referencing the subject (phase B); self-authored ones are ignored."""
        for event in events:
            if event.pubkey == self._subject:
                continue
            if self._accept(event):
                self._incoming.append(event)

    def add_sent_zap(self, events: Iterable[Event]) -> None:
        """Add zap receipts naming the subject as sender (phase C)."""
        for event in events:
            if event.kind == EventKind.ZAP_RECEIPT and self._accept(event):
                self._sent_zaps.append(event)

    # -------------------------------------------------------------------------
    # Fold
    # -------------------------------------------------------------------------

    def build(self) -> StatsSnapshot:
        """Fold every collected event and return the immutable snapshot."""
        fold = _Fold(self._subject, self._tz)

        for event in self._own:
            fold.own(event)
        for event in self._incoming:
            fold.incoming(event)
        for event in self._sent_zaps:
            fold.sent_zap_receipt(event)
        fold.unmatched_zap_requests()

        settings = self._settings
        top_posts = sorted(
            ((post_id, n) for post_id, n in fold.post_reactions.items() if n > 0),
            key=lambda item: -item[1],
        )[: settings.top_posts_limit]
        top_emojis = sorted(fold.glyphs.items(), key=lambda item: -item[1])[
            : settings.top_reactions_limit
        ]
        months = month_keys(self._period, self._tz)

        snapshot = StatsSnapshot(
            subject=self._subject,
            relays=self._relays,
            period=self._period,
            version=SCHEMA_VERSION,
            kind1_count=fold.kind1_count,
            kind1_chars=fold.kind1_chars,
            kind30023_count=fold.kind30023_count,
            kind30023_chars=fold.kind30023_chars,
            kind6_count=fold.kind6_count,
            kind7_count=fold.kind7_count,
            kind42_count=fold.kind42_count,
            image_count=fold.image_count,
            received_reactions_count=fold.received_reactions_count,
            top_posts=tuple(TopPost(id=post_id, reaction_count=n) for post_id, n in top_posts),
            top_reaction_emojis=tuple(
                ReactionCount(emoji=glyph, count=n) for glyph, n in top_emojis
            ),
            monthly_activity=tuple(
                MonthlyActivity(month=key, **fold.months.get(key, {})) for key in months
            ),
            hourly_activity=tuple(
                HourlyActivity(hour=h, count=fold.hours[h]) for h in range(_HOURS_PER_DAY)
            ),
            zaps_sent=ZapTotals.from_amounts(fold.zaps_sent),
            zaps_received=ZapTotals.from_amounts(fold.zaps_received),
            affinity_ranking=tuple(
                rank(
                    fold.affinity,
                    algorithm=settings.affinity_algorithm,
                    limit=settings.affinity_limit,
                )
            ),
        )
        self._logger.debug(
            "snapshot_built",
            subject=self._subject,
            own=len(self._own),
            incoming=len(self._incoming),
            sent_zaps=len(self._sent_zaps),
        )
        return snapshot


class _Fold:
    """Mutable counters for one build pass."""

    def __init__(self, subject: str, tz: timezone) -> None:
        self.subject = subject
        self.tz = tz

        self.kind1_count = 0
        self.kind1_chars = 0
        self.kind30023_count = 0
        self.kind30023_chars = 0
        self.kind6_count = 0
        self.kind7_count = 0
        self.kind42_count = 0
        self.image_count = 0
        self.received_reactions_count = 0

        self.post_reactions: dict[str, int] = {}
        self.glyphs: dict[str, int] = {}
        self.months: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.hours = [0] * _HOURS_PER_DAY
        self.affinity: dict[str, DirectionalCounts] = {}

        self.zaps_sent: list[int] = []
        self.zaps_received: list[int] = []
        self.zap_requests: list[Event] = []
        self.embedded_requests: set[str] = set()

    def _moment(self, created_at: int) -> datetime:
        return datetime.fromtimestamp(created_at, UTC).astimezone(self.tz)

    def _bucket(self, created_at: int, field: str) -> None:
        moment = self._moment(created_at)
        self.months[f"{moment.year:04d}-{moment.month:02d}"][field] += 1

    def _counts(self, pubkey: str) -> DirectionalCounts:
        counts = self.affinity.get(pubkey)
        if counts is None:
            counts = self.affinity[pubkey] = DirectionalCounts()
        return counts

    def _others(self, event: Event) -> list[str]:
        return [p for p in dict.fromkeys(event.referenced_pubkeys()) if p != self.subject]

    # -------------------------------------------------------------------------

    def own(self, event: Event) -> None:
        kind = event.kind
        if kind == EventKind.ZAP_REQUEST:
            self.zap_requests.append(event)
            return
        if kind not in _ACTIVITY_KINDS:
            return

        if kind == EventKind.TEXT_NOTE:
            self.kind1_count += 1
            self.kind1_chars += count_chars_without_urls(event.content)
            self.image_count += count_images(event.content)
            self.post_reactions.setdefault(event.id, 0)
            if event.is_reply():
                for pubkey in self._others(event):
                    self._counts(pubkey).replies_sent += 1
        elif kind == EventKind.REPOST:
            self.kind6_count += 1
        elif kind == EventKind.REACTION:
            self.kind7_count += 1
            glyph = event.content or DEFAULT_REACTION_GLYPH
            self.glyphs[glyph] = self.glyphs.get(glyph, 0) + 1
            for pubkey in self._others(event):
                self._counts(pubkey).reactions_sent += 1
        elif kind == EventKind.CHANNEL_MESSAGE:
            self.kind42_count += 1
        else:
            self.kind30023_count += 1
            self.kind30023_chars += count_chars_without_urls(event.content)

        self._bucket(event.created_at, _MONTH_FIELDS[kind])
        self.hours[self._moment(event.created_at).hour] += 1

    def incoming(self, event: Event) -> None:
        kind = event.kind
        if kind == EventKind.REACTION:
            # NIP-25: the last "e" tag is the reacted-to event.
            target = next(
                (eid for eid in reversed(event.referenced_event_ids()) if eid in self.post_reactions),
                None,
            )
            if target is None:
                return
            self.post_reactions[target] += 1
            self.received_reactions_count += 1
            self._counts(event.pubkey).reactions_received += 1
        elif kind == EventKind.TEXT_NOTE:
            if event.is_reply() and self.subject in event.referenced_pubkeys():
                self._counts(event.pubkey).replies_received += 1
        elif kind == EventKind.ZAP_RECEIPT:
            if zap_recipient(event) != self.subject or zap_sender(event) == self.subject:
                return
            amount = zap_receipt_amount_sats(event)
            if amount > 0:
                self.zaps_received.append(amount)
                self._bucket(event.created_at, "zaps_received")

    def sent_zap_receipt(self, event: Event) -> None:
        request_id = embedded_zap_request_id(event)
        if request_id is not None:
            self.embedded_requests.add(request_id)
        if zap_sender(event) != self.subject or zap_recipient(event) == self.subject:
            return
        amount = zap_receipt_amount_sats(event)
        if amount > 0:
            self.zaps_sent.append(amount)
            self._bucket(event.created_at, "zaps_sent")

    def unmatched_zap_requests(self) -> None:
        """Count own zap requests that no retrieved receipt accounts for."""
        for request in self.zap_requests:
            if request.id in self.embedded_requests:
                continue
            recipient = zap_recipient(request)
            if recipient is None or recipient == self.subject:
                continue
            amount = zap_request_amount_sats(request)
            if amount > 0:
                self.zaps_sent.append(amount)
                self._bucket(request.created_at, "zaps_sent")


def accumulate(
    own_events: Iterable[Event],
    incoming_events: Iterable[Event],
    sent_zap_events: Iterable[Event],
    subject: str,
    *,
    period: Period,
    relays: Iterable[str],
    settings: StatsConfig | None = None,
) -> StatsSnapshot:
    """Pure fold of retrieved events into a snapshot.

    Examples:
        ```python
        snapshot = accumulate(own, incoming, sent_zaps, subject,
                              period=Period(since, until), relays=["wss://yabu.me"])
        snapshot.kind1_count
        ```
    """
    accumulator = MetricAccumulator(subject, period, relays, settings)
    accumulator.add_own(own_events)
    accumulator.add_incoming(incoming_events)
    accumulator.add_sent_zap(sent_zap_events)
    return accumulator.build()
