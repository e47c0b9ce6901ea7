"""
NIP-78 published snapshot wire format.

A subject may publish its [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot]
as a kind 30078 addressable record::

    tags:    ["d", "nostr-years-2025"], ["version", "3"], ["t", "nostr-years"]
    content: {"version": 3, "relays": [...], "period": {"since": ..., "until": ...},
              "kind1Count": ..., "topPosts": [{"id": ..., "reactionCount": ...}], ...}

Content keys are camelCase. Every metric field is optional on input and
defaults to zero or empty, so that older or partial records still parse.
The affinity ranking is local-only and never serialized.

A record is trusted for caching and percentiles only when
[is_current][nostryears.nips.nip78.PublishedSnapshot.is_current] holds;
stale records are still listed by
[SnapshotReconciler.recent()][nostryears.services.reconciler.SnapshotReconciler.recent].

See Also:
    [build_snapshot_event()][nostryears.nips.event_builders.build_snapshot_event]:
        Wraps [to_json()][nostryears.nips.nip78.PublishedSnapshot.to_json]
        into a signed-ready ``EventBuilder``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError
from pydantic.alias_generators import to_camel

from nostryears.core.exceptions import ProtocolError
from nostryears.models import (
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


if TYPE_CHECKING:
    from collections.abc import Iterable

    from nostryears.models import Event


_HOURS_PER_DAY = 24


class _WireModel(BaseModel):
    """Frozen model serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PeriodData(_WireModel):
    since: NonNegativeInt
    until: NonNegativeInt


class TopPostData(_WireModel):
    id: str
    reaction_count: NonNegativeInt = 0


class ReactionCountData(_WireModel):
    emoji: str
    count: NonNegativeInt = 0


class MonthlyActivityData(_WireModel):
    month: str
    kind1: NonNegativeInt = 0
    kind6: NonNegativeInt = 0
    kind7: NonNegativeInt = 0
    kind42: NonNegativeInt = 0
    kind30023: NonNegativeInt = 0
    zaps_sent: NonNegativeInt = 0
    zaps_received: NonNegativeInt = 0


class HourlyActivityData(_WireModel):
    hour: int = Field(ge=0, lt=_HOURS_PER_DAY)
    count: NonNegativeInt = 0


class ZapTotalsData(_WireModel):
    count: NonNegativeInt = 0
    total_sats: NonNegativeInt = 0
    average_sats: NonNegativeInt = 0


class PublishedSnapshot(_WireModel):
    """Durable, versioned form of a statistics snapshot.

    ``pubkey`` and ``created_at`` describe the carrying record rather than
    the content, and are excluded from serialization.
    """

    version: int = 0
    relays: tuple[str, ...] = ()
    period: PeriodData | None = None
    kind1_count: NonNegativeInt = 0
    kind1_chars: NonNegativeInt = 0
    kind30023_count: NonNegativeInt = 0
    kind30023_chars: NonNegativeInt = 0
    kind6_count: NonNegativeInt = 0
    kind7_count: NonNegativeInt = 0
    received_reactions_count: NonNegativeInt = 0
    kind42_count: NonNegativeInt = 0
    image_count: NonNegativeInt = 0
    top_posts: tuple[TopPostData, ...] = ()
    top_reaction_emojis: tuple[ReactionCountData, ...] = ()
    monthly_activity: tuple[MonthlyActivityData, ...] = ()
    hourly_activity: tuple[HourlyActivityData, ...] = ()
    zaps_received: ZapTotalsData = Field(default_factory=ZapTotalsData)
    zaps_sent: ZapTotalsData = Field(default_factory=ZapTotalsData)

    pubkey: str | None = Field(default=None, exclude=True)
    created_at: int = Field(default=0, exclude=True)

    # -------------------------------------------------------------------------
    # Derived properties
    # -------------------------------------------------------------------------

    @property
    def is_current(self) -> bool:
        """Whether the record uses the engine's current schema version."""
        return self.version == SCHEMA_VERSION

    @property
    def relay_set(self) -> frozenset[str]:
        return frozenset(self.relays)

    @property
    def top_post_reaction_count(self) -> int:
        return self.top_posts[0].reaction_count if self.top_posts else 0

    def matches(self, relays: Iterable[str], since: int, until: int) -> bool:
        """Whether this record covers exactly the given relay set and window."""
        return (
            self.period is not None
            and self.period.since == since
            and self.period.until == until
            and self.relay_set == frozenset(relays)
        )

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    @classmethod
    def from_event(cls, event: Event) -> Self:
        """Parse a kind 30078 record.

        When the content carries no ``version`` key, the ``version`` tag is
        used instead.

        Raises:
            ProtocolError: If the event is not a kind 30078 record or its
                content is not a valid snapshot object.
        """
        if event.kind != EventKind.APPLICATION_DATA:
            raise ProtocolError(f"expected kind {EventKind.APPLICATION_DATA}, got {event.kind}")
        try:
            data: Any = json.loads(event.content)
        except (json.JSONDecodeError, TypeError) as e:
            raise ProtocolError(f"snapshot {event.id} content is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"snapshot {event.id} content must be a JSON object")

        if "version" not in data:
            tag_version = event.first_tag_value("version")
            if tag_version is not None and tag_version.isdigit():
                data["version"] = int(tag_version)

        try:
            parsed = cls.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(f"snapshot {event.id} failed validation: {e}") from e
        return parsed.model_copy(update={"pubkey": event.pubkey, "created_at": event.created_at})

    def to_json(self) -> str:
        """Serialize the content with camelCase keys."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_snapshot(cls, snapshot: StatsSnapshot) -> Self:
        """Build the serializable subset of a snapshot (without the affinity ranking)."""
        return cls(
            version=snapshot.version,
            relays=snapshot.relays,
            period=PeriodData(since=snapshot.period.since, until=snapshot.period.until),
            kind1_count=snapshot.kind1_count,
            kind1_chars=snapshot.kind1_chars,
            kind30023_count=snapshot.kind30023_count,
            kind30023_chars=snapshot.kind30023_chars,
            kind6_count=snapshot.kind6_count,
            kind7_count=snapshot.kind7_count,
            received_reactions_count=snapshot.received_reactions_count,
            kind42_count=snapshot.kind42_count,
            image_count=snapshot.image_count,
            top_posts=tuple(
                TopPostData(id=p.id, reaction_count=p.reaction_count) for p in snapshot.top_posts
            ),
            top_reaction_emojis=tuple(
                ReactionCountData(emoji=r.emoji, count=r.count)
                for r in snapshot.top_reaction_emojis
            ),
            monthly_activity=tuple(
                MonthlyActivityData(
                    month=m.month,
                    kind1=m.kind1,
                    kind6=m.kind6,
                    kind7=m.kind7,
                    kind42=m.kind42,
                    kind30023=m.kind30023,
                    zaps_sent=m.zaps_sent,
                    zaps_received=m.zaps_received,
                )
                for m in snapshot.monthly_activity
            ),
            hourly_activity=tuple(
                HourlyActivityData(hour=h.hour, count=h.count) for h in snapshot.hourly_activity
            ),
            zaps_received=ZapTotalsData(**_zap_fields(snapshot.zaps_received)),
            zaps_sent=ZapTotalsData(**_zap_fields(snapshot.zaps_sent)),
            pubkey=snapshot.subject,
        )

    def to_snapshot(self) -> StatsSnapshot:
        """Rehydrate a [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot].

        The affinity ranking is empty and missing hours are zero-filled.

        Raises:
            ProtocolError: If the record has no author or no period.
        """
        if self.pubkey is None or self.period is None:
            raise ProtocolError("snapshot record lacks an author or a period")
        try:
            period = Period(since=self.period.since, until=self.period.until)
        except ValueError as e:
            raise ProtocolError(f"snapshot record has an invalid period: {e}") from e

        hours = {h.hour: h.count for h in self.hourly_activity}
        return StatsSnapshot(
            subject=self.pubkey,
            relays=self.relays,
            period=period,
            version=self.version,
            kind1_count=self.kind1_count,
            kind1_chars=self.kind1_chars,
            kind30023_count=self.kind30023_count,
            kind30023_chars=self.kind30023_chars,
            kind6_count=self.kind6_count,
            kind7_count=self.kind7_count,
            kind42_count=self.kind42_count,
            image_count=self.image_count,
            received_reactions_count=self.received_reactions_count,
            top_posts=tuple(TopPost(id=p.id, reaction_count=p.reaction_count) for p in self.top_posts),
            top_reaction_emojis=tuple(
                ReactionCount(emoji=r.emoji, count=r.count) for r in self.top_reaction_emojis
            ),
            monthly_activity=tuple(
                MonthlyActivity(**m.model_dump()) for m in self.monthly_activity
            ),
            hourly_activity=tuple(
                HourlyActivity(hour=h, count=hours.get(h, 0)) for h in range(_HOURS_PER_DAY)
            ),
            zaps_sent=ZapTotals(**self.zaps_sent.model_dump()),
            zaps_received=ZapTotals(**self.zaps_received.model_dump()),
        )


def _zap_fields(totals: ZapTotals) -> dict[str, int]:
    return {
        "count": totals.count,
        "total_sats": totals.total_sats,
        "average_sats": totals.average_sats,
    }
