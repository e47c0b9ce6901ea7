"""
Statistics snapshot and its component value types.

A [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot] is one
subject's aggregate over one explicit ``[since, until)`` window and relay
set. It is built exactly once per retrieval pass by
[MetricAccumulator.build()][nostryears.services.accumulator.MetricAccumulator.build]
(or rehydrated from a published record by the reconciler) and is never
updated afterwards.

See Also:
    [nostryears.nips.nip78][]: Wire format for the serializable subset of
        a snapshot.
    [nostryears.services.affinity][]: Produces the
        [AffinityEntry][nostryears.models.snapshot.AffinityEntry] list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .constants import SCHEMA_VERSION
from ._validation import (
    validate_hex_key,
    validate_instance,
    validate_non_negative,
    validate_str,
    validate_timestamp,
)


_HOURS_PER_DAY = 24


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up (``2.5 -> 3``)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True, slots=True)
class Period:
    """Half-open time window ``[since, until)`` in unix seconds.

    Raises:
        ValueError: If ``since`` is not strictly lower than ``until``.
    """

    since: int
    until: int

    def __post_init__(self) -> None:
        validate_timestamp(self.since, "since")
        validate_timestamp(self.until, "until")
        if self.since >= self.until:
            raise ValueError(f"since ({self.since}) must be lower than until ({self.until})")

    @property
    def duration(self) -> int:
        return self.until - self.since

    def contains(self, timestamp: int) -> bool:
        return self.since <= timestamp < self.until


@dataclass(frozen=True, slots=True)
class TopPost:
    """One of the subject's posts with its received-reaction count."""

    id: str
    reaction_count: int

    def __post_init__(self) -> None:
        validate_str(self.id, "id")
        validate_non_negative(self.reaction_count, "reaction_count")


@dataclass(frozen=True, slots=True)
class ReactionCount:
    """A reaction glyph and how often the subject used it."""

    emoji: str
    count: int

    def __post_init__(self) -> None:
        validate_str(self.emoji, "emoji")
        validate_non_negative(self.count, "count")


@dataclass(frozen=True, slots=True)
class MonthlyActivity:
    """Per-kind activity counts for one calendar month (``YYYY-MM``)."""

    month: str
    kind1: int = 0
    kind6: int = 0
    kind7: int = 0
    kind42: int = 0
    kind30023: int = 0
    zaps_sent: int = 0
    zaps_received: int = 0

    def __post_init__(self) -> None:
        validate_str(self.month, "month")


@dataclass(frozen=True, slots=True)
class HourlyActivity:
    """Number of activity events in one hour of the day (0-23)."""

    hour: int
    count: int = 0

    def __post_init__(self) -> None:
        validate_instance(self.hour, int, "hour")
        validate_non_negative(self.hour, "hour")
        if self.hour >= _HOURS_PER_DAY:
            raise ValueError(f"hour must be in 0-23, got {self.hour}")


@dataclass(frozen=True, slots=True)
class ZapTotals:
    """Aggregate of zaps in one direction.

    ``average_sats`` is ``round(total_sats / count)`` (halves up), or 0
    when no zap was counted.
    """

    count: int = 0
    total_sats: int = 0
    average_sats: int = 0

    def __post_init__(self) -> None:
        validate_non_negative(self.count, "count")
        validate_non_negative(self.total_sats, "total_sats")
        validate_non_negative(self.average_sats, "average_sats")

    @classmethod
    def from_amounts(cls, amounts: list[int]) -> ZapTotals:
        """Build totals from per-zap satoshi amounts, ignoring zero-value zaps."""
        counted = [amount for amount in amounts if amount > 0]
        total = sum(counted)
        average = round_half_up(total / len(counted)) if counted else 0
        return cls(count=len(counted), total_sats=total, average_sats=average)


@dataclass(frozen=True, slots=True)
class AffinityEntry:
    """Directional interaction counts between the subject and one identity.

    Attributes:
        pubkey: The other identity.
        reactions_sent: Reactions the subject sent to ``pubkey``.
        replies_sent: Replies the subject sent to ``pubkey``.
        reactions_received: Reactions ``pubkey`` sent to the subject.
        replies_received: Replies ``pubkey`` sent to the subject.
        balance: ``1 - |sent - received| / (sent + received)``; 1.0 is a
            perfectly mutual relationship, 0.0 a one-way one.
        score: Weighted interaction volume (replies count double).
    """

    pubkey: str
    reactions_sent: int = 0
    replies_sent: int = 0
    reactions_received: int = 0
    replies_received: int = 0
    balance: float = 0.0
    score: int = 0

    @property
    def total_sent(self) -> int:
        return self.reactions_sent + self.replies_sent

    @property
    def total_received(self) -> int:
        return self.reactions_received + self.replies_received


@dataclass(frozen=True, slots=True)
class Profile:
    """Subset of kind 0 profile metadata the engine surfaces."""

    name: str | None = None
    display_name: str | None = None
    picture: str | None = None
    about: str | None = None
    nip05: str | None = None

    def display(self) -> str | None:
        """Preferred human-readable name (display name, then name)."""
        return self.display_name or self.name


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """One subject's activity statistics over one window and relay set.

    See Also:
        [accumulate()][nostryears.services.accumulator.accumulate]: The
            only producer of fresh snapshots.
        [PublishedSnapshot][nostryears.nips.nip78.PublishedSnapshot]:
            Durable form, without ``affinity_ranking``.
    """

    subject: str
    relays: tuple[str, ...]
    period: Period
    version: int = SCHEMA_VERSION
    kind1_count: int = 0
    kind1_chars: int = 0
    kind30023_count: int = 0
    kind30023_chars: int = 0
    kind6_count: int = 0
    kind7_count: int = 0
    kind42_count: int = 0
    image_count: int = 0
    received_reactions_count: int = 0
    top_posts: tuple[TopPost, ...] = ()
    top_reaction_emojis: tuple[ReactionCount, ...] = ()
    monthly_activity: tuple[MonthlyActivity, ...] = ()
    hourly_activity: tuple[HourlyActivity, ...] = field(
        default_factory=lambda: tuple(HourlyActivity(hour=h) for h in range(_HOURS_PER_DAY))
    )
    zaps_sent: ZapTotals = field(default_factory=ZapTotals)
    zaps_received: ZapTotals = field(default_factory=ZapTotals)
    affinity_ranking: tuple[AffinityEntry, ...] = ()

    def __post_init__(self) -> None:
        validate_hex_key(self.subject, "subject")
        object.__setattr__(self, "relays", tuple(self.relays))
        for name in (
            "kind1_count",
            "kind1_chars",
            "kind30023_count",
            "kind30023_chars",
            "kind6_count",
            "kind7_count",
            "kind42_count",
            "image_count",
            "received_reactions_count",
        ):
            validate_non_negative(getattr(self, name), name)

    @property
    def top_post_id(self) -> str | None:
        return self.top_posts[0].id if self.top_posts else None

    @property
    def top_post_reaction_count(self) -> int:
        return self.top_posts[0].reaction_count if self.top_posts else 0
