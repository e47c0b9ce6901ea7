"""Pure frozen dataclasses with zero I/O for events and statistics snapshots.

The models layer is the foundation of the diamond DAG. It has **no runtime
dependencies** on any other nostryears package -- only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` and
validates in ``__post_init__`` so invalid instances never escape the
constructor.

Attributes:
    Event: Immutable Nostr event with tag accessors and ``nostr_sdk``
        conversion.
    StatsSnapshot: One subject's aggregate over a window and relay set.
    Period: Half-open ``[since, until)`` window.
    AffinityEntry: Computed, never persisted, per-identity interaction counts.
    EventKind: Event kinds consumed and produced by the engine.

See Also:
    [nostryears.nips][]: Wire formats (zap invoices, profiles, published
        snapshots) built on top of these models.
"""

from .constants import (
    DEFAULT_ACTIVITY_TZ_OFFSET_MINUTES,
    DEFAULT_PERIOD_SINCE,
    DEFAULT_PERIOD_UNTIL,
    DEFAULT_REACTION_GLYPH,
    DEFAULT_RELAYS,
    SCHEMA_VERSION,
    SNAPSHOT_NAMESPACE,
    SNAPSHOT_TOPIC,
    AffinityAlgorithm,
    EventKind,
    FetchPhase,
)
from .event import Event
from .snapshot import (
    AffinityEntry,
    HourlyActivity,
    MonthlyActivity,
    Period,
    Profile,
    ReactionCount,
    StatsSnapshot,
    TopPost,
    ZapTotals,
    round_half_up,
)


__all__ = [
    "DEFAULT_ACTIVITY_TZ_OFFSET_MINUTES",
    "DEFAULT_PERIOD_SINCE",
    "DEFAULT_PERIOD_UNTIL",
    "DEFAULT_REACTION_GLYPH",
    "DEFAULT_RELAYS",
    "SCHEMA_VERSION",
    "SNAPSHOT_NAMESPACE",
    "SNAPSHOT_TOPIC",
    "AffinityAlgorithm",
    "AffinityEntry",
    "Event",
    "EventKind",
    "FetchPhase",
    "HourlyActivity",
    "MonthlyActivity",
    "Period",
    "Profile",
    "ReactionCount",
    "StatsSnapshot",
    "TopPost",
    "ZapTotals",
    "round_half_up",
]
