"""Shared constants for the models layer.

Defines enumerations and other constants that are used across multiple
model modules. Placing them here avoids circular dependencies between
the models, nips, and services layers.

See Also:
    [nostryears.models.event][]: Uses [EventKind][nostryears.models.constants.EventKind]
        to classify retrieved events.
    [nostryears.nips.nip78][]: Uses ``SCHEMA_VERSION`` and the namespace tags
        for published snapshots.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Well-known Nostr event kinds consumed or produced by the engine.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text post (NIP-01).
        REPOST: Kind 6 -- repost (NIP-18).
        REACTION: Kind 7 -- reaction (NIP-25).
        CHANNEL_MESSAGE: Kind 42 -- public chat message (NIP-28).
        ZAP_REQUEST: Kind 9734 -- zap request (NIP-57).
        ZAP_RECEIPT: Kind 9735 -- zap receipt (NIP-57).
        LONG_FORM_ARTICLE: Kind 30023 -- long-form article (NIP-23).
        APPLICATION_DATA: Kind 30078 -- addressable application data
            (NIP-78), used for published snapshots.
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    REPOST = 6
    REACTION = 7
    CHANNEL_MESSAGE = 42
    ZAP_REQUEST = 9_734
    ZAP_RECEIPT = 9_735
    LONG_FORM_ARTICLE = 30_023
    APPLICATION_DATA = 30_078


class FetchPhase(StrEnum):
    """Phase identifiers reported through the progress boundary."""

    IDLE = "idle"
    FETCHING_OWN = "fetching_own"
    FETCHING_INCOMING = "fetching_incoming"
    FETCHING_ZAPS = "fetching_zaps"
    CALCULATING = "calculating"
    DONE = "done"


class AffinityAlgorithm(StrEnum):
    """Ranking strategy used by the affinity scorer.

    Attributes:
        PRIMARY_BALANCE: Rank by reactions sent, then by how mutual the
            relationship is. Only identities the subject reacted to are
            eligible.
        WEIGHTED_SUM: Rank by ``reactions * 1 + replies * 2`` summed over
            both directions.
    """

    PRIMARY_BALANCE = "primary_balance"
    WEIGHTED_SUM = "weighted_sum"


EVENT_KIND_MAX = 65_535

# Bumped whenever the published snapshot layout changes; older records are
# ignored for caching and percentiles.
SCHEMA_VERSION = 3

SNAPSHOT_NAMESPACE = "nostr-years-2025"
SNAPSHOT_TOPIC = "nostr-years"

DEFAULT_REACTION_GLYPH = "+"

# Fixed UTC+9 bucketing, independent of the host timezone.
DEFAULT_ACTIVITY_TZ_OFFSET_MINUTES = 540

DEFAULT_RELAYS: tuple[str, ...] = ("wss://r.kojira.io", "wss://yabu.me")

# 2025-01-01 00:00 and 2025-12-01 00:00 at UTC+9.
DEFAULT_PERIOD_SINCE = 1_735_657_200
DEFAULT_PERIOD_UNTIL = 1_764_514_800
