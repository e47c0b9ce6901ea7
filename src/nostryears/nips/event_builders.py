"""Nostr event builders for the records nostryears publishes.

Standalone functions returning unsigned ``nostr_sdk.EventBuilder`` objects.
Signing happens in
[SnapshotPublisher][nostryears.services.publisher.SnapshotPublisher].

See Also:
    [PublishedSnapshot][nostryears.nips.nip78.PublishedSnapshot]: Content
        model serialized into the kind 30078 record.
"""

from __future__ import annotations

from nostr_sdk import EventBuilder, Kind, Tag

from nostryears.models.constants import SNAPSHOT_NAMESPACE, SNAPSHOT_TOPIC, EventKind

from .nip78 import PublishedSnapshot


# =============================================================================
# Kind 30078 (NIP-78)
# =============================================================================


def build_snapshot_tags(version: int) -> list[list[str]]:
    """Tag arrays identifying a published snapshot record."""
    return [
        ["d", SNAPSHOT_NAMESPACE],
        ["version", str(version)],
        ["t", SNAPSHOT_TOPIC],
    ]


def build_snapshot_event(snapshot: PublishedSnapshot) -> EventBuilder:
    """Build a kind 30078 addressable snapshot record per NIP-78."""
    tags = [Tag.parse(values) for values in build_snapshot_tags(snapshot.version)]
    return EventBuilder(Kind(EventKind.APPLICATION_DATA), snapshot.to_json()).tags(tags)
