"""
Immutable Nostr event record used throughout the aggregation pipeline.

Events are produced by the relay boundary
([RelayPool][nostryears.utils.protocol.RelayPool]) and consumed read-only
by the accumulator, reconciler, and zap helpers. The model is a plain
frozen dataclass so that the services layer can be exercised without a
live ``nostr_sdk`` client; [from_nostr()][nostryears.models.event.Event.from_nostr]
converts an SDK event at the boundary.

See Also:
    [nostryears.services.retrieval][]: Merges and deduplicates events by
        ``id`` across relays.
    [nostryears.services.accumulator][]: Folds events into a
        [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot].
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._validation import validate_hex_key, validate_str, validate_timestamp
from .constants import EVENT_KIND_MAX


if TYPE_CHECKING:
    from nostr_sdk import Event as NostrEvent


Tag = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable, content-addressed Nostr event.

    Tags are normalized to a tuple of tuples during construction so that
    the instance is hashable and cannot be mutated by consumers.

    Args:
        id: Event ID (64-char lowercase hex, SHA-256 of the serialized event).
        pubkey: Author public key (64-char lowercase hex).
        kind: Integer event kind.
        created_at: Unix timestamp in seconds.
        tags: Ordered tag arrays; the first element is the tag name.
        content: Free text whose semantics depend on ``kind``.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``id``/``pubkey`` are not hex keys or ``kind`` is out of range.

    Examples:
        ```python
        event = Event(id="ab" * 32, pubkey="cd" * 32, kind=1,
                      created_at=1_740_000_000, tags=[["p", "ef" * 32]],
                      content="hello")
        event.referenced_pubkeys()  # ['efef...']
        ```
    """

    id: str
    pubkey: str
    kind: int
    created_at: int
    tags: tuple[Tag, ...] = ()
    content: str = ""

    def __post_init__(self) -> None:
        validate_hex_key(self.id, "id")
        validate_hex_key(self.pubkey, "pubkey")
        validate_timestamp(self.kind, "kind")
        if self.kind > EVENT_KIND_MAX:
            raise ValueError(f"kind must be in 0-{EVENT_KIND_MAX}, got {self.kind}")
        validate_timestamp(self.created_at, "created_at")
        validate_str(self.content, "content")

        normalized: list[Tag] = []
        for tag in self.tags:
            if isinstance(tag, str) or not isinstance(tag, Iterable):
                raise TypeError(f"tags must contain sequences, got {type(tag).__name__}")
            values = tuple(tag)
            for value in values:
                validate_str(value, "tag value")
            normalized.append(values)
        object.__setattr__(self, "tags", tuple(normalized))

    # -------------------------------------------------------------------------
    # Tag accessors
    # -------------------------------------------------------------------------

    def tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag called *name*, skipping empty ones."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name and tag[1]]

    def first_tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag called *name*, or ``None``."""
        values = self.tag_values(name)
        return values[0] if values else None

    def referenced_pubkeys(self) -> list[str]:
        """Identities referenced through ``p`` tags."""
        return self.tag_values("p")

    def referenced_event_ids(self) -> list[str]:
        """Events referenced through ``e`` tags."""
        return self.tag_values("e")

    def is_reply(self) -> bool:
        """Whether the event references another event (has an ``e`` tag)."""
        return bool(self.referenced_event_ids())

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Build an event from a NIP-01 JSON object (``sig`` is ignored)."""
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            kind=data["kind"],
            created_at=data["created_at"],
            tags=tuple(tuple(tag) for tag in data.get("tags", ())),
            content=data.get("content", ""),
        )

    @classmethod
    def from_nostr(cls, event: NostrEvent) -> Event:
        """Convert a ``nostr_sdk.Event`` into an [Event][nostryears.models.event.Event]."""
        return cls(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            kind=event.kind().as_u16(),
            created_at=event.created_at().as_secs(),
            tags=tuple(tuple(tag.as_vec()) for tag in event.tags().to_vec()),
            content=event.content(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a NIP-01 style dictionary (without ``sig``)."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "kind": self.kind,
            "created_at": self.created_at,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }
