"""
Unit tests for models.event module.

Tests:
- Construction and field validation
- Tag normalization and immutability
- Tag accessors (tag_values, first_tag_value, referenced_*, is_reply)
- from_dict() / to_dict() / from_nostr()
"""

from unittest.mock import MagicMock

import pytest

from fixtures.nostr import ALICE, BOB, SUBJECT, hex_key
from nostryears.models import Event, EventKind


EVENT_ID = hex_key(1)


# =============================================================================
# Construction Tests
# =============================================================================


class TestConstruction:
    """Tests for Event construction and validation."""

    def test_minimal(self) -> None:
        """Test an event with only required fields."""
        event = Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=100)
        assert event.tags == ()
        assert event.content == ""

    def test_tags_normalized_to_tuples(self) -> None:
        """Test that list tags become tuples of tuples."""
        event = Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=0, tags=[["p", ALICE]])
        assert event.tags == (("p", ALICE),)
        hash(event)

    def test_frozen(self) -> None:
        """Test that fields cannot be reassigned."""
        event = Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=0)
        with pytest.raises(AttributeError):
            event.kind = 7  # type: ignore[misc]

    @pytest.mark.parametrize(
        "field_value",
        ["ab", "g" * 64, "AB" * 32],
    )
    def test_invalid_id(self, field_value: str) -> None:
        """Test that short, non-hex and uppercase IDs are rejected."""
        with pytest.raises(ValueError):
            Event(id=field_value, pubkey=SUBJECT, kind=1, created_at=0)

    def test_negative_kind(self) -> None:
        with pytest.raises(ValueError, match="kind"):
            Event(id=EVENT_ID, pubkey=SUBJECT, kind=-1, created_at=0)

    def test_kind_above_range(self) -> None:
        with pytest.raises(ValueError, match="kind"):
            Event(id=EVENT_ID, pubkey=SUBJECT, kind=70_000, created_at=0)

    def test_bool_created_at_rejected(self) -> None:
        with pytest.raises(TypeError, match="created_at"):
            Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=True)

    def test_string_tag_rejected(self) -> None:
        """Test that a bare string is not accepted as a tag."""
        with pytest.raises(TypeError, match="tags"):
            Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=0, tags=["p"])

    def test_non_string_tag_value_rejected(self) -> None:
        with pytest.raises(TypeError, match="tag value"):
            Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=0, tags=[["amount", 1000]])


# =============================================================================
# Tag Accessor Tests
# =============================================================================


class TestTagAccessors:
    """Tests for tag lookup helpers."""

    @pytest.fixture
    def reply(self) -> Event:
        return Event(
            id=EVENT_ID,
            pubkey=SUBJECT,
            kind=EventKind.TEXT_NOTE,
            created_at=0,
            tags=[
                ["e", hex_key(10), "", "root"],
                ["e", hex_key(11), "", "reply"],
                ["p", ALICE],
                ["p", BOB],
                ["p", ""],
                ["t"],
            ],
        )

    def test_tag_values_skip_empty(self, reply: Event) -> None:
        """Test that empty and value-less tags are skipped."""
        assert reply.tag_values("p") == [ALICE, BOB]
        assert reply.tag_values("t") == []

    def test_first_tag_value(self, reply: Event) -> None:
        assert reply.first_tag_value("e") == hex_key(10)
        assert reply.first_tag_value("bolt11") is None

    def test_referenced(self, reply: Event) -> None:
        assert reply.referenced_pubkeys() == [ALICE, BOB]
        assert reply.referenced_event_ids() == [hex_key(10), hex_key(11)]

    def test_is_reply(self, reply: Event) -> None:
        assert reply.is_reply() is True

    def test_not_reply_without_e_tag(self) -> None:
        event = Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=0, tags=[["p", ALICE]])
        assert event.is_reply() is False


# =============================================================================
# Conversion Tests
# =============================================================================


class TestConversion:
    """Tests for dict and nostr_sdk conversion."""

    def test_from_dict_ignores_sig(self) -> None:
        data = {
            "id": EVENT_ID,
            "pubkey": SUBJECT,
            "kind": 7,
            "created_at": 1_740_000_000,
            "tags": [["e", hex_key(2)], ["p", ALICE]],
            "content": "🔥",
            "sig": "00" * 64,
        }
        event = Event.from_dict(data)
        assert event.kind == 7
        assert event.tags == (("e", hex_key(2)), ("p", ALICE))
        assert event.content == "🔥"

    def test_to_dict(self) -> None:
        event = Event(id=EVENT_ID, pubkey=SUBJECT, kind=1, created_at=5, tags=[["p", ALICE]])
        assert event.to_dict() == {
            "id": EVENT_ID,
            "pubkey": SUBJECT,
            "kind": 1,
            "created_at": 5,
            "tags": [["p", ALICE]],
            "content": "",
        }

    def test_from_dict_missing_optional_fields(self) -> None:
        event = Event.from_dict({"id": EVENT_ID, "pubkey": SUBJECT, "kind": 1, "created_at": 0})
        assert event.tags == ()
        assert event.content == ""

    def test_from_nostr(self) -> None:
        """Test conversion from a nostr_sdk.Event-like object."""
        tag = MagicMock()
        tag.as_vec.return_value = ["p", ALICE]
        nostr_event = MagicMock()
        nostr_event.id.return_value.to_hex.return_value = EVENT_ID
        nostr_event.author.return_value.to_hex.return_value = SUBJECT
        nostr_event.kind.return_value.as_u16.return_value = 1
        nostr_event.created_at.return_value.as_secs.return_value = 1_740_000_000
        nostr_event.tags.return_value.to_vec.return_value = [tag]
        nostr_event.content.return_value = "gm"

        event = Event.from_nostr(nostr_event)

        assert event == Event(
            id=EVENT_ID,
            pubkey=SUBJECT,
            kind=1,
            created_at=1_740_000_000,
            tags=[["p", ALICE]],
            content="gm",
        )
