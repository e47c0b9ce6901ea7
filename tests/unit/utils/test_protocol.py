"""
Unit tests for utils.protocol module.

Tests:
- RelayPoolConfig defaults and validation
- EventFilter validation, matches() and to_nostr()
- RelayPool connection handling, pagination, publishing, and shutdown
  (nostr-sdk client mocked)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from nostr_sdk import Client, Filter
from pydantic import ValidationError

from fixtures.nostr import ALICE, BOB, SUBJECT, EventFactory, hex_key
from nostryears.core.exceptions import ConnectivityError, RelayTimeoutError
from nostryears.models import EventKind
from nostryears.utils.protocol import (
    EventFilter,
    EventSource,
    RelayPool,
    RelayPoolConfig,
    create_client,
)


RELAY = "wss://relay.example.com"


# =============================================================================
# RelayPoolConfig Tests
# =============================================================================


class TestRelayPoolConfig:
    """Tests for RelayPoolConfig."""

    def test_defaults(self) -> None:
        config = RelayPoolConfig()
        assert config.request_timeout == 30.0
        assert config.connect_timeout == 10.0
        assert config.page_limit == 500
        assert config.max_pages == 200

    def test_rejects_zero_timeout(self) -> None:
        with pytest.raises(ValidationError):
            RelayPoolConfig(request_timeout=0)


# =============================================================================
# EventFilter Tests
# =============================================================================


class TestEventFilter:
    """Tests for EventFilter."""

    def test_invalid_tag_letter(self) -> None:
        with pytest.raises(ValueError, match="single letter"):
            EventFilter(tags={"pp": (SUBJECT,)})

    def test_with_until(self) -> None:
        f = EventFilter(kinds=(1,), since=10, until=100)
        assert f.with_until(50) == EventFilter(kinds=(1,), since=10, until=50)

    def test_matches_kind_author_window(self, make_event: EventFactory) -> None:
        f = EventFilter(kinds=(1, 7), authors=(SUBJECT,), since=100, until=200)

        assert f.matches(make_event(created_at=100)) is True
        assert f.matches(make_event(created_at=200)) is True
        assert f.matches(make_event(created_at=201)) is False
        assert f.matches(make_event(kind=EventKind.REPOST, created_at=150)) is False
        assert f.matches(make_event(pubkey=ALICE, created_at=150)) is False

    def test_tag_case_is_significant(self, make_event: EventFactory) -> None:
        """Test that #P and #p filters are distinct."""
        sent = make_event(pubkey=ALICE, tags=[["p", BOB], ["P", SUBJECT]])
        received = make_event(pubkey=ALICE, tags=[["p", SUBJECT]])

        upper = EventFilter(tags={"P": (SUBJECT,)})
        lower = EventFilter(tags={"p": (SUBJECT,)})

        assert upper.matches(sent) is True
        assert upper.matches(received) is False
        assert lower.matches(received) is True
        assert lower.matches(sent) is False

    def test_matches_ids(self, make_event: EventFactory) -> None:
        event = make_event(event_id=hex_key(7))
        assert EventFilter(ids=(hex_key(7),)).matches(event) is True
        assert EventFilter(ids=(hex_key(8),)).matches(event) is False

    def test_to_nostr(self) -> None:
        f = EventFilter(
            ids=(hex_key(1),),
            kinds=(EventKind.TEXT_NOTE,),
            authors=(SUBJECT,),
            tags={"p": (ALICE,), "P": (BOB,), "d": ("nostr-years-2025",)},
            since=10,
            until=20,
        )
        assert isinstance(f.to_nostr(default_limit=500), Filter)


# =============================================================================
# RelayPool Tests
# =============================================================================


def nostr_event(event_id: str, created_at: int, *, valid: bool = True) -> MagicMock:
    """Mock nostr_sdk.Event exposing the accessors used by Event.from_nostr()."""
    evt = MagicMock()
    evt.verify.return_value = valid
    evt.id.return_value.to_hex.return_value = event_id
    evt.author.return_value.to_hex.return_value = SUBJECT
    evt.kind.return_value.as_u16.return_value = 1
    evt.created_at.return_value.as_secs.return_value = created_at
    evt.tags.return_value.to_vec.return_value = []
    evt.content.return_value = ""
    return evt


def events_page(*events: MagicMock) -> MagicMock:
    page = MagicMock()
    page.to_vec.return_value = list(events)
    return page


@pytest.fixture
def relay_url() -> MagicMock:
    """Stand-in for the parsed RelayUrl (compared by identity)."""
    return MagicMock(name="RelayUrl")


@pytest.fixture
def client(relay_url: MagicMock) -> MagicMock:
    client = MagicMock()
    client.add_relay = AsyncMock()
    client.try_connect = AsyncMock(return_value=MagicMock(success=[relay_url], failed={}))
    client.fetch_events = AsyncMock(return_value=events_page())
    client.send_event = AsyncMock(return_value=MagicMock(success=[relay_url], failed={}))
    client.shutdown = AsyncMock()
    return client


@pytest.fixture
def pool(client: MagicMock, relay_url: MagicMock):
    with (
        patch("nostryears.utils.protocol.create_client", return_value=client),
        patch("nostryears.utils.protocol.RelayUrl") as relay_url_cls,
    ):
        relay_url_cls.parse.return_value = relay_url
        yield RelayPool(RelayPoolConfig(page_limit=2))


class TestRelayPoolConnect:
    """Tests for lazy connection handling."""

    def test_create_client_takes_no_keys(self) -> None:
        assert isinstance(create_client(), Client)

    def test_pool_takes_only_config(self) -> None:
        with pytest.raises(TypeError):
            RelayPool(RelayPoolConfig(), object())  # type: ignore[call-arg]

    def test_is_event_source(self, pool: RelayPool) -> None:
        assert isinstance(pool, EventSource)

    async def test_connects_once(self, pool: RelayPool, client: MagicMock) -> None:
        [e async for e in pool.query(RELAY, EventFilter())]
        [e async for e in pool.query(RELAY, EventFilter())]
        client.try_connect.assert_awaited_once()

    async def test_timeout(self, pool: RelayPool, client: MagicMock, relay_url: MagicMock) -> None:
        client.try_connect.return_value = MagicMock(
            success=[], failed={relay_url: "Connection timeout"}
        )
        with pytest.raises(RelayTimeoutError):
            [e async for e in pool.query(RELAY, EventFilter())]
        client.shutdown.assert_awaited_once()

    async def test_refused(self, pool: RelayPool, client: MagicMock, relay_url: MagicMock) -> None:
        client.try_connect.return_value = MagicMock(success=[], failed={relay_url: "refused"})
        with pytest.raises(ConnectivityError, match="refused"):
            [e async for e in pool.query(RELAY, EventFilter())]


class TestRelayPoolQuery:
    """Tests for backwards pagination."""

    async def test_pages_until_empty(self, pool: RelayPool, client: MagicMock) -> None:
        """Test that pages move `until` back and drop same-second duplicates."""
        client.fetch_events.side_effect = [
            events_page(nostr_event(hex_key(1), 300), nostr_event(hex_key(2), 200)),
            events_page(nostr_event(hex_key(2), 200), nostr_event(hex_key(3), 100)),
            events_page(nostr_event(hex_key(3), 100)),
        ]

        events = [e async for e in pool.query(RELAY, EventFilter(kinds=(1,)))]

        assert [e.id for e in events] == [hex_key(1), hex_key(2), hex_key(3)]
        assert client.fetch_events.await_count == 3

    async def test_stops_at_since(self, pool: RelayPool, client: MagicMock) -> None:
        client.fetch_events.side_effect = [
            events_page(nostr_event(hex_key(1), 300), nostr_event(hex_key(2), 50)),
        ]
        events = [e async for e in pool.query(RELAY, EventFilter(since=50))]

        assert len(events) == 2
        assert client.fetch_events.await_count == 1

    async def test_explicit_limit_single_page(self, pool: RelayPool, client: MagicMock) -> None:
        client.fetch_events.return_value = events_page(nostr_event(hex_key(1), 300))
        events = [e async for e in pool.query(RELAY, EventFilter(limit=1))]

        assert len(events) == 1
        assert client.fetch_events.await_count == 1

    async def test_invalid_signatures_dropped(self, pool: RelayPool, client: MagicMock) -> None:
        client.fetch_events.side_effect = [
            events_page(nostr_event(hex_key(1), 300), nostr_event(hex_key(2), 200, valid=False)),
            events_page(),
        ]
        events = [e async for e in pool.query(RELAY, EventFilter())]
        assert [e.id for e in events] == [hex_key(1)]

    async def test_page_cap(self, client: MagicMock, relay_url: MagicMock) -> None:
        """Test that pagination stops after max_pages."""
        counter = iter(range(1000, 0, -1))

        async def endless(*_args: object) -> MagicMock:
            ts = next(counter)
            return events_page(nostr_event(hex_key(ts), ts))

        client.fetch_events.side_effect = endless
        with (
            patch("nostryears.utils.protocol.create_client", return_value=client),
            patch("nostryears.utils.protocol.RelayUrl") as relay_url_cls,
        ):
            relay_url_cls.parse.return_value = relay_url
            pool = RelayPool(RelayPoolConfig(max_pages=3))
            events = [e async for e in pool.query(RELAY, EventFilter())]

        assert len(events) == 3

    async def test_full_single_second_page_steps_back(
        self, pool: RelayPool, client: MagicMock
    ) -> None:
        """Test that a full page from one second moves `until` below that second."""
        client.fetch_events.side_effect = [
            events_page(nostr_event(hex_key(1), 300), nostr_event(hex_key(2), 300)),
            events_page(nostr_event(hex_key(3), 250)),
            events_page(nostr_event(hex_key(3), 250)),
        ]

        with patch.object(
            EventFilter, "to_nostr", autospec=True, return_value=MagicMock()
        ) as to_nostr:
            events = [e async for e in pool.query(RELAY, EventFilter(kinds=(1,)))]

        assert [e.id for e in events] == [hex_key(1), hex_key(2), hex_key(3)]
        assert [c.args[0].until for c in to_nostr.call_args_list] == [None, 299, 250]


class TestRelayPoolPublishAndClose:
    """Tests for publish() and close()."""

    async def test_publish_accepted(self, pool: RelayPool, client: MagicMock) -> None:
        assert await pool.publish(MagicMock(), RELAY) is True
        client.send_event.assert_awaited_once()

    async def test_publish_rejected(self, pool: RelayPool, client: MagicMock) -> None:
        client.send_event.return_value = MagicMock(success=[], failed={})
        assert await pool.publish(MagicMock(), RELAY) is False

    async def test_close_shuts_down_clients(self, pool: RelayPool, client: MagicMock) -> None:
        async with pool:
            [e async for e in pool.query(RELAY, EventFilter())]
        client.shutdown.assert_awaited_once()

        await pool.close()
        client.shutdown.assert_awaited_once()

    async def test_close_suppresses_errors(self, pool: RelayPool, client: MagicMock) -> None:
        client.shutdown.side_effect = RuntimeError("ffi")
        [e async for e in pool.query(RELAY, EventFilter())]
        await pool.close()
