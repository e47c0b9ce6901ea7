"""Nostr relay client operations for nostryears.

Provides the retrieval and publish boundaries consumed by the services
layer: an [EventFilter][nostryears.utils.protocol.EventFilter] value type,
the [EventSource][nostryears.utils.protocol.EventSource] protocol, and
[RelayPool][nostryears.utils.protocol.RelayPool], its ``nostr-sdk``
implementation.

Attributes:
    create_client: Client factory.
    RelayPool: Caller-owned set of relay clients (one per relay URL),
        disposed with ``async with`` or [close()][nostryears.utils.protocol.RelayPool.close].
    EventSource: Structural protocol for anything that can stream events
        from a relay (``RelayPool`` or an in-memory fake in tests).

Note:
    Relays commonly cap the number of events returned per request.
    [RelayPool.query()][nostryears.utils.protocol.RelayPool.query] therefore
    pages backwards in time, moving ``until`` to the oldest ``created_at``
    seen, until a page yields no new events. ``until`` is inclusive on the
    wire, so same-second events are refetched and dropped by ID. A full page
    from a single second steps ``until`` one second back and logs a warning,
    since the rest of that second cannot be reached.

Examples:
    ```python
    from nostryears.utils.protocol import EventFilter, RelayPool

    async with RelayPool() as pool:
        f = EventFilter(kinds=(1,), authors=(pubkey,), since=since, until=until - 1)
        async for event in pool.query("wss://yabu.me", f):
            print(event.id, event.created_at)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from nostr_sdk import (
    Alphabet,
    Client,
    ClientBuilder,
    EventId,
    Filter,
    Kind,
    PublicKey,
    RelayUrl,
    SingleLetterTag,
    Timestamp,
)
from pydantic import BaseModel, Field

from nostryears.core.exceptions import ConnectivityError, RelayTimeoutError
from nostryears.models.event import Event


if TYPE_CHECKING:
    from nostr_sdk import Event as NostrEvent


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


class RelayPoolConfig(BaseModel):
    """Per-relay connection and paging settings.

    Attributes:
        request_timeout: Seconds to wait for one page of events.
        connect_timeout: Seconds to wait for the WebSocket handshake.
        page_limit: ``limit`` sent with each page request.
        max_pages: Upper bound on pages fetched per query.
    """

    request_timeout: float = Field(default=30.0, gt=0.0, description="Per-page request timeout")
    connect_timeout: float = Field(default=10.0, gt=0.0, description="Connection timeout")
    page_limit: int = Field(default=500, ge=1, le=5_000, description="Events per page")
    max_pages: int = Field(default=200, ge=1, description="Maximum pages per query")


# =============================================================================
# Filter
# =============================================================================


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Relay query filter (NIP-01 ``REQ`` subset).

    Attributes:
        ids: Event IDs to match (empty = any).
        kinds: Event kinds to match.
        authors: Hex public keys of accepted authors (empty = any).
        tags: Single-letter tag filters, e.g. ``{"p": ("ab..",)}``. Case
            is significant: ``"P"`` is distinct from ``"p"``.
        since: Inclusive lower bound on ``created_at``.
        until: Inclusive upper bound on ``created_at``.
        limit: Maximum events per page; ``None`` uses the pool default.
    """

    ids: tuple[str, ...] = ()
    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    tags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        for letter in self.tags:
            if len(letter) != 1 or not letter.isascii() or not letter.isalpha():
                raise ValueError(f"tag filter must be a single letter, got {letter!r}")
        object.__setattr__(self, "ids", tuple(self.ids))
        object.__setattr__(self, "kinds", tuple(self.kinds))
        object.__setattr__(self, "authors", tuple(self.authors))
        object.__setattr__(self, "tags", {k: tuple(v) for k, v in self.tags.items()})

    def with_until(self, until: int) -> EventFilter:
        return dataclasses.replace(self, until=until)

    def matches(self, event: Event) -> bool:
        """Whether *event* satisfies this filter (used by in-memory sources)."""
        if self.ids and event.id not in self.ids:
            return False
        if self.kinds and event.kind not in self.kinds:
            return False
        if self.authors and event.pubkey not in self.authors:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        return all(
            any(value in values for value in event.tag_values(letter))
            for letter, values in self.tags.items()
        )

    def to_nostr(self, default_limit: int) -> Filter:
        """Build the equivalent ``nostr_sdk.Filter``."""
        f = Filter().limit(self.limit if self.limit is not None else default_limit)
        if self.ids:
            f = f.ids([EventId.parse(i) for i in self.ids])
        if self.kinds:
            f = f.kinds([Kind(k) for k in self.kinds])
        if self.authors:
            f = f.authors([PublicKey.parse(a) for a in self.authors])
        if self.since is not None:
            f = f.since(Timestamp.from_secs(self.since))
        if self.until is not None:
            f = f.until(Timestamp.from_secs(self.until))

        for letter, values in self.tags.items():
            alphabet = getattr(Alphabet, letter.upper())
            tag = (
                SingleLetterTag.lowercase(alphabet)
                if letter.islower()
                else SingleLetterTag.uppercase(alphabet)
            )
            for value in values:
                f = f.custom_tag(tag, value)
        return f


# =============================================================================
# Boundary protocol
# =============================================================================


@runtime_checkable
class EventSource(Protocol):
    """Anything that can stream events from a relay, newest first."""

    def query(self, relay_url: str, event_filter: EventFilter) -> AsyncIterator[Event]: ...


# =============================================================================
# nostr-sdk implementation
# =============================================================================


def create_client() -> Client:
    """Create a Nostr client.

    Events are signed before they reach the client, so no signer is set.

    Returns:
        Configured ``Client`` instance (call ``add_relay()`` before use).
    """
    return ClientBuilder().build()


class RelayPool:
    """One lazily connected ``nostr_sdk.Client`` per relay URL.

    The pool is owned by its caller, one per invocation or session, and
    must be closed to release the WebSocket connections.

    Args:
        config: Timeouts and paging settings.
    """

    def __init__(self, config: RelayPoolConfig | None = None) -> None:
        self._config = config or RelayPoolConfig()
        self._clients: dict[str, Client] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def config(self) -> RelayPoolConfig:
        return self._config

    async def __aenter__(self) -> RelayPool:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def _client(self, relay_url: str) -> Client:
        """Return the connected client for *relay_url*, connecting on first use.

        Raises:
            RelayTimeoutError: If the handshake timed out.
            ConnectivityError: If the relay refused or failed the connection.
        """
        lock = self._locks.setdefault(relay_url, asyncio.Lock())
        async with lock:
            client = self._clients.get(relay_url)
            if client is not None:
                return client

            url = RelayUrl.parse(relay_url)
            client = create_client()
            await client.add_relay(url)
            output = await client.try_connect(timedelta(seconds=self._config.connect_timeout))

            if url not in output.success:
                error_message = output.failed.get(url, "Unknown error")
                with contextlib.suppress(Exception):
                    await client.shutdown()
                logger.debug("connect_failed relay=%s error=%s", relay_url, error_message)
                if "timeout" in str(error_message).lower():
                    raise RelayTimeoutError(f"Connection timeout: {relay_url}")
                raise ConnectivityError(f"Connection failed: {relay_url} ({error_message})")

            logger.debug("relay_connected relay=%s", relay_url)
            self._clients[relay_url] = client
            return client

    async def _fetch_page(self, client: Client, event_filter: EventFilter) -> list[Event]:
        """Fetch one page, dropping events that fail verification or parsing."""
        events = await client.fetch_events(
            event_filter.to_nostr(self._config.page_limit),
            timedelta(seconds=self._config.request_timeout),
        )
        page: list[Event] = []
        for evt in events.to_vec():
            try:
                if evt.verify():
                    page.append(Event.from_nostr(evt))
            except (ValueError, TypeError, OverflowError):
                continue
        page.sort(key=lambda e: e.created_at, reverse=True)
        return page

    async def query(self, relay_url: str, event_filter: EventFilter) -> AsyncIterator[Event]:
        """Yield every event matching *event_filter* from one relay, newest first.

        Raises:
            ConnectivityError: If the relay cannot be reached.
        """
        client = await self._client(relay_url)
        seen: set[str] = set()
        current = event_filter

        for page_number in range(self._config.max_pages):
            fetched = await self._fetch_page(client, current)
            page = [e for e in fetched if e.id not in seen]
            if not page:
                return
            for event in page:
                seen.add(event.id)
                yield event

            oldest = page[-1].created_at
            if event_filter.limit is not None or (
                event_filter.since is not None and oldest <= event_filter.since
            ):
                return
            next_until = oldest
            if (
                len(fetched) >= self._config.page_limit
                and fetched[0].created_at == fetched[-1].created_at
            ):
                # A full page inside one second would come back unchanged forever
                next_until = oldest - 1
                logger.warning(
                    "query_second_saturated relay=%s created_at=%d page_limit=%d",
                    relay_url,
                    oldest,
                    self._config.page_limit,
                )
            current = current.with_until(next_until)
            logger.debug(
                "query_next_page relay=%s page=%d until=%d", relay_url, page_number + 1, next_until
            )

        logger.warning(
            "query_page_cap_reached relay=%s max_pages=%d", relay_url, self._config.max_pages
        )

    async def publish(self, event: NostrEvent, relay_url: str) -> bool:
        """Send an already-signed event to one relay.

        Returns:
            ``True`` if the relay accepted the event.

        Raises:
            ConnectivityError: If the relay cannot be reached.
        """
        client = await self._client(relay_url)
        output = await client.send_event(event)
        url = RelayUrl.parse(relay_url)
        if url in output.success:
            return True
        logger.debug("publish_rejected relay=%s reason=%s", relay_url, output.failed.get(url))
        return False

    async def close(self) -> None:
        """Shut down every client. Safe to call more than once."""
        clients, self._clients = self._clients, {}
        for client in clients.values():
            # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
            with contextlib.suppress(Exception):
                await client.shutdown()
