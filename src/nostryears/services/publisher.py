"""Publish a snapshot as a kind 30078 record.

Without signing keys the publisher is read-only: publishing is a no-op
that returns an empty [PublishOutcome][nostryears.services.publisher.PublishOutcome]
instead of failing the computation.

See Also:
    [build_snapshot_event()][nostryears.nips.event_builders.build_snapshot_event]:
        Builds the unsigned record.
    [RelayPool.publish()][nostryears.utils.protocol.RelayPool.publish]:
        Sends the signed record to one relay.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostryears.core.exceptions import PublishingError
from nostryears.core.logger import Logger
from nostryears.nips.event_builders import build_snapshot_event
from nostryears.nips.nip78 import PublishedSnapshot


if TYPE_CHECKING:
    from collections.abc import Sequence

    from nostr_sdk import Event as NostrEvent
    from nostr_sdk import Keys

    from nostryears.models import StatsSnapshot
    from nostryears.utils.protocol import RelayPool


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Per-relay result of one publication."""

    accepted: tuple[str, ...] = ()
    rejected: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        """At least one relay accepted the record."""
        return bool(self.accepted)


class SnapshotPublisher:
    """Signs and broadcasts snapshots.

    Args:
        pool: Relay connections used to send the record.
        keys: Signing keys; ``None`` puts the publisher in read-only mode.
    """

    def __init__(self, pool: RelayPool, keys: Keys | None = None) -> None:
        self._pool = pool
        self._keys = keys
        self._logger = Logger("publisher")

    @property
    def read_only(self) -> bool:
        return self._keys is None

    def sign(self, snapshot: StatsSnapshot) -> NostrEvent:
        """Build and sign the record for *snapshot*.

        Raises:
            PublishingError: If the publisher is read-only or signing fails.
        """
        if self._keys is None:
            raise PublishingError("no signing keys configured")
        if self._keys.public_key().to_hex() != snapshot.subject:
            raise PublishingError("signing keys do not belong to the snapshot subject")
        builder = build_snapshot_event(PublishedSnapshot.from_snapshot(snapshot))
        try:
            return builder.sign_with_keys(self._keys)
        except Exception as e:  # nostr_sdk.NostrError is an FFI type
            raise PublishingError(f"failed to sign snapshot: {e}") from e

    async def _send(self, event: NostrEvent, relay_url: str) -> bool:
        try:
            return await self._pool.publish(event, relay_url)
        except Exception as e:  # Intentionally broad: nostr-sdk FFI raises arbitrary types
            self._logger.warning("publish_send_failed", relay=relay_url, error=str(e))
            return False

    async def publish(self, snapshot: StatsSnapshot, relays: Sequence[str]) -> PublishOutcome:
        """Publish *snapshot* to every relay concurrently.

        Returns:
            Accepted and rejected relay URLs. Empty in read-only mode.

        Raises:
            PublishingError: If signing fails.
        """
        if self.read_only:
            self._logger.info("publish_skipped", reason="read_only")
            return PublishOutcome()

        event = self.sign(snapshot)
        urls = list(dict.fromkeys(relays))
        results = await asyncio.gather(*(self._send(event, url) for url in urls))
        outcome = PublishOutcome(
            accepted=tuple(url for url, ok in zip(urls, results, strict=True) if ok),
            rejected=tuple(url for url, ok in zip(urls, results, strict=True) if not ok),
        )

        if outcome.success:
            self._logger.info(
                "snapshot_published",
                subject=snapshot.subject,
                accepted=len(outcome.accepted),
                rejected=len(outcome.rejected),
            )
        else:
            self._logger.warning("snapshot_publish_failed", subject=snapshot.subject, relays=len(urls))
        return outcome
