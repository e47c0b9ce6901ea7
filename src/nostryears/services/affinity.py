"""Affinity ranking: who the subject engages with most, and how mutual it is.

Two strategies are available through
[AffinityAlgorithm][nostryears.models.constants.AffinityAlgorithm]:

``PRIMARY_BALANCE`` (default)
    Only identities the subject reacted to at least once are eligible.
    Sorted by reactions sent (descending), then by balance (descending).

``WEIGHTED_SUM``
    ``score = reactions * 1 + replies * 2`` over both directions. Eligible
    identities have at least one reaction in either direction. Sorted by
    score (descending).

Both sorts are stable, so ties keep first-discovered order, and both
truncate to ``limit``. Every entry carries its balance and weighted score
whichever strategy ranked it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostryears.models import AffinityAlgorithm, AffinityEntry


if TYPE_CHECKING:
    from collections.abc import Mapping


DEFAULT_AFFINITY_LIMIT = 10

REACTION_WEIGHT = 1
REPLY_WEIGHT = 2


@dataclass(slots=True)
class DirectionalCounts:
    """Mutable interaction tally between the subject and one identity."""

    reactions_sent: int = 0
    replies_sent: int = 0
    reactions_received: int = 0
    replies_received: int = 0

    @property
    def total_sent(self) -> int:
        return self.reactions_sent + self.replies_sent

    @property
    def total_received(self) -> int:
        return self.reactions_received + self.replies_received


def balance(total_sent: int, total_received: int) -> float:
    """``1 - |sent - received| / (sent + received)``, or 0.0 when both are 0.

    Examples:
        ```python
        balance(5, 5)   # 1.0
        balance(10, 0)  # 0.0
        ```
    """
    total = total_sent + total_received
    if total == 0:
        return 0.0
    return 1 - abs(total_sent - total_received) / total


def weighted_score(counts: DirectionalCounts) -> int:
    reactions = counts.reactions_sent + counts.reactions_received
    replies = counts.replies_sent + counts.replies_received
    return reactions * REACTION_WEIGHT + replies * REPLY_WEIGHT


def _to_entry(pubkey: str, counts: DirectionalCounts) -> AffinityEntry:
    return AffinityEntry(
        pubkey=pubkey,
        reactions_sent=counts.reactions_sent,
        replies_sent=counts.replies_sent,
        reactions_received=counts.reactions_received,
        replies_received=counts.replies_received,
        balance=balance(counts.total_sent, counts.total_received),
        score=weighted_score(counts),
    )


def rank(
    counts: Mapping[str, DirectionalCounts],
    *,
    algorithm: AffinityAlgorithm = AffinityAlgorithm.PRIMARY_BALANCE,
    limit: int = DEFAULT_AFFINITY_LIMIT,
) -> list[AffinityEntry]:
    """Rank identities by affinity with the subject.

    Args:
        counts: Directional counts per identity, in discovery order.
        algorithm: Ranking strategy.
        limit: Maximum number of entries returned.

    Returns:
        At most ``limit`` [AffinityEntry][nostryears.models.snapshot.AffinityEntry]
        objects, best first.
    """
    entries = [_to_entry(pubkey, c) for pubkey, c in counts.items()]

    if algorithm is AffinityAlgorithm.WEIGHTED_SUM:
        eligible = [
            e for e in entries if (e.reactions_sent > 0 or e.reactions_received > 0) and e.score > 0
        ]
        eligible.sort(key=lambda e: -e.score)
    else:
        eligible = [e for e in entries if e.reactions_sent > 0]
        eligible.sort(key=lambda e: (-e.reactions_sent, -e.balance))

    return eligible[:limit]
