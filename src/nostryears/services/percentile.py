"""Rank one snapshot against a population of published snapshots.

Convention: **lower is better**. ``percentile(x, population)`` is

    round_half_up(100 - below / len(population) * 100)

where ``below`` counts population values strictly lower than ``x``. A
value above every member scores 0 (top); a value no member is below
scores 100. An empty population scores 0.

Examples:
    ```python
    percentile(3, [1, 2, 3, 4, 5])  # 60
    format_percentile(4)            # 'Top 5%'
    ```
"""

from __future__ import annotations

import bisect
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Protocol

from nostryears.models import round_half_up


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nostryears.models import Period
    from nostryears.nips.nip78 import PublishedSnapshot


class _Metrics(Protocol):
    kind1_count: int
    kind1_chars: int
    kind30023_count: int
    kind6_count: int
    kind7_count: int
    kind42_count: int
    image_count: int

    @property
    def top_post_reaction_count(self) -> int: ...


@dataclass(frozen=True, slots=True)
class PercentileData:
    """Per-metric percentile of one snapshot (lower is better)."""

    kind1_count: int = 0
    kind1_chars: int = 0
    kind30023_count: int = 0
    kind6_count: int = 0
    kind7_count: int = 0
    kind42_count: int = 0
    image_count: int = 0
    top_post_reaction_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def percentile(value: float, population: Sequence[float]) -> int:
    """Percentile of *value* within *population*; see module docstring."""
    if not population:
        return 0
    below = bisect.bisect_left(sorted(population), value)
    return round_half_up(100 - below / len(population) * 100)


def calculate_all_percentiles(mine: _Metrics, population: Sequence[_Metrics]) -> PercentileData:
    """Compute every tracked metric's percentile for *mine*.

    Args:
        mine: A [StatsSnapshot][nostryears.models.snapshot.StatsSnapshot]
            or [PublishedSnapshot][nostryears.nips.nip78.PublishedSnapshot].
        population: Snapshots to rank against, typically from
            [compatible_population()][nostryears.services.percentile.compatible_population].
    """
    values: dict[str, int] = {}
    for name in PercentileData.__dataclass_fields__:
        values[name] = percentile(
            getattr(mine, name), [getattr(other, name) for other in population]
        )
    return PercentileData(**values)


def compatible_population(
    snapshots: Iterable[PublishedSnapshot],
    *,
    period: Period,
    relays: Iterable[str] | None = None,
) -> list[PublishedSnapshot]:
    """Keep current-version records for *period* (and *relays*, if given).

    One record per author is kept, the most recently created one.
    """
    relay_set = frozenset(relays) if relays is not None else None
    latest: dict[str | None, PublishedSnapshot] = {}
    anonymous: list[PublishedSnapshot] = []

    for snapshot in snapshots:
        if not snapshot.is_current or snapshot.period is None:
            continue
        if snapshot.period.since != period.since or snapshot.period.until != period.until:
            continue
        if relay_set is not None and snapshot.relay_set != relay_set:
            continue
        if snapshot.pubkey is None:
            anonymous.append(snapshot)
            continue
        current = latest.get(snapshot.pubkey)
        if current is None or snapshot.created_at > current.created_at:
            latest[snapshot.pubkey] = snapshot

    return [*latest.values(), *anonymous]


_LABEL_THRESHOLDS = (1, 5, 10, 25, 50)


def format_percentile(value: int) -> str:
    """Render a percentile as a "Top N%" label, snapping to common brackets."""
    for threshold in _LABEL_THRESHOLDS:
        if value <= threshold:
            return f"Top {threshold}%"
    return f"Top {value}%"
