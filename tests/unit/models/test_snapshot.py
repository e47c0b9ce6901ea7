"""
Unit tests for models.snapshot module.

Tests:
- round_half_up()
- Period validation and membership
- Value types (TopPost, HourlyActivity, ZapTotals)
- StatsSnapshot defaults and derived properties
"""

import pytest

from fixtures.nostr import RELAY_A, SINCE, SUBJECT, UNTIL
from nostryears.models import (
    SCHEMA_VERSION,
    HourlyActivity,
    Period,
    Profile,
    StatsSnapshot,
    TopPost,
    ZapTotals,
    round_half_up,
)


class TestRoundHalfUp:
    """Tests for round_half_up()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2.5, 3), (3.5, 4), (2.4999, 2), (0.5, 1), (0.0, 0), (150.5, 151)],
    )
    def test_values(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestPeriod:
    """Tests for the half-open Period window."""

    def test_contains_is_half_open(self) -> None:
        period = Period(since=100, until=200)
        assert period.contains(100) is True
        assert period.contains(199) is True
        assert period.contains(200) is False
        assert period.contains(99) is False

    def test_duration(self) -> None:
        assert Period(since=100, until=250).duration == 150

    def test_empty_window_rejected(self) -> None:
        with pytest.raises(ValueError, match="lower than"):
            Period(since=100, until=100)

    def test_inverted_window_rejected(self) -> None:
        with pytest.raises(ValueError):
            Period(since=200, until=100)


class TestValueTypes:
    """Tests for snapshot component types."""

    def test_top_post_negative_count(self) -> None:
        with pytest.raises(ValueError):
            TopPost(id="x", reaction_count=-1)

    def test_hour_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="0-23"):
            HourlyActivity(hour=24)

    def test_hour_negative(self) -> None:
        with pytest.raises(ValueError, match="hour must be non-negative"):
            HourlyActivity(hour=-1)

    def test_hour_not_int(self) -> None:
        with pytest.raises(TypeError, match="hour must be an int"):
            HourlyActivity(hour=1.5)

    def test_zap_totals_from_amounts(self) -> None:
        """Test that zero-value zaps are ignored and the average rounds half up."""
        totals = ZapTotals.from_amounts([100, 0, 201])
        assert totals == ZapTotals(count=2, total_sats=301, average_sats=151)

    def test_zap_totals_empty(self) -> None:
        assert ZapTotals.from_amounts([]) == ZapTotals()

    def test_profile_display(self) -> None:
        assert Profile(name="alice", display_name="Alice").display() == "Alice"
        assert Profile(name="alice").display() == "alice"
        assert Profile().display() is None


class TestStatsSnapshot:
    """Tests for StatsSnapshot defaults and validation."""

    def test_defaults(self) -> None:
        snapshot = StatsSnapshot(
            subject=SUBJECT, relays=[RELAY_A], period=Period(since=SINCE, until=UNTIL)
        )
        assert snapshot.version == SCHEMA_VERSION
        assert snapshot.relays == (RELAY_A,)
        assert [h.hour for h in snapshot.hourly_activity] == list(range(24))
        assert snapshot.top_post_id is None
        assert snapshot.top_post_reaction_count == 0

    def test_top_post_properties(self) -> None:
        snapshot = StatsSnapshot(
            subject=SUBJECT,
            relays=(RELAY_A,),
            period=Period(since=SINCE, until=UNTIL),
            top_posts=(TopPost(id="a", reaction_count=9), TopPost(id="b", reaction_count=3)),
        )
        assert snapshot.top_post_id == "a"
        assert snapshot.top_post_reaction_count == 9

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError, match="kind1_count"):
            StatsSnapshot(
                subject=SUBJECT,
                relays=(RELAY_A,),
                period=Period(since=SINCE, until=UNTIL),
                kind1_count=-1,
            )

    def test_invalid_subject_rejected(self) -> None:
        with pytest.raises(ValueError, match="subject"):
            StatsSnapshot(subject="npub1xyz", relays=(), period=Period(since=SINCE, until=UNTIL))
