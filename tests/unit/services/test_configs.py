"""
Unit tests for services.configs module.

Tests:
- validate_relay_url()
- StatsConfig defaults, relay normalization and bounds
- from_dict() / from_yaml() error wrapping
- load_keys()
"""

from pathlib import Path

import pytest

from nostryears.core.exceptions import ConfigurationError
from nostryears.models import DEFAULT_RELAYS, AffinityAlgorithm
from nostryears.services.configs import StatsConfig, validate_relay_url


class TestValidateRelayUrl:
    """Tests for validate_relay_url()."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("wss://yabu.me", "wss://yabu.me"),
            ("  wss://yabu.me/ ", "wss://yabu.me"),
            ("ws://localhost:7777", "ws://localhost:7777"),
            ("WSS://relay.example.com", "WSS://relay.example.com"),
        ],
    )
    def test_valid(self, url: str, expected: str) -> None:
        assert validate_relay_url(url) == expected

    @pytest.mark.parametrize("url", ["https://yabu.me", "yabu.me", "wss://", ""])
    def test_invalid(self, url: str) -> None:
        with pytest.raises(ValueError, match="ws://"):
            validate_relay_url(url)


class TestStatsConfig:
    """Tests for StatsConfig."""

    def test_defaults(self) -> None:
        config = StatsConfig()
        assert config.relays == list(DEFAULT_RELAYS)
        assert config.activity_timezone_offset_minutes == 540
        assert config.affinity_algorithm is AffinityAlgorithm.PRIMARY_BALANCE
        assert config.affinity_limit == 10
        assert config.top_posts_limit == 3
        assert config.top_reactions_limit == 10
        assert config.progress_step == 2.0
        assert config.pool.page_limit == 500
        assert config.keys_env == "PRIVATE_KEY"
        assert config.metrics.enabled is False

    def test_relays_normalized_and_deduplicated(self) -> None:
        config = StatsConfig(relays=["wss://yabu.me/", "wss://yabu.me", "wss://r.kojira.io"])
        assert config.relays == ["wss://yabu.me", "wss://r.kojira.io"]

    def test_from_dict_algorithm(self) -> None:
        config = StatsConfig.from_dict({"affinity_algorithm": "weighted_sum"})
        assert config.affinity_algorithm is AffinityAlgorithm.WEIGHTED_SUM

    @pytest.mark.parametrize(
        "data",
        [
            {"relays": []},
            {"relays": ["https://yabu.me"]},
            {"activity_timezone_offset_minutes": 900},
            {"affinity_algorithm": "random"},
            {"affinity_limit": 0},
            {"progress_step": 0},
            {"pool": {"page_limit": 0}},
        ],
    )
    def test_from_dict_invalid(self, data: dict) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            StatsConfig.from_dict(data)

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "nostryears.yaml"
        path.write_text(
            "relays:\n  - wss://yabu.me\n"
            "activity_timezone_offset_minutes: 0\n"
            "pool:\n  request_timeout: 5\n"
            "metrics:\n  enabled: true\n"
        )
        config = StatsConfig.from_yaml(path)

        assert config.relays == ["wss://yabu.me"]
        assert config.activity_timezone_offset_minutes == 0
        assert config.pool.request_timeout == 5.0
        assert config.pool.connect_timeout == 10.0
        assert config.metrics.enabled is True

    def test_from_yaml_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("relays: [\n")
        with pytest.raises(ConfigurationError):
            StatsConfig.from_yaml(path)

    def test_shipped_sample_config(self) -> None:
        sample = Path(__file__).parents[3] / "config" / "nostryears.yaml"
        config = StatsConfig.from_yaml(sample)
        assert config == StatsConfig()


class TestLoadKeys:
    """Tests for StatsConfig.load_keys()."""

    def test_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NOSTRYEARS_UNSET_KEY", raising=False)
        assert StatsConfig(keys_env="NOSTRYEARS_UNSET_KEY").load_keys() is None

    def test_invalid_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NOSTRYEARS_BAD_KEY", "garbage")
        with pytest.raises(ConfigurationError, match="NOSTRYEARS_BAD_KEY"):
            StatsConfig(keys_env="NOSTRYEARS_BAD_KEY").load_keys()
