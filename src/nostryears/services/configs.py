"""Configuration models for the statistics engine.

All settings are Pydantic models so that YAML files can override any
subset of fields and inherit the rest from defaults.

Examples:
    ```yaml
    relays:
      - wss://r.kojira.io
      - wss://yabu.me
    affinity_algorithm: weighted_sum
    pool:
      request_timeout: 20
    metrics:
      enabled: true
      textfile: /var/lib/node_exporter/nostryears.prom
    ```

See Also:
    [load_yaml()][nostryears.core.yaml.load_yaml]: Safe YAML loading used
        by [StatsConfig.from_yaml()][nostryears.services.configs.StatsConfig.from_yaml].
    [StatsEngine][nostryears.services.engine.StatsEngine]: Primary consumer.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, Field, ValidationError, field_validator

from nostryears.core.exceptions import ConfigurationError
from nostryears.core.metrics import MetricsConfig
from nostryears.core.yaml import load_yaml
from nostryears.models.constants import (
    DEFAULT_ACTIVITY_TZ_OFFSET_MINUTES,
    DEFAULT_RELAYS,
    AffinityAlgorithm,
)
from nostryears.utils.keys import ENV_PRIVATE_KEY, load_keys_from_env
from nostryears.utils.protocol import RelayPoolConfig


if TYPE_CHECKING:
    from nostr_sdk import Keys


_RELAY_SCHEMES = ("ws", "wss")

# UTC-12 .. UTC+14
_MIN_TZ_OFFSET_MINUTES = -12 * 60
_MAX_TZ_OFFSET_MINUTES = 14 * 60


def validate_relay_url(url: str) -> str:
    """Strip whitespace and a trailing slash; require a WebSocket scheme."""
    normalized = url.strip().rstrip("/")
    scheme, _, host = normalized.partition("://")
    if scheme.lower() not in _RELAY_SCHEMES or not host:
        raise ValueError(f"relay URL must use ws:// or wss://, got {url!r}")
    return normalized


class StatsConfig(BaseModel):
    """Engine configuration.

    Attributes:
        relays: Default relay set when the caller does not give one.
        activity_timezone_offset_minutes: Fixed UTC offset used for month
            and hour-of-day buckets (540 = UTC+9).
        affinity_algorithm: Ranking strategy for the affinity list.
        affinity_limit: Maximum affinity entries kept.
        top_posts_limit: Maximum top posts kept.
        top_reactions_limit: Maximum reaction glyphs kept.
        progress_step: Minimum advance, in percentage points, between two
            progress updates within a phase.
        pool: Relay connection and paging settings.
        keys_env: Name of the environment variable holding the optional
            signing key.
        metrics: Prometheus metric recording.
    """

    relays: list[str] = Field(default_factory=lambda: list(DEFAULT_RELAYS), min_length=1)
    activity_timezone_offset_minutes: int = Field(
        default=DEFAULT_ACTIVITY_TZ_OFFSET_MINUTES,
        ge=_MIN_TZ_OFFSET_MINUTES,
        le=_MAX_TZ_OFFSET_MINUTES,
    )
    affinity_algorithm: AffinityAlgorithm = AffinityAlgorithm.PRIMARY_BALANCE
    affinity_limit: int = Field(default=10, ge=1, le=100)
    top_posts_limit: int = Field(default=3, ge=1, le=100)
    top_reactions_limit: int = Field(default=10, ge=1, le=100)
    progress_step: float = Field(default=2.0, gt=0.0, le=100.0)
    pool: RelayPoolConfig = Field(default_factory=RelayPoolConfig)
    keys_env: str = Field(default=ENV_PRIVATE_KEY, min_length=1)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("relays")
    @classmethod
    def _normalize_relays(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(validate_relay_url(url) for url in value))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Validate a configuration dictionary.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load and validate a YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the file is not valid YAML or fails
                validation.
        """
        return cls.from_dict(load_yaml(config_path))

    def load_keys(self) -> Keys | None:
        """Load the signing key named by ``keys_env``, if set.

        Raises:
            ConfigurationError: If the variable is set to an invalid key.
        """
        try:
            return load_keys_from_env(self.keys_env)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
