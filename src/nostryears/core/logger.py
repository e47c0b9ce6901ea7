"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that every log line is an
event name followed by structured fields. Two output styles are supported:
human-readable ``key=value`` pairs (default) and one JSON object per line.

The ``StructuredFormatter`` reads structured data from the
``structured_kv`` extra field attached by ``Logger`` and appends it as
key=value pairs. Installed on the root handler by the CLI, it also formats
plain ``logging.getLogger(__name__)`` calls made in the utils and services
modules.

Examples:
    ```python
    from nostryears.core.logger import Logger

    logger = Logger("engine")
    logger.info("phase_completed", phase="fetching_own", events=42)
    # Output: info engine phase_completed phase=fetching_own events=42

    json_logger = Logger("engine", json_output=True)
    json_logger.info("cache_hit", subject="ab12...")
    # Output: {"timestamp": "...", "level": "info", "service": "engine", ...}
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_value_length: int | None) -> str:
    s = str(value)
    if max_value_length and len(s) > max_value_length:
        return s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values containing whitespace, ``=`` or quotes are escaped and wrapped in
    double quotes; empty values are rendered as ``""``.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to a non-empty result.

    Returns:
        Formatted string such as ``' relay=wss://yabu.me error="timed out"'``,
        or an empty string if ``kwargs`` is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        s = _truncate(value, max_value_length)
        if not s or any(c in s for c in (" ", "=", '"', "'")):
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={s}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats every record as ``level name message key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    All public methods mirror the standard logging API with an added
    ``**kwargs`` parameter holding the structured fields.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, typically the component name
                (``engine``, ``retrieval``, ``cli``).
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
        """
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        truncated = {
            key: (
                _truncate(value, self._max_value_length)
                if len(str(value)) > self._max_value_length
                else value
            )
            for key, value in kwargs.items()
        }
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            level_name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, level_name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
