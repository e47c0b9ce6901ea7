"""
Unit tests for core.logger module.

Tests:
- format_kv_pairs() escaping and truncation
- StructuredFormatter output for Logger and plain logging records
- Logger levels, JSON mode, and value truncation
"""

import json
import logging

import pytest

from nostryears.core.logger import Logger, StructuredFormatter, format_kv_pairs


class TestFormatKvPairs:
    """Key-value pairs formatting and escaping."""

    def test_simple(self) -> None:
        assert format_kv_pairs({"relay": "wss://yabu.me"}) == " relay=wss://yabu.me"
        assert format_kv_pairs({"events": 42}) == " events=42"

    def test_with_spaces(self) -> None:
        assert format_kv_pairs({"error": "timed out"}) == ' error="timed out"'

    def test_with_double_quotes(self) -> None:
        assert format_kv_pairs({"key": 'say "gm"'}) == ' key="say \\"gm\\""'

    def test_empty_value(self) -> None:
        assert format_kv_pairs({"key": ""}) == ' key=""'

    def test_empty_dict(self) -> None:
        assert format_kv_pairs({}) == ""

    def test_custom_prefix(self) -> None:
        assert format_kv_pairs({"a": 1, "b": 2}, prefix="") == "a=1 b=2"

    def test_truncation(self) -> None:
        result = format_kv_pairs({"key": "x" * 1500}, max_value_length=1000)
        assert "truncated 500 chars" in result
        assert len(result) < 1500

    def test_truncation_disabled(self) -> None:
        result = format_kv_pairs({"key": "x" * 1500}, max_value_length=None)
        assert result == " key=" + "x" * 1500


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def _record(self, **extra: object) -> logging.LogRecord:
        record = logging.LogRecord(
            name="retrieval",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="relay_query_failed",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_plain_record(self) -> None:
        assert StructuredFormatter().format(self._record()) == "warning retrieval relay_query_failed"

    def test_structured_record(self) -> None:
        record = self._record(structured_kv={"relay": "wss://yabu.me", "phase": "fetching_own"})
        assert StructuredFormatter().format(record) == (
            "warning retrieval relay_query_failed relay=wss://yabu.me phase=fetching_own"
        )


class TestLogger:
    """Tests for Logger."""

    def test_name(self) -> None:
        assert Logger("engine").name == "engine"

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error"])
    def test_levels(self, level: str, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_levels")
        with caplog.at_level(logging.DEBUG, logger="test_levels"):
            getattr(logger, level)("event_name", key="value")

        assert caplog.records[-1].levelname == level.upper()
        assert caplog.records[-1].getMessage() == "event_name"
        assert caplog.records[-1].structured_kv == {"key": "value"}

    def test_disabled_level_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_disabled")
        with caplog.at_level(logging.WARNING, logger="test_disabled"):
            logger.debug("hidden")
        assert not [r for r in caplog.records if r.name == "test_disabled"]

    def test_json_output(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_json", json_output=True)
        with caplog.at_level(logging.INFO, logger="test_json"):
            logger.info("cache_hit", subject="ab", created_at=5)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["level"] == "info"
        assert payload["service"] == "test_json"
        assert payload["message"] == "cache_hit"
        assert payload["created_at"] == 5

    def test_long_values_truncated(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_truncate", max_value_length=10)
        with caplog.at_level(logging.INFO, logger="test_truncate"):
            logger.info("big", content="y" * 50, small=3)

        extra = caplog.records[-1].structured_kv
        assert extra["content"].startswith("y" * 10)
        assert "truncated 40 chars" in extra["content"]
        assert extra["small"] == 3

    def test_exception_attaches_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = Logger("test_exc")
        with caplog.at_level(logging.ERROR, logger="test_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")
        assert caplog.records[-1].exc_info is not None
