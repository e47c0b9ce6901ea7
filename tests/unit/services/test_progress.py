"""
Unit tests for services.progress module.

Tests:
- ProgressReporter phase boundaries, throttling and monotonicity
- ProgressRecorder / LoggingProgressListener
"""

import logging

import pytest

from nostryears.models import FetchPhase
from nostryears.services.progress import (
    LoggingProgressListener,
    ProgressListener,
    ProgressRecorder,
    ProgressReporter,
    ProgressUpdate,
)


@pytest.fixture
def recorder() -> ProgressRecorder:
    return ProgressRecorder()


class TestProgressReporter:
    """Tests for ProgressReporter."""

    def test_invalid_window(self, recorder: ProgressRecorder) -> None:
        with pytest.raises(ValueError):
            ProgressReporter(recorder, 100, 100)

    def test_phase_boundaries(self, recorder: ProgressRecorder) -> None:
        reporter = ProgressReporter(recorder, 0, 100)
        for phase in (
            FetchPhase.FETCHING_OWN,
            FetchPhase.FETCHING_INCOMING,
            FetchPhase.FETCHING_ZAPS,
        ):
            reporter.begin(phase)
            reporter.end()
        reporter.begin(FetchPhase.CALCULATING)
        reporter.begin(FetchPhase.DONE)

        assert recorder.percents == [5, 45, 45, 80, 80, 90, 90, 100]
        assert recorder.last == ProgressUpdate(phase=FetchPhase.DONE, message="Done", percent=100)

    def test_observe_maps_into_phase_span(self, recorder: ProgressRecorder) -> None:
        """Test that an event 10% back into the window lands 10% into the span."""
        reporter = ProgressReporter(recorder, 0, 100, step=1.0)
        reporter.begin(FetchPhase.FETCHING_OWN)
        reporter.observe(90)

        assert recorder.percents == [5, 9]
        assert reporter.current == pytest.approx(9.0)

    def test_throttled_by_step(self, recorder: ProgressRecorder) -> None:
        reporter = ProgressReporter(recorder, 0, 1000, step=1.5)
        reporter.begin(FetchPhase.FETCHING_OWN)
        for created_at in range(999, 900, -1):
            reporter.observe(created_at)

        # 99 events covering ~10% of the window advance ~4 points: two updates.
        assert recorder.percents == [5, 7, 8]

    def test_monotonic_with_out_of_order_events(self, recorder: ProgressRecorder) -> None:
        reporter = ProgressReporter(recorder, 0, 100, step=0.1)
        reporter.begin(FetchPhase.FETCHING_INCOMING)
        for created_at in (50, 90, 10, 99, 0, 60):
            reporter.observe(created_at)
        reporter.end()

        assert recorder.percents == sorted(recorder.percents)
        assert recorder.percents[-1] == 80

    def test_timestamps_outside_window_clamped(self, recorder: ProgressRecorder) -> None:
        reporter = ProgressReporter(recorder, 100, 200, step=0.1)
        reporter.begin(FetchPhase.FETCHING_ZAPS)
        reporter.observe(500)
        reporter.observe(0)

        assert recorder.percents == [80, 90]

    def test_no_listener(self) -> None:
        reporter = ProgressReporter(None, 0, 100)
        reporter.begin(FetchPhase.FETCHING_OWN)
        reporter.observe(50)
        assert reporter.phase is FetchPhase.FETCHING_OWN

    def test_custom_message(self, recorder: ProgressRecorder) -> None:
        ProgressReporter(recorder, 0, 100).begin(FetchPhase.DONE, "Loaded published snapshot")
        assert recorder.last is not None
        assert recorder.last.message == "Loaded published snapshot"


class TestListeners:
    """Tests for listener implementations."""

    def test_recorder_is_listener(self, recorder: ProgressRecorder) -> None:
        assert isinstance(recorder, ProgressListener)
        assert recorder.last is None

    def test_logging_listener(self, caplog: pytest.LogCaptureFixture) -> None:
        listener = LoggingProgressListener()
        with caplog.at_level(logging.INFO, logger="progress"):
            listener.on_progress(ProgressUpdate(FetchPhase.FETCHING_OWN, "Fetching", 12))

        record = caplog.records[-1]
        assert record.getMessage() == "progress"
        assert record.structured_kv["phase"] == "fetching_own"
        assert record.structured_kv["percent"] == 12
