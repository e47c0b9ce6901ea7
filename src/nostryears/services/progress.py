"""Progress reporting for one statistics computation.

Relays deliver events newest first, so progress through a phase is
estimated from how far back in the window the latest observed event
lies::

    fraction = (until - created_at) / (until - since)

and mapped into the phase's span of the overall 0-100 scale:

```text
fetching_own       5 -> 45
fetching_incoming 45 -> 80
fetching_zaps     80 -> 90
calculating       90
done             100
```

Updates are throttled: inside a phase a new update is emitted only when
the estimate has advanced by at least ``step`` points since the last one.
Phase boundaries are always emitted. Percent never decreases within one
[ProgressReporter][nostryears.services.progress.ProgressReporter].

See Also:
    [EventRetriever][nostryears.services.retrieval.EventRetriever]: Drives
        the reporter while fetching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from nostryears.core.logger import Logger
from nostryears.models import FetchPhase, round_half_up


PHASE_SPANS: dict[FetchPhase, tuple[float, float]] = {
    FetchPhase.IDLE: (0.0, 0.0),
    FetchPhase.FETCHING_OWN: (5.0, 45.0),
    FetchPhase.FETCHING_INCOMING: (45.0, 80.0),
    FetchPhase.FETCHING_ZAPS: (80.0, 90.0),
    FetchPhase.CALCULATING: (90.0, 90.0),
    FetchPhase.DONE: (100.0, 100.0),
}

PHASE_MESSAGES: dict[FetchPhase, str] = {
    FetchPhase.IDLE: "Idle",
    FetchPhase.FETCHING_OWN: "Fetching your events",
    FetchPhase.FETCHING_INCOMING: "Fetching reactions, replies and zaps to you",
    FetchPhase.FETCHING_ZAPS: "Fetching zaps you sent",
    FetchPhase.CALCULATING: "Calculating statistics",
    FetchPhase.DONE: "Done",
}

DEFAULT_PROGRESS_STEP = 2.0


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """One progress notification.

    Attributes:
        phase: Current [FetchPhase][nostryears.models.constants.FetchPhase].
        message: Human-readable description of the current step.
        percent: Overall progress, 0-100.
    """

    phase: FetchPhase
    message: str
    percent: int


@runtime_checkable
class ProgressListener(Protocol):
    """Observer notified of progress during a computation."""

    def on_progress(self, update: ProgressUpdate) -> None: ...


@dataclass(slots=True)
class ProgressRecorder:
    """Listener that keeps every update, mainly for tests and batch callers."""

    updates: list[ProgressUpdate] = field(default_factory=list)

    def on_progress(self, update: ProgressUpdate) -> None:
        self.updates.append(update)

    @property
    def percents(self) -> list[int]:
        return [u.percent for u in self.updates]

    @property
    def last(self) -> ProgressUpdate | None:
        return self.updates[-1] if self.updates else None


class LoggingProgressListener:
    """Listener that writes each update to a structured logger at INFO."""

    def __init__(self, logger: Logger | None = None) -> None:
        self._logger = logger or Logger("progress")

    def on_progress(self, update: ProgressUpdate) -> None:
        self._logger.info(
            "progress", phase=update.phase.value, percent=update.percent, message=update.message
        )


class ProgressReporter:
    """Maps observed event timestamps to throttled, monotonic progress updates.

    Args:
        listener: Receiver of updates; ``None`` disables reporting.
        since: Window start (inclusive).
        until: Window end (exclusive).
        step: Minimum advance in points between two in-phase updates.
    """

    def __init__(
        self,
        listener: ProgressListener | None,
        since: int,
        until: int,
        step: float = DEFAULT_PROGRESS_STEP,
    ) -> None:
        if since >= until:
            raise ValueError(f"since ({since}) must be lower than until ({until})")
        self._listener = listener
        self._since = since
        self._until = until
        self._step = step
        self._phase = FetchPhase.IDLE
        self._current = 0.0
        self._last_emitted = 0.0

    @property
    def phase(self) -> FetchPhase:
        return self._phase

    @property
    def current(self) -> float:
        """Current (not necessarily emitted) estimate on the 0-100 scale."""
        return self._current

    def _emit(self, message: str) -> None:
        self._last_emitted = self._current
        if self._listener is not None:
            self._listener.on_progress(
                ProgressUpdate(
                    phase=self._phase, message=message, percent=round_half_up(self._current)
                )
            )

    def _advance_to(self, value: float) -> None:
        self._current = max(self._current, min(value, 100.0))

    def begin(self, phase: FetchPhase, message: str | None = None) -> None:
        """Enter *phase* and emit its starting point."""
        self._phase = phase
        self._advance_to(PHASE_SPANS[phase][0])
        self._emit(message or PHASE_MESSAGES[phase])

    def observe(self, created_at: int) -> None:
        """Account for one event of the current phase."""
        start, end = PHASE_SPANS[self._phase]
        fraction = (self._until - created_at) / (self._until - self._since)
        fraction = min(max(fraction, 0.0), 1.0)
        self._advance_to(start + fraction * (end - start))
        if self._current - self._last_emitted >= self._step:
            self._emit(PHASE_MESSAGES[self._phase])

    def end(self, message: str | None = None) -> None:
        """Leave the current phase at the end of its span."""
        self._advance_to(PHASE_SPANS[self._phase][1])
        self._emit(message or PHASE_MESSAGES[self._phase])
