"""
Refresh loop state machine.

The Textual app feeds this object three kinds of events (timer ticks, key
presses, fetch completions) on its single UI thread. The loop decides which
fetches to start and merges their results into the Model; it never performs
I/O itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from termclock.config import Settings
from termclock.providers import FetchKind, Model, ModelSnapshot, TemperatureReading, TodoItem
from termclock.render import Frame, render_frame

logger = logging.getLogger(__name__)


class LoopState(Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class TickOutcome:
    """What the driver must do after a tick."""

    fetches: tuple[FetchKind, ...] = ()
    chime_hour: int | None = None


def default_sources(settings: Settings) -> frozenset[FetchKind]:
    """Kinds served by the data source the settings select.

    The HTTP API serves both; without it only the local todos file is read.
    """
    if settings.fetching_enabled:
        return frozenset(FetchKind)
    return frozenset({FetchKind.TODOS})


class ChimeTracker:
    """Detects transitions into a new hour across ticks.

    The first observation only records the current hour, so starting
    mid-hour never chimes; repeated observations within one hour never
    chime twice.
    """

    def __init__(self) -> None:
        self._last: tuple[date, int] | None = None

    def observe(self, now: datetime) -> int | None:
        key = (now.date(), now.hour)
        if self._last is None:
            self._last = key
            return None
        if key <= self._last:
            return None
        self._last = key
        return now.hour


class RefreshLoop:
    """Single-threaded owner of the Model and the fetch bookkeeping."""

    def __init__(
        self,
        settings: Settings,
        model: Model | None = None,
        provides: frozenset[FetchKind] | None = None,
    ) -> None:
        self.settings = settings
        self.model = model or Model()
        self.provides = default_sources(settings) if provides is None else frozenset(provides)
        self.state = LoopState.RUNNING
        self._in_flight: set[FetchKind] = set()
        self._last_attempt: dict[FetchKind, float] = {}
        self._chime = ChimeTracker()

    @property
    def running(self) -> bool:
        return self.state is LoopState.RUNNING

    @property
    def enabled_kinds(self) -> tuple[FetchKind, ...]:
        return tuple(
            kind
            for kind in FetchKind
            if kind in self.provides and not (kind is FetchKind.TODOS and self.settings.todo_limit == 0)
        )

    def in_flight(self, kind: FetchKind) -> bool:
        return kind in self._in_flight

    def interval_for(self, kind: FetchKind) -> int:
        if kind is FetchKind.TEMPERATURE:
            return self.settings.temp_refresh_interval
        return self.settings.todo_interval

    def _due(self, kind: FetchKind, monotonic: float) -> bool:
        last = self._last_attempt.get(kind)
        return last is None or monotonic - last >= self.interval_for(kind)

    def _begin(self, kinds: list[FetchKind], monotonic: float) -> tuple[FetchKind, ...]:
        started = []
        for kind in kinds:
            if kind in self._in_flight:
                logger.debug("Skipping %s fetch; one is already in flight", kind.value)
                continue
            self._in_flight.add(kind)
            self._last_attempt[kind] = monotonic
            started.append(kind)
        return tuple(started)

    def tick(self, now: datetime, monotonic: float) -> TickOutcome:
        """Advance the clock and report due fetches and any hourly chime."""
        if not self.running:
            return TickOutcome()
        self.model.set_time(now)

        hour = self._chime.observe(now)
        chime_hour = hour if self.settings.chime_enabled else None

        due = [kind for kind in self.enabled_kinds if self._due(kind, monotonic)]
        return TickOutcome(fetches=self._begin(due, monotonic), chime_hour=chime_hour)

    def force_refresh(self, monotonic: float) -> tuple[FetchKind, ...]:
        """Start every enabled fetch that is not already in flight."""
        if not self.running:
            return ()
        return self._begin(list(self.enabled_kinds), monotonic)

    def fetch_succeeded(
        self,
        kind: FetchKind,
        result: TemperatureReading | tuple[TodoItem, ...],
        monotonic: float,
    ) -> bool:
        """Merge a fetch result; returns False when it was discarded."""
        self._in_flight.discard(kind)
        if not self.running:
            logger.debug("Discarding late %s result after shutdown", kind.value)
            return False
        if kind is FetchKind.TEMPERATURE:
            self.model.apply_temperature(result, monotonic)
        else:
            self.model.apply_todos(result, monotonic)
        return True

    def fetch_failed(self, kind: FetchKind, error: Exception) -> bool:
        """Mark the field stale, keeping its last good value."""
        self._in_flight.discard(kind)
        if not self.running:
            return False
        logger.warning("%s fetch failed: %s", kind.value, error)
        if kind is FetchKind.TEMPERATURE:
            self.model.mark_temperature_stale()
        else:
            self.model.mark_todos_stale()
        return True

    def shutdown(self) -> None:
        if self.running:
            logger.info("Shutting down; abandoning %d in-flight fetch(es)", len(self._in_flight))
        self.state = LoopState.SHUTTING_DOWN

    def snapshot(self, monotonic: float) -> ModelSnapshot:
        grace = self.settings.stale_grace_factor
        return self.model.snapshot(
            monotonic,
            temp_max_age=self.settings.temp_refresh_interval * grace,
            todos_max_age=self.settings.todo_interval * grace,
        )

    def frame(self, width: int, height: int, monotonic: float) -> Frame:
        return render_frame(self.snapshot(monotonic), self.settings, width, height)
