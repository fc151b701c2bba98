"""
termclock TUI application.

Drives the RefreshLoop from Textual: a 1-second interval timer, key
bindings, and FetchFinished messages posted by background fetch threads.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message

from termclock.config import Settings
from termclock.loop import FetchKind, RefreshLoop
from termclock.providers import DataClient, FetchError, Page
from termclock.render import Frame
from termclock.views.clock_view import ClockView

logger = logging.getLogger(__name__)

# Clock tick interval in seconds
TICK_INTERVAL = 1.0

# Pause between the two rings of the noon chime
CHIME_SPACING = 0.4


def fetch_for(client: DataClient, settings: Settings, kind: FetchKind):
    """Perform one blocking fetch of the given kind."""
    if kind is FetchKind.TEMPERATURE:
        return client.fetch_temperature(settings.device_code, Page(1, 1))
    return client.fetch_todos((0,), Page(1, settings.todo_limit))


class FetchFinished(Message):
    """Posted from a fetch thread when its request completes."""

    def __init__(
        self,
        kind: FetchKind,
        result: object | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.kind = kind
        self.result = result
        self.error = error


class ClockApp(App):
    """Clock, temperature and todo display."""

    TITLE = "termclock"

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("escape", "quit", "Quit", show=False, priority=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("r", "refresh", "Refresh", show=False),
    ]

    def __init__(
        self,
        settings: Settings,
        client: DataClient | None = None,
        clock: Callable[[], datetime] = datetime.now,
        monotonic: Callable[[], float] = time.monotonic,
        tick_interval: float = TICK_INTERVAL,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._settings = settings
        self._client = client
        self._clock = clock
        self._monotonic = monotonic
        self._tick_interval = tick_interval
        provides = client.provides if client is not None else frozenset()
        self._refresh = RefreshLoop(settings, provides=provides)
        self._view: ClockView | None = None
        self._tick_timer = None

    @property
    def refresh_loop(self) -> RefreshLoop:
        return self._refresh

    def compose(self) -> ComposeResult:
        self._view = ClockView(self._frame_for, id="clock")
        yield self._view

    def on_mount(self) -> None:
        """Start ticking; the first tick fires immediately."""
        if not self._refresh.enabled_kinds:
            logger.info("No data source configured; temperature and todos stay unavailable")
        self._tick_timer = self.set_interval(self._tick_interval, self._on_tick)
        self._on_tick()

    def _frame_for(self, width: int, height: int) -> Frame:
        return self._refresh.frame(width, height, self._monotonic())

    def _redraw(self) -> None:
        if self._view is not None:
            self._view.refresh()

    def _on_tick(self) -> None:
        outcome = self._refresh.tick(self._clock(), self._monotonic())
        self._start_fetches(outcome.fetches)
        if outcome.chime_hour is not None:
            self._chime(outcome.chime_hour)
        self._redraw()

    def _chime(self, hour: int) -> None:
        """Ring once per hour, twice at noon, and show a notification."""
        logger.info("Hourly chime for %02d:00", hour)
        rings = 2 if hour == 12 else 1
        self.bell()
        for i in range(1, rings):
            self.set_timer(CHIME_SPACING * i, self.bell)
        self.notify(f"{hour:02d}:00", title="Chime", timeout=3)

    # -------------------- fetching --------------------

    def _start_fetches(self, kinds: tuple[FetchKind, ...]) -> None:
        if self._client is None:
            return
        for kind in kinds:
            thread = threading.Thread(
                target=self._fetch_in_background,
                args=(kind,),
                name=f"fetch-{kind.value}",
                daemon=True,
            )
            thread.start()

    def _fetch_in_background(self, kind: FetchKind) -> None:
        """Runs on a fetch thread; hands the outcome back as a message."""
        try:
            result = fetch_for(self._client, self._settings, kind)
        except FetchError as exc:
            logger.debug("%s fetch failed (%s)", kind.value, exc.kind.value)
            message = FetchFinished(kind, error=exc)
        except Exception as exc:
            logger.exception("Unexpected error during %s fetch", kind.value)
            message = FetchFinished(kind, error=exc)
        else:
            message = FetchFinished(kind, result=result)

        if not self._refresh.running:
            return
        try:
            self.post_message(message)
        except RuntimeError:
            logger.debug("App closed before the %s result was delivered", kind.value)

    def on_fetch_finished(self, message: FetchFinished) -> None:
        """Merge a completed fetch on the UI thread."""
        if message.error is None:
            self._refresh.fetch_succeeded(message.kind, message.result, self._monotonic())
        else:
            self._refresh.fetch_failed(message.kind, message.error)
        self._redraw()

    # -------------------- actions --------------------

    def action_refresh(self) -> None:
        """Fetch everything now, regardless of interval."""
        self._start_fetches(self._refresh.force_refresh(self._monotonic()))
        self._redraw()

    async def action_quit(self) -> None:
        """Stop the loop and restore the terminal."""
        self._refresh.shutdown()
        if self._tick_timer is not None:
            self._tick_timer.stop()
        self.exit(return_code=0)


def run(settings: Settings, client: DataClient | None = None) -> int:
    """Run the TUI application and return its exit code."""
    app = ClockApp(settings, client)
    app.run()
    return app.return_code or 0
