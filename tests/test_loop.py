"""Unit tests for the refresh loop state machine."""

from datetime import datetime, timedelta

import pytest

from termclock.config import Settings
from termclock.loop import ChimeTracker, FetchKind, LoopState, RefreshLoop
from termclock.providers import FetchError, FetchErrorKind, TemperatureReading, TodoItem
from termclock.render import NO_TODOS, TEMP_PLACEHOLDER

NOW = datetime(2026, 10, 18, 14, 5, 9)
BOTH = (FetchKind.TEMPERATURE, FetchKind.TODOS)


def network_error() -> FetchError:
    return FetchError(FetchErrorKind.NETWORK, "connection refused")


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url="http://api.test", temp_refresh_interval=5)


@pytest.fixture
def loop(settings) -> RefreshLoop:
    return RefreshLoop(settings)


class TestScheduling:
    """Tests for deciding when fetches start."""

    def test_first_tick_starts_both_fetches(self, loop) -> None:
        outcome = loop.tick(NOW, 0.0)
        assert outcome.fetches == BOTH
        assert loop.in_flight(FetchKind.TEMPERATURE)
        assert loop.in_flight(FetchKind.TODOS)

    def test_tick_updates_model_time(self, loop) -> None:
        loop.tick(NOW, 0.0)
        assert loop.model.now == NOW

    def test_without_api_only_local_todos(self) -> None:
        loop = RefreshLoop(Settings())
        assert loop.tick(NOW, 0.0).fetches == (FetchKind.TODOS,)

    def test_no_fetches_without_a_source(self) -> None:
        loop = RefreshLoop(Settings(api_base_url="http://api.test"), provides=frozenset())
        assert loop.tick(NOW, 0.0).fetches == ()
        assert loop.force_refresh(0.0) == ()
        assert not loop.in_flight(FetchKind.TEMPERATURE)
        assert not loop.in_flight(FetchKind.TODOS)

    def test_only_provided_kinds_are_scheduled(self) -> None:
        loop = RefreshLoop(
            Settings(api_base_url="http://api.test"),
            provides=frozenset({FetchKind.TODOS}),
        )
        assert loop.tick(NOW, 0.0).fetches == (FetchKind.TODOS,)

    def test_todo_limit_zero_skips_todos(self) -> None:
        loop = RefreshLoop(Settings(api_base_url="http://api.test", todo_limit=0))
        assert loop.tick(NOW, 0.0).fetches == (FetchKind.TEMPERATURE,)

    def test_in_flight_fetch_is_not_duplicated(self, loop) -> None:
        loop.tick(NOW, 0.0)
        assert loop.tick(NOW, 30.0).fetches == ()

    def test_waits_for_interval(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(20.0), 1.0)
        loop.fetch_succeeded(FetchKind.TODOS, (), 1.0)

        assert loop.tick(NOW, 3.0).fetches == ()
        assert loop.tick(NOW, 5.0).fetches == BOTH

    def test_interval_counts_from_attempt_after_failure(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_failed(FetchKind.TEMPERATURE, network_error())

        assert loop.tick(NOW, 4.0).fetches == ()
        assert loop.tick(NOW, 5.0).fetches == (FetchKind.TEMPERATURE,)

    def test_independent_todo_interval(self) -> None:
        loop = RefreshLoop(
            Settings(api_base_url="http://api.test", temp_refresh_interval=5, todo_refresh_interval=60)
        )
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(20.0), 0.0)
        loop.fetch_succeeded(FetchKind.TODOS, (), 0.0)

        assert loop.tick(NOW, 5.0).fetches == (FetchKind.TEMPERATURE,)
        assert loop.tick(NOW, 60.0).fetches == (FetchKind.TODOS,)

    def test_force_refresh_ignores_interval(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(20.0), 0.5)

        assert loop.force_refresh(0.6) == (FetchKind.TEMPERATURE,)

    def test_force_refresh_skips_in_flight(self, loop) -> None:
        loop.tick(NOW, 0.0)
        assert loop.force_refresh(0.1) == ()


class TestResults:
    """Tests for merging fetch results."""

    def test_success_replaces_temperature(self, loop) -> None:
        loop.tick(NOW, 0.0)
        reading = TemperatureReading(21.5)

        assert loop.fetch_succeeded(FetchKind.TEMPERATURE, reading, 1.0)
        assert loop.model.temperature.value == 21.5
        assert loop.snapshot(1.0).temperature_fresh

    def test_failure_keeps_previous_value(self, loop) -> None:
        reading = TemperatureReading(21.5)
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, reading, 1.0)
        loop.tick(NOW, 6.0)

        assert loop.fetch_failed(FetchKind.TEMPERATURE, network_error())
        assert loop.model.temperature.value == 21.5
        assert loop.model.temperature.fetched_at == 1.0
        assert not loop.snapshot(7.0).temperature_fresh
        assert loop.frame(100, 30, 7.0).find("21.5") is None
        assert loop.frame(100, 30, 7.0).find(TEMP_PLACEHOLDER) is not None

    def test_failure_before_any_success(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_failed(FetchKind.TODOS, network_error())

        assert loop.model.todos == ()
        assert not loop.snapshot(1.0).todos_loaded
        assert not loop.in_flight(FetchKind.TODOS)

    def test_success_after_failure_is_fresh_again(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_failed(FetchKind.TEMPERATURE, network_error())
        loop.tick(NOW, 5.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(19.0), 6.0)

        assert loop.snapshot(6.0).temperature_fresh

    def test_reading_goes_stale_with_age(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(21.5), 0.0)

        # interval 5 * grace factor 3
        assert loop.snapshot(14.9).temperature_fresh
        assert not loop.snapshot(15.0).temperature_fresh

    def test_temperature_is_stamped_with_loop_clock(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(21.5, fetched_at=999.0), 2.0)

        assert loop.model.temperature.fetched_at == 2.0
        assert loop.snapshot(16.9).temperature_fresh
        assert not loop.snapshot(17.0).temperature_fresh

    def test_todos_keep_server_order(self, loop) -> None:
        items = (TodoItem("b"), TodoItem("a"), TodoItem("c"))
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TODOS, items, 1.0)

        assert loop.snapshot(1.0).todos == items


class TestShutdown:
    """Tests for the shutting-down state."""

    def test_transition(self, loop) -> None:
        assert loop.state is LoopState.RUNNING
        loop.shutdown()
        assert loop.state is LoopState.SHUTTING_DOWN
        assert not loop.running

    def test_late_results_are_discarded(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.shutdown()

        assert not loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(21.5), 1.0)
        assert not loop.fetch_failed(FetchKind.TODOS, network_error())
        assert loop.model.temperature is None
        assert not loop.model.todos_failed

    def test_no_fetches_after_shutdown(self, loop) -> None:
        loop.shutdown()
        assert loop.tick(NOW, 0.0).fetches == ()
        assert loop.force_refresh(0.0) == ()


class TestScenarios:
    """End-to-end scenarios through the state machine and renderer."""

    def test_first_tick_fetch_then_value_is_shown(self, loop) -> None:
        assert FetchKind.TEMPERATURE in loop.tick(NOW, 0.0).fetches

        loop.fetch_succeeded(FetchKind.TEMPERATURE, TemperatureReading(21.5), 1.0)
        frame = loop.frame(100, 30, 1.0)

        pos = frame.find("21.5")
        assert pos is not None
        assert frame.style_at(*pos) == "bold yellow"

    def test_empty_todo_list_shows_message(self, loop) -> None:
        loop.tick(NOW, 0.0)
        loop.fetch_succeeded(FetchKind.TODOS, (), 1.0)

        assert loop.frame(100, 30, 1.0).find(NO_TODOS) is not None


class TestChimeTracker:
    """Tests for hour boundary detection."""

    def test_start_mid_hour_does_not_fire(self) -> None:
        tracker = ChimeTracker()
        assert tracker.observe(datetime(2026, 10, 18, 14, 30, 0)) is None

    def test_start_on_the_hour_does_not_fire(self) -> None:
        tracker = ChimeTracker()
        assert tracker.observe(datetime(2026, 10, 18, 15, 0, 0)) is None

    def test_fires_once_per_boundary(self) -> None:
        tracker = ChimeTracker()
        tracker.observe(datetime(2026, 10, 18, 14, 59, 59))

        assert tracker.observe(datetime(2026, 10, 18, 15, 0, 0)) == 15
        assert tracker.observe(datetime(2026, 10, 18, 15, 0, 0)) is None
        assert tracker.observe(datetime(2026, 10, 18, 15, 0, 0, 500000)) is None
        assert tracker.observe(datetime(2026, 10, 18, 15, 0, 1)) is None

    def test_each_hour_fires(self) -> None:
        tracker = ChimeTracker()
        start = datetime(2026, 10, 18, 13, 59, 0)
        fired = [tracker.observe(start + timedelta(minutes=m)) for m in range(0, 181)]
        assert [h for h in fired if h is not None] == [14, 15, 16]

    def test_midnight(self) -> None:
        tracker = ChimeTracker()
        tracker.observe(datetime(2026, 10, 18, 23, 59, 59))
        assert tracker.observe(datetime(2026, 10, 19, 0, 0, 0)) == 0

    def test_clock_going_back_does_not_fire(self) -> None:
        tracker = ChimeTracker()
        tracker.observe(datetime(2026, 10, 18, 3, 0, 5))
        assert tracker.observe(datetime(2026, 10, 18, 2, 0, 5)) is None
        assert tracker.observe(datetime(2026, 10, 18, 3, 0, 6)) is None


class TestLoopChime:
    """Tests for chime reporting through tick."""

    def test_reports_hour(self) -> None:
        loop = RefreshLoop(Settings())
        loop.tick(datetime(2026, 10, 18, 11, 59, 59), 0.0)
        assert loop.tick(datetime(2026, 10, 18, 12, 0, 0), 1.0).chime_hour == 12

    def test_disabled(self) -> None:
        loop = RefreshLoop(Settings(chime_enabled=False))
        loop.tick(datetime(2026, 10, 18, 11, 59, 59), 0.0)
        assert loop.tick(datetime(2026, 10, 18, 12, 0, 0), 1.0).chime_hour is None
