"""
Domain records and the data-source protocol.

Protocols define the interface; implementations can be swapped
for testing or alternative data sources.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Protocol


class TodoStatus(Enum):
    """Server-side todo status codes."""

    PENDING = 0
    DONE = 1
    DRAFT = 2
    OTHER = -1

    @classmethod
    def from_code(cls, code: int) -> TodoStatus:
        for status in cls:
            if status.value == code:
                return status
        return cls.OTHER


class FetchKind(Enum):
    TEMPERATURE = "temperature"
    TODOS = "todos"


class FetchErrorKind(Enum):
    NETWORK = "network"
    PROTOCOL = "protocol"
    DECODE = "decode"
    IO = "io"


class FetchError(Exception):
    """A fetch failed; ``kind`` is for diagnostics only."""

    def __init__(self, kind: FetchErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class Page:
    """Pagination parameters sent with every list request."""

    num: int = 1
    size: int = 1

    def to_dict(self) -> dict:
        return {"num": self.num, "size": self.size}

    def slice(self, items: tuple) -> tuple:
        start = (max(self.num, 1) - 1) * self.size
        return items[start : start + self.size]


@dataclass(frozen=True)
class TemperatureReading:
    """Immutable snapshot of the latest sensor reading.

    ``fetched_at`` is stamped by the refresh loop when the reading is merged.
    """

    value: float
    humidity: float | None = None
    fetched_at: float | None = None


@dataclass(frozen=True)
class TodoItem:
    """Immutable snapshot of a single todo entry."""

    description: str
    status: TodoStatus = TodoStatus.PENDING
    deadline: str | None = None


@dataclass(frozen=True)
class ModelSnapshot:
    """Everything the renderer is allowed to see for one frame."""

    now: datetime
    temperature: TemperatureReading | None
    temperature_fresh: bool
    todos: tuple[TodoItem, ...]
    todos_loaded: bool
    todos_fresh: bool


class Model:
    """Latest known readings plus staleness bookkeeping.

    Only the event loop mutates a Model, and only with fully parsed values:
    a failed fetch marks the field stale but never replaces it.
    """

    def __init__(self, now: datetime | None = None) -> None:
        self.now: datetime = now or datetime.now()
        self.temperature: TemperatureReading | None = None
        self.todos: tuple[TodoItem, ...] = ()
        self.todos_fetched_at: float | None = None
        self.temperature_failed = False
        self.todos_failed = False

    def set_time(self, now: datetime) -> None:
        self.now = now

    def apply_temperature(self, reading: TemperatureReading, fetched_at: float) -> None:
        self.temperature = replace(reading, fetched_at=fetched_at)
        self.temperature_failed = False

    def mark_temperature_stale(self) -> None:
        self.temperature_failed = True

    def apply_todos(self, items: tuple[TodoItem, ...], fetched_at: float) -> None:
        self.todos = tuple(items)
        self.todos_fetched_at = fetched_at
        self.todos_failed = False

    def mark_todos_stale(self) -> None:
        self.todos_failed = True

    def snapshot(
        self,
        monotonic: float,
        temp_max_age: float,
        todos_max_age: float,
    ) -> ModelSnapshot:
        """Freeze the current state, computing freshness at ``monotonic``."""
        reading = self.temperature
        temperature_fresh = (
            reading is not None
            and reading.fetched_at is not None
            and not self.temperature_failed
            and monotonic - reading.fetched_at < temp_max_age
        )
        todos_loaded = self.todos_fetched_at is not None
        todos_fresh = (
            todos_loaded
            and not self.todos_failed
            and monotonic - self.todos_fetched_at < todos_max_age
        )
        return ModelSnapshot(
            now=self.now,
            temperature=reading,
            temperature_fresh=temperature_fresh,
            todos=self.todos,
            todos_loaded=todos_loaded,
            todos_fresh=todos_fresh,
        )


class DataClient(Protocol):
    """Protocol for fetching readings.

    ``provides`` names the fetch kinds the client can serve; the refresh loop
    never schedules any other kind. Implementations raise ``FetchError`` on
    any failure.
    """

    provides: frozenset[FetchKind]

    def fetch_temperature(
        self, device_code: str, page: Page = Page(1, 1)
    ) -> TemperatureReading:
        """Fetch the most recent temperature reading for a sensor."""
        ...

    def fetch_todos(
        self, status: tuple[int, ...] = (0,), page: Page = Page(1, 4)
    ) -> tuple[TodoItem, ...]:
        """Fetch open todos in source order."""
        ...

    def close(self) -> None:
        """Release any resources."""
        ...
