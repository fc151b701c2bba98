"""
Concrete implementation of DataClient that reads todos from a local text file.

Used when no API is configured: one todo per non-blank line, in file order.
There is no local temperature source.
"""

from __future__ import annotations

import logging
from pathlib import Path

from termclock.providers import (
    FetchError,
    FetchErrorKind,
    FetchKind,
    Page,
    TemperatureReading,
    TodoItem,
)

logger = logging.getLogger(__name__)


def _todos_from_text(text: str) -> tuple[TodoItem, ...]:
    """One TodoItem per non-blank line, surrounding whitespace stripped."""
    return tuple(TodoItem(line.strip()) for line in text.splitlines() if line.strip())


class FileDataClient:
    """DataClient implementation that re-reads a todos file on every fetch."""

    provides = frozenset({FetchKind.TODOS})

    def __init__(self, todos_file: Path):
        self._todos_file = Path(todos_file)

    @property
    def todos_file(self) -> Path:
        return self._todos_file

    def fetch_temperature(self, device_code: str, page: Page = Page(1, 1)) -> TemperatureReading:
        raise FetchError(FetchErrorKind.IO, "no local temperature source")

    def fetch_todos(self, status: tuple[int, ...] = (0,), page: Page = Page(1, 4)) -> tuple[TodoItem, ...]:
        """Read the file; every line counts as a pending todo."""
        try:
            text = self._todos_file.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise FetchError(FetchErrorKind.IO, f"{self._todos_file} not found") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise FetchError(FetchErrorKind.IO, f"cannot read {self._todos_file}: {exc}") from exc

        todos = _todos_from_text(text)
        logger.debug("Read %d todo(s) from %s", len(todos), self._todos_file)
        return page.slice(todos)

    def close(self) -> None:
        pass
