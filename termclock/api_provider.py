"""
Concrete implementation of DataClient over the habitat/todo HTTP API.

Both endpoints take a JSON POST and answer with the envelope
``{"code": 0, "msg": "...", "data": {"rows": [...]}}``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from termclock.providers import (
    FetchError,
    FetchErrorKind,
    FetchKind,
    Page,
    TemperatureReading,
    TodoItem,
    TodoStatus,
)

logger = logging.getLogger(__name__)

TEMPERATURE_PATH = "/habitat/raw/list"
TODOS_PATH = "/todo/list"
DEFAULT_TIMEOUT = 5.0

# Epoch values above this are milliseconds.
EPOCH_MS_THRESHOLD = 10_000_000_000


def _format_deadline(raw: Any) -> str | None:
    """Deadlines arrive as display strings or as epoch seconds/milliseconds."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise FetchError(FetchErrorKind.DECODE, f"invalid deadline {raw!r}")
    if isinstance(raw, (int, float)):
        if raw <= 0:
            return None
        seconds = raw / 1000 if raw > EPOCH_MS_THRESHOLD else raw
        try:
            return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M")
        except (OverflowError, OSError, ValueError) as exc:
            raise FetchError(FetchErrorKind.DECODE, f"invalid deadline {raw!r}") from exc
    return str(raw).strip() or None


def _todo_from_row(row: Any) -> TodoItem:
    """Convert one todo row to a TodoItem."""
    if not isinstance(row, dict):
        raise FetchError(FetchErrorKind.DECODE, f"todo row is not an object: {row!r}")
    description = row.get("task", row.get("description"))
    if not isinstance(description, str):
        raise FetchError(FetchErrorKind.DECODE, "todo row has no task text")

    status_code = row.get("status")
    if isinstance(status_code, int) and not isinstance(status_code, bool):
        status = TodoStatus.from_code(status_code)
    elif row.get("completed") is True:
        status = TodoStatus.DONE
    else:
        status = TodoStatus.PENDING

    return TodoItem(
        description=description.strip(),
        status=status,
        deadline=_format_deadline(row.get("deadline")),
    )


class HttpDataClient:
    """DataClient implementation backed by a pooled ``httpx.Client``."""

    provides = frozenset({FetchKind.TEMPERATURE, FetchKind.TODOS})

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def _post(self, path: str, body: dict) -> list:
        """POST body to path and return the envelope's ``data.rows`` list."""
        url = f"{self._base_url}{path}"
        logger.debug("POST %s %s", url, body)
        try:
            response = self._client.post(url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                FetchErrorKind.PROTOCOL,
                f"{url} answered HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(FetchErrorKind.NETWORK, f"{url}: {exc!r}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(FetchErrorKind.DECODE, f"{url} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise FetchError(FetchErrorKind.DECODE, f"{url} returned a non-object body")

        code = payload.get("code")
        if code != 0:
            raise FetchError(
                FetchErrorKind.PROTOCOL,
                f"{url} returned code {code!r}: {payload.get('msg', '')}",
            )

        data = payload.get("data")
        rows = data.get("rows") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise FetchError(FetchErrorKind.DECODE, f"{url} response has no data.rows list")
        return rows

    def fetch_temperature(self, device_code: str, page: Page = Page(1, 1)) -> TemperatureReading:
        """Fetch the newest reading for device_code."""
        rows = self._post(TEMPERATURE_PATH, {"device_code": device_code, "page": page.to_dict()})
        if not rows:
            raise FetchError(FetchErrorKind.DECODE, f"no readings for device {device_code}")

        values = rows[0].get("values") if isinstance(rows[0], dict) else None
        if not isinstance(values, dict):
            raise FetchError(FetchErrorKind.DECODE, "reading has no values object")
        temp = values.get("temp")
        if isinstance(temp, bool) or not isinstance(temp, (int, float)):
            raise FetchError(FetchErrorKind.DECODE, f"reading has invalid temp {temp!r}")
        hum = values.get("hum")
        humidity = float(hum) if isinstance(hum, (int, float)) and not isinstance(hum, bool) else None

        return TemperatureReading(value=float(temp), humidity=humidity)

    def fetch_todos(self, status: tuple[int, ...] = (0,), page: Page = Page(1, 4)) -> tuple[TodoItem, ...]:
        """Fetch todos filtered by status, preserving server order."""
        rows = self._post(TODOS_PATH, {"status": list(status), "page": page.to_dict()})
        return tuple(_todo_from_row(row) for row in rows)

    def close(self) -> None:
        self._client.close()
