"""
Configuration loading for termclock.

- Reads a YAML mapping (PyYAML ``safe_load``) into a frozen pydantic ``Settings``.
- Missing keys fall back to defaults; invalid values raise ``ConfigError``.
- Display options can be overridden afterwards (see ``Settings.with_overrides``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from termclock.glyphs import COLOR_TABLE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("termclock.yml")
DEFAULT_TODOS_FILE = Path("todos.txt")
CONFIG_ENV_VAR = "TERMCLOCK_CONFIG"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
COLOR_KEYS = ("time_color", "date_color", "todos_color", "temp_color")


class ConfigError(Exception):
    """Configuration file is unreadable, malformed or out of range."""


class Settings(BaseModel):
    """Immutable runtime settings."""

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    api_base_url: str | None = Field(
        default=None, description="Base URL for both POST endpoints (None disables the API)"
    )
    device_code: str = Field(
        default="SENS-FARM01", description="Sensor identifier sent with the temperature request"
    )
    temp_refresh_interval: int = Field(default=5, ge=1, description="Seconds between temperature fetches")
    todo_refresh_interval: int | None = Field(
        default=None, ge=1, description="Seconds between todo fetches (defaults to the temperature interval)"
    )
    time_scale_x: int = Field(default=2, ge=1)
    time_scale_y: int = Field(default=2, ge=1)
    date_scale_x: int = Field(default=1, ge=1)
    time_color: str = "white"
    date_color: str = "yellow"
    todos_color: str = "white"
    temp_color: str = "yellow"
    chime_enabled: bool = Field(default=True, description="Hourly chime on/off")
    todo_limit: int = Field(default=4, ge=0, description="Max todos shown and page size (0 hides the panel)")
    todo_task_max_chars: int = Field(default=40, ge=1, description="Description truncation length")
    main_window_percent: int = Field(default=70, ge=1, le=99, description="Width share of the clock block")
    request_timeout: float = Field(default=5.0, gt=0, description="HTTP timeout in seconds")
    stale_grace_factor: float = Field(
        default=3.0, gt=0, description="A value is stale once older than interval * factor"
    )
    log_level: str = "INFO"
    log_file: str | None = Field(default=None, description="Log destination while the UI is running")
    todos_file: str | None = Field(
        default=None, description="Local todo list used when no API is configured (default ./todos.txt)"
    )

    @field_validator("device_code", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("device_code")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("api_base_url")
    @classmethod
    def _normalize_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().rstrip("/") or None

    @field_validator("log_file", "todos_file")
    @classmethod
    def _blank_path_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def _warn_unknown_colors(self) -> Settings:
        for key in COLOR_KEYS:
            name = getattr(self, key)
            if name.strip().lower() not in COLOR_TABLE:
                logger.warning("Unknown color %r for %s; using terminal default", name, key)
        return self

    @property
    def todo_interval(self) -> int:
        """Effective todo cadence; shares the temperature interval by default."""
        if self.todo_refresh_interval is None:
            return self.temp_refresh_interval
        return self.todo_refresh_interval

    @property
    def fetching_enabled(self) -> bool:
        """True when readings come from the HTTP API."""
        return self.api_base_url is not None

    @property
    def todos_path(self) -> Path:
        return Path(self.todos_file) if self.todos_file else DEFAULT_TODOS_FILE

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with the non-None overrides applied (re-validated)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        unknown = sorted(set(changes) - set(type(self).model_fields))
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")
        return _build({**self.model_dump(), **changes})

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Settings:
        """Build Settings from a plain mapping, applying defaults and validation."""
        if data is None:
            data = {}
        for key in sorted(set(data) - set(cls.model_fields)):
            logger.warning("Ignoring unknown config key %r", key)
        return _build({k: v for k, v in data.items() if k in cls.model_fields and v is not None})


def _describe(exc: ValidationError) -> str:
    """Flatten pydantic errors into one ``key: message`` line per problem."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"]) or "settings"
        parts.append(f"{loc}: {error['msg']}")
    return "; ".join(parts)


def _build(values: dict[str, Any]) -> Settings:
    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc


def resolve_config_path(path: str | Path | None = None) -> tuple[Path, bool]:
    """Pick the config path and whether it was named explicitly."""
    if path:
        return Path(path), True
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path), True
    return DEFAULT_CONFIG_PATH, False


def load_settings(path: str | Path | None = None) -> Settings:
    """Load Settings from YAML.

    Behavior:
    - An explicitly named file (argument or $TERMCLOCK_CONFIG) must exist.
    - If the default ./termclock.yml is missing, defaults are used.
    - A file whose top level is not a mapping raises ConfigError.
    """
    p, explicit = resolve_config_path(path)
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        if explicit:
            raise ConfigError(f"Config file {p} not found")
        logger.info("Config file %s not found; using defaults", p)
        return Settings()

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read {p}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {p}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {p} must contain a mapping at top level")

    settings = Settings.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", settings)
    return settings
