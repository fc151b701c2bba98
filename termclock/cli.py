"""
termclock command line entry point.

Usage:
    termclock                 Full-screen clock (q / Esc / Ctrl+C to quit, r to refresh)
    termclock --once          Fetch once, print a single frame and exit (no TUI)
    termclock --scale 3       Bigger digits (date one step smaller)
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
import time
from datetime import datetime
from pathlib import Path

from rich.console import Console
from textual.logging import TextualHandler

from termclock.api_provider import HttpDataClient
from termclock.app import fetch_for, run
from termclock.config import ConfigError, Settings, load_settings
from termclock.file_provider import FileDataClient
from termclock.loop import RefreshLoop
from termclock.providers import DataClient, FetchError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TERMINAL_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termclock",
        description="Terminal clock with temperature and todos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to the YAML config (default: $TERMCLOCK_CONFIG or ./termclock.yml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print one frame and exit (no TUI)",
    )
    parser.add_argument("--scale", type=int, help="Set time scale to N and date scale to N-1")
    parser.add_argument("--time-scale-x", type=int, help="Horizontal scale of the time digits")
    parser.add_argument("--time-scale-y", type=int, help="Vertical scale of the time digits")
    parser.add_argument("--date-scale-x", type=int, help="Horizontal scale of the date line")
    parser.add_argument("--time-color", help="Color of the time digits")
    parser.add_argument("--date-color", help="Color of the date line")
    parser.add_argument("--todos-color", help="Color of the todo panel")
    parser.add_argument("--todos-file", help="Local todo list used when no API is configured")
    parser.add_argument("--no-chime", action="store_true", help="Disable the hourly chime")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--log-file", help="Write logs to this file instead of the Textual console")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Layer display flags from the command line over the file settings."""
    overrides: dict = {}
    if args.scale is not None:
        scale = max(args.scale, 1)
        overrides.update(
            time_scale_x=scale,
            time_scale_y=scale,
            date_scale_x=max(scale - 1, 1),
        )
    overrides.update(
        {
            key: value
            for key, value in (
                ("time_scale_x", args.time_scale_x),
                ("time_scale_y", args.time_scale_y),
                ("date_scale_x", args.date_scale_x),
                ("time_color", args.time_color),
                ("date_color", args.date_color),
                ("todos_color", args.todos_color),
                ("todos_file", args.todos_file),
                ("log_level", args.log_level),
                ("log_file", args.log_file),
            )
            if value is not None
        }
    )
    if args.no_chime:
        overrides["chime_enabled"] = False
    return settings.with_overrides(**overrides)


def configure_logging(settings: Settings) -> None:
    """Route log records away from the terminal the UI is drawing on."""
    if settings.log_file:
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = TextualHandler()
    logging.basicConfig(level=settings.log_level.upper(), handlers=[handler], force=True)


def build_client(settings: Settings) -> DataClient:
    """HTTP API when configured, otherwise the local todos file."""
    if settings.api_base_url:
        return HttpDataClient(settings.api_base_url, timeout=settings.request_timeout)
    logger.info("No api_base_url configured; reading todos from %s", settings.todos_path)
    return FileDataClient(settings.todos_path)


def print_once(settings: Settings, client: DataClient) -> int:
    """Fetch synchronously, print a single frame and exit."""
    loop = RefreshLoop(settings, provides=client.provides)
    outcome = loop.tick(datetime.now(), time.monotonic())
    for kind in outcome.fetches:
        try:
            result = fetch_for(client, settings, kind)
        except FetchError as exc:
            loop.fetch_failed(kind, exc)
        else:
            loop.fetch_succeeded(kind, result, time.monotonic())

    size = shutil.get_terminal_size()
    frame = loop.frame(size.columns, max(size.lines - 1, 1), time.monotonic())
    Console().print(frame.to_text())
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(load_settings(args.config), args)
    except ConfigError as exc:
        print(f"termclock: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(settings)

    client = build_client(settings)
    try:
        if args.once:
            return print_once(settings, client)
        return run(settings, client)
    except Exception as exc:
        logger.exception("Terminal session failed")
        print(f"termclock: terminal error: {exc}", file=sys.stderr)
        return EXIT_TERMINAL_ERROR
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
