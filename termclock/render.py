"""
Frame rendering.

Turns a ModelSnapshot plus Settings into a Frame: a viewport-sized grid of
styled cells. Rendering is a pure function; every call recomputes the whole
grid and every write is clipped to the viewport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from rich.cells import cell_len, get_character_cell_size
from rich.text import Text

from termclock.config import Settings
from termclock.glyphs import big_text, resolve_color
from termclock.providers import ModelSnapshot, TodoItem

# Box drawing characters
BOX_H = "─"
BOX_V = "│"
BOX_TL = "┌"
BOX_TR = "┐"
BOX_BL = "└"
BOX_BR = "┘"

TEMP_PLACEHOLDER = "--"
NO_TODOS = "(no todos)"
TODOS_UNAVAILABLE = "(unavailable)"
TRUNCATION_MARKER = "…"
BULLET = "•"

PLACEHOLDER_STYLE = "grey58"
GAUGE_STYLE = "red"

MIN_PANEL_WIDTH = 16
MIN_PANEL_HEIGHT = 3

GAUGE_MIN_C = -10
GAUGE_MAX_C = 50
GAUGE_TICKS = range(GAUGE_MIN_C, GAUGE_MAX_C + 1, 10)
GAUGE_MIN_WIDTH = 24
GAUGE_MAX_WIDTH = 48

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

Line = tuple[str, str]
BLANK_LINE: Line = ("", "")


@dataclass(frozen=True)
class Cell:
    """One character cell and its rich style string."""

    char: str = " "
    style: str = ""


BLANK_CELL = Cell()


@dataclass
class Frame:
    """A fully computed grid of styled cells for a single redraw.

    A double-width character occupies two cells: the character itself
    followed by a continuation cell whose ``char`` is empty.
    """

    width: int
    height: int
    rows: list[list[Cell]] = field(default_factory=list)

    @classmethod
    def blank(cls, width: int, height: int) -> Frame:
        width = max(width, 0)
        height = max(height, 0)
        return cls(width, height, [[BLANK_CELL] * width for _ in range(height)])

    def _set(self, row: list[Cell], col: int, cell: Cell) -> None:
        # Overwriting either half of a wide character blanks the other half.
        if row[col].char == "" and col > 0:
            row[col - 1] = Cell(" ", row[col - 1].style)
        if col + 1 < self.width and row[col + 1].char == "" and row[col].char != "":
            row[col + 1] = Cell(" ", row[col + 1].style)
        row[col] = cell

    def put(self, x: int, y: int, text: str, style: str = "") -> None:
        """Write text starting at cell (x, y), dropping anything outside the grid."""
        if not 0 <= y < self.height:
            return
        row = self.rows[y]
        col = x
        for ch in text:
            size = get_character_cell_size(ch)
            if size == 0:
                continue
            if col >= self.width:
                break
            if size == 2 and (col < 0 or col + 1 >= self.width):
                # Half of the character is off the grid; show the visible half blank.
                for c in (col, col + 1):
                    if 0 <= c < self.width:
                        self._set(row, c, Cell(" ", style))
            elif col >= 0:
                self._set(row, col, Cell(ch, style))
                if size == 2:
                    self._set(row, col + 1, Cell(" ", style))
                    row[col + 1] = Cell("", style)
            col += size

    def line(self, y: int) -> str:
        return "".join(cell.char for cell in self.rows[y])

    def lines(self) -> list[str]:
        return [self.line(y) for y in range(self.height)]

    def find(self, needle: str) -> tuple[int, int] | None:
        """Locate the first cell (x, y) where needle appears, or None."""
        for y in range(self.height):
            line = self.line(y)
            idx = line.find(needle)
            if idx >= 0:
                return cell_len(line[:idx]), y
        return None

    def style_at(self, x: int, y: int) -> str:
        return self.rows[y][x].style

    def to_text(self) -> Text:
        """Convert to a rich Text, merging runs of equally styled cells."""
        text = Text(no_wrap=True, overflow="crop", end="")
        for y, row in enumerate(self.rows):
            if y:
                text.append("\n")
            run = ""
            run_style = ""
            for cell in row:
                if cell.style != run_style and run:
                    text.append(run, style=run_style or None)
                    run = ""
                run_style = cell.style
                run += cell.char
            if run:
                text.append(run, style=run_style or None)
        return text


def crop(text: str, width: int) -> str:
    """Longest prefix of text that fits in width terminal cells."""
    if cell_len(text) <= width:
        return text
    kept = []
    used = 0
    for ch in text:
        size = get_character_cell_size(ch)
        if used + size > width:
            break
        kept.append(ch)
        used += size
    return "".join(kept)


def truncate(text: str, limit: int) -> str:
    """Cut text to limit cells, marking the cut with an ellipsis."""
    if cell_len(text) <= limit:
        return text
    return crop(text, limit) + TRUNCATION_MARKER


def stretch(text: str, scale_x: int) -> str:
    return "".join(ch * max(scale_x, 1) for ch in text)


def format_date(now: datetime) -> str:
    return f"{now:%m/%d/%Y} {WEEKDAYS[now.weekday()]}"


def format_temperature(snapshot: ModelSnapshot) -> str:
    reading = snapshot.temperature
    if reading is None or not snapshot.temperature_fresh:
        return TEMP_PLACEHOLDER
    text = f"{reading.value:.1f}°C"
    if reading.humidity is not None:
        text += f"  {reading.humidity:.0f}% RH"
    return text


def format_todo(item: TodoItem, max_chars: int) -> str:
    prefix = f"{item.deadline} | " if item.deadline else ""
    return f"{BULLET} {prefix}{truncate(item.description, max_chars)}"


def gauge_lines(value: float | None, width: int) -> list[str]:
    """Thermometer gauge: tick labels, tick marks and a bar up to value."""
    span = GAUGE_MAX_C - GAUGE_MIN_C
    labels = [" "] * width
    ticks = [BOX_H] * width
    for deg in GAUGE_TICKS:
        idx = round((deg - GAUGE_MIN_C) / span * (width - 1))
        ticks[idx] = "┴"
        label = str(deg)
        start = min(max(idx - len(label) // 2, 0), width - len(label))
        for i, ch in enumerate(label):
            labels[start + i] = ch

    filled = 0
    if value is not None:
        ratio = min(max((value - GAUGE_MIN_C) / span, 0.0), 1.0)
        filled = round(ratio * width)
    bar = "━" * filled + " " * (width - filled)
    return ["".join(labels), "".join(ticks), bar]


def _scale_steps(scale_x: int, scale_y: int) -> list[tuple[int, int]]:
    """Configured scale first, then progressively smaller ones down to 1x1."""
    steps: list[tuple[int, int]] = []
    for s in range(max(scale_x, scale_y), 0, -1):
        step = (min(scale_x, s), min(scale_y, s))
        if step not in steps:
            steps.append(step)
    return steps


def _main_block(snapshot: ModelSnapshot, settings: Settings, width: int, height: int) -> list[Line]:
    time_str = f"{snapshot.now:%H:%M:%S}"
    time_style = f"bold {resolve_color(settings.time_color)}"

    date_str = stretch(format_date(snapshot.now), settings.date_scale_x)
    if len(date_str) > width:
        date_str = format_date(snapshot.now)
    date_line = (date_str, resolve_color(settings.date_color))

    fresh = snapshot.temperature_fresh and snapshot.temperature is not None
    temp_style = f"bold {resolve_color(settings.temp_color)}" if fresh else PLACEHOLDER_STYLE
    info = [date_line, BLANK_LINE, (format_temperature(snapshot), temp_style)]

    gauge: list[Line] = []
    gauge_width = min(width - 4, GAUGE_MAX_WIDTH)
    if gauge_width >= GAUGE_MIN_WIDTH:
        value = snapshot.temperature.value if fresh else None
        labels, ticks, bar = gauge_lines(value, gauge_width)
        gauge = [BLANK_LINE, (labels, GAUGE_STYLE), (ticks, GAUGE_STYLE), (bar, temp_style)]

    for sx, sy in _scale_steps(settings.time_scale_x, settings.time_scale_y):
        digits = big_text(time_str, sx, sy)
        if len(digits[0]) > width:
            continue
        clock = [(row, time_style) for row in digits]
        gap = [BLANK_LINE] * ((sy + 1) // 2)
        for block in (clock + gap + info + gauge, clock + gap + info, clock + info):
            if len(block) <= height:
                return block

    plain = [(time_str, time_style)] + info
    if len(plain) <= height:
        return plain
    return [(time_str, time_style), date_line, info[2]][:height]


def _draw_main(frame: Frame, x0: int, width: int, snapshot: ModelSnapshot, settings: Settings) -> None:
    block = _main_block(snapshot, settings, width, frame.height)
    top = max((frame.height - len(block)) // 2, 0)
    for i, (text, style) in enumerate(block):
        if not text:
            continue
        clipped = crop(text, width)
        x = x0 + max((width - cell_len(clipped)) // 2, 0)
        frame.put(x, top + i, clipped, style)


def _todo_lines(snapshot: ModelSnapshot, settings: Settings, rows: int) -> list[Line]:
    if not snapshot.todos_loaded:
        return [(TODOS_UNAVAILABLE, PLACEHOLDER_STYLE)]
    items = snapshot.todos[: settings.todo_limit]
    if not items:
        return [(NO_TODOS, PLACEHOLDER_STYLE)]

    style = resolve_color(settings.todos_color)
    lines = [(format_todo(item, settings.todo_task_max_chars), style) for item in items]
    if len(lines) > rows:
        shown = max(rows - 1, 0)
        hidden = len(lines) - shown
        lines = lines[:shown] + [(f"{TRUNCATION_MARKER} {hidden} more", PLACEHOLDER_STYLE)]
    return lines


def _draw_todo_panel(frame: Frame, x0: int, width: int, snapshot: ModelSnapshot, settings: Settings) -> None:
    border_style = resolve_color(settings.todos_color)
    bottom = frame.height - 1

    frame.put(x0, 0, BOX_TL + BOX_H * (width - 2) + BOX_TR, border_style)
    for y in range(1, bottom):
        frame.put(x0, y, BOX_V, border_style)
        frame.put(x0 + width - 1, y, BOX_V, border_style)
    frame.put(x0, bottom, BOX_BL + BOX_H * (width - 2) + BOX_BR, border_style)

    stale = snapshot.todos_loaded and not snapshot.todos_fresh
    titles = (" TODO (stale) ", " TODO ") if stale else (" TODO ",)
    for title in titles:
        if len(title) <= width - 4:
            frame.put(x0 + 2, 0, title, f"bold {border_style}")
            break

    inner_width = width - 4
    rows = frame.height - 2
    for i, (text, style) in enumerate(_todo_lines(snapshot, settings, rows)):
        frame.put(x0 + 2, 1 + i, crop(text, inner_width), style)


def render_frame(snapshot: ModelSnapshot, settings: Settings, width: int, height: int) -> Frame:
    """Render one frame of exactly width x height cells."""
    frame = Frame.blank(width, height)
    if frame.width == 0 or frame.height == 0:
        return frame

    main_width = frame.width
    show_panel = settings.todo_limit > 0 and frame.height >= MIN_PANEL_HEIGHT
    if show_panel:
        main_width = max(frame.width * settings.main_window_percent // 100, 1)
        if frame.width - main_width < MIN_PANEL_WIDTH:
            show_panel = False
            main_width = frame.width

    _draw_main(frame, 0, main_width, snapshot, settings)
    if show_panel:
        _draw_todo_panel(frame, main_width, frame.width - main_width, snapshot, settings)
    return frame
