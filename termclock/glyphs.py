"""Fixed lookup tables: big-digit glyphs and the color palette."""

from __future__ import annotations

GLYPH_HEIGHT = 5
GLYPH_GAP = 1

# 7-segment style bitmaps, one string per row.
GLYPHS: dict[str, tuple[str, ...]] = {
    "0": ("████", "█  █", "█  █", "█  █", "████"),
    "1": ("   █", "   █", "   █", "   █", "   █"),
    "2": ("████", "   █", "████", "█   ", "████"),
    "3": ("████", "   █", "████", "   █", "████"),
    "4": ("█  █", "█  █", "████", "   █", "   █"),
    "5": ("████", "█   ", "████", "   █", "████"),
    "6": ("████", "█   ", "████", "█  █", "████"),
    "7": ("████", "   █", "   █", "   █", "   █"),
    "8": ("████", "█  █", "████", "█  █", "████"),
    "9": ("████", "█  █", "████", "   █", "████"),
    ":": (" ", "█", " ", "█", " "),
    " ": ("    ",) * GLYPH_HEIGHT,
}

# Config color name -> rich color name. Unknown names map to the terminal default.
COLOR_TABLE: dict[str, str] = {
    "white": "white",
    "red": "red",
    "green": "green",
    "yellow": "yellow",
    "blue": "blue",
    "magenta": "magenta",
    "cyan": "cyan",
    "gray": "grey58",
    "grey": "grey58",
}
DEFAULT_COLOR = "default"


def resolve_color(name: str) -> str:
    """Map a config color name onto the palette."""
    return COLOR_TABLE.get(name.strip().lower(), DEFAULT_COLOR)


def big_text(text: str, scale_x: int = 1, scale_y: int = 1) -> list[str]:
    """Render text with the big glyph table, scaled by independent factors.

    Characters without a glyph render as blanks.
    """
    sx = max(scale_x, 1)
    sy = max(scale_y, 1)
    rows = [""] * GLYPH_HEIGHT
    for index, ch in enumerate(text):
        glyph = GLYPHS.get(ch, GLYPHS[" "])
        for r in range(GLYPH_HEIGHT):
            if index:
                rows[r] += " " * GLYPH_GAP
            rows[r] += glyph[r]

    scaled: list[str] = []
    for row in rows:
        wide = "".join(ch * sx for ch in row)
        scaled.extend([wide] * sy)
    return scaled
