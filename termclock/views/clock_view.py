"""Full-screen widget that paints the current Frame."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import RenderableType
from rich.text import Text
from textual.widget import Widget

from termclock.render import Frame

logger = logging.getLogger(__name__)


class ClockView(Widget):
    """Paints whatever frame the source returns for the current size."""

    DEFAULT_CSS = """
    ClockView {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self, frame_source: Callable[[int, int], Frame], **kwargs) -> None:
        super().__init__(**kwargs)
        self._frame_source = frame_source
        self._last_text: Text | None = None
        self.last_frame: Frame | None = None

    def render(self) -> RenderableType:
        width, height = self.size.width, self.size.height
        try:
            frame = self._frame_source(width, height)
        except Exception:
            # Skip this frame; the next tick redraws from scratch.
            logger.exception("Frame render failed at %dx%d", width, height)
            return self._last_text if self._last_text is not None else Text("")
        self.last_frame = frame
        self._last_text = frame.to_text()
        return self._last_text
