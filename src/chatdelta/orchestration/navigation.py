"""
Navigation state machine -- panel selection, scrolling, the input buffer.

Panels are the provider slots in order followed by the delta panel.
next/previous wrap around; scrolling only moves the selected panel and is
clamped to [0, max(0, rows - viewport_height)]. Rows are the wrapped screen
rows the renderer reports in row_counts, or the transcript line count for
panels it has not drawn yet. The input buffer is shared by every panel.
"""

import logging
from dataclasses import dataclass

from .slots import SlotManager

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT_HEIGHT = 20
SCROLL_STEP = 1


class NavigationState:
    """Which panel is selected and how far each panel is scrolled."""

    def __init__(self, slots: SlotManager, viewport_height: int = DEFAULT_VIEWPORT_HEIGHT):
        self._slots = slots
        self.selected_panel = 0
        self.viewport_height = viewport_height
        self.row_counts: dict[int, int] = {}

    @property
    def panel_count(self) -> int:
        return self._slots.panel_count

    @property
    def on_delta_panel(self) -> bool:
        return self.selected_panel == self.panel_count - 1

    def next(self) -> int:
        self.selected_panel = (self.selected_panel + 1) % self.panel_count
        return self.selected_panel

    def previous(self) -> int:
        self.selected_panel = (self.selected_panel - 1) % self.panel_count
        return self.selected_panel

    def max_scroll(self, index: int | None = None) -> int:
        index = self.selected_panel if index is None else index
        rows = self.row_counts.get(index)
        if rows is None:
            rows = self._slots.panel(index).line_count
        return max(0, rows - self.viewport_height)

    def scroll_up(self) -> int:
        panel = self._slots.panel(self.selected_panel)
        panel.scroll_offset = self._clamp(panel.scroll_offset - SCROLL_STEP)
        return panel.scroll_offset

    def scroll_down(self) -> int:
        panel = self._slots.panel(self.selected_panel)
        panel.scroll_offset = self._clamp(panel.scroll_offset + SCROLL_STEP)
        return panel.scroll_offset

    def _clamp(self, offset: int) -> int:
        return min(max(offset, 0), self.max_scroll())


@dataclass
class InputBuffer:
    """The single prompt being typed, regardless of the selected panel."""

    text: str = ""

    def insert(self, char: str) -> None:
        self.text += char

    def backspace(self) -> None:
        self.text = self.text[:-1]

    def pending_prompt(self) -> str | None:
        """The trimmed prompt, or None when the buffer is blank."""
        return self.text.strip() or None

    def clear(self) -> None:
        self.text = ""
