"""Textual front end: one column per provider plus the delta column.

Keys map onto orchestrator UI events:
  Left / Shift+Tab   previous panel        Up / Down   scroll selected panel
  Right / Tab        next panel            Enter       send prompt to all
  Ctrl+S             toggle streaming      Esc/Ctrl+Q  quit (saves session log)

The app never talks to providers itself. Every 100 ms it calls
Orchestrator.tick() and redraws from slot state. The session log is saved
once, on whichever exit path runs first.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Static

from ..orchestration import Orchestrator, UIAction, UIEvent
from ..orchestration.slots import DeltaPanel, ProviderSlot

logger = logging.getLogger(__name__)

TICK_SECONDS = 0.1
PANEL_CHROME_LINES = 2

KEY_ACTIONS = {
    "left": UIAction.NAVIGATE_LEFT,
    "shift+tab": UIAction.NAVIGATE_LEFT,
    "right": UIAction.NAVIGATE_RIGHT,
    "tab": UIAction.NAVIGATE_RIGHT,
    "up": UIAction.SCROLL_UP,
    "down": UIAction.SCROLL_DOWN,
    "enter": UIAction.SUBMIT,
    "backspace": UIAction.BACKSPACE,
    "ctrl+s": UIAction.TOGGLE_STREAMING,
    "escape": UIAction.QUIT,
    "ctrl+q": UIAction.QUIT,
}


def key_to_event(key: str, character: str | None, printable: bool) -> UIEvent | None:
    """Translate a textual key press into a UI event (None = ignore)."""
    action = KEY_ACTIONS.get(key)
    if action is not None:
        return UIEvent(action)
    if printable and character:
        return UIEvent.insert(character)
    return None


class ChatDeltaApp(App):
    BINDINGS = [
        Binding(key, f"ui('{action.value}')", show=False, priority=True)
        for key, action in KEY_ACTIONS.items()
    ]

    CSS = """
    #panels { height: 1fr; }
    .panel { width: 1fr; border: round $secondary; padding: 0 1; }
    .panel.selected { border: heavy yellow; }
    .panel.disabled { text-style: dim; }
    #prompt { height: 3; border: round $accent; padding: 0 1; }
    #status { height: 1; color: $text-muted; }
    """

    def __init__(self, orchestrator: Orchestrator, http: httpx.AsyncClient | None = None, **kwargs):
        super().__init__(**kwargs)
        self.orchestrator = orchestrator
        self._http = http
        self.saved_log: Path | None = None
        self._shut_down = False
        self._drawn = False
        self.title = "ChatDelta"

    def compose(self) -> ComposeResult:
        with Horizontal(id="panels"):
            for index, slot in enumerate(self.orchestrator.slots):
                classes = "panel" if slot.enabled else "panel disabled"
                yield Static(id=f"panel-{index}", classes=classes)
            yield Static(id="panel-delta", classes="panel")
        yield Static(id="prompt")
        yield Static(id="status")

    def on_mount(self) -> None:
        self.set_interval(TICK_SECONDS, self._tick)
        self._drawn = True
        self._redraw()
        self.call_after_refresh(self._redraw)

    def on_resize(self, event: events.Resize) -> None:
        if self._drawn:
            self._redraw()

    async def on_unmount(self) -> None:
        self._shutdown_session()
        if self._http is not None:
            await self._http.aclose()

    def on_key(self, event: events.Key) -> None:
        if event.key in KEY_ACTIONS:
            return
        ui_event = key_to_event(event.key, event.character, event.is_printable)
        if ui_event is None:
            return
        event.stop()
        self._handle(ui_event)

    def action_ui(self, action: str) -> None:
        self._handle(UIEvent(UIAction(action)))

    def _handle(self, ui_event: UIEvent) -> None:
        if not self.orchestrator.handle_event(ui_event):
            self._quit()
            return
        self._redraw()

    async def action_quit(self) -> None:
        self._quit()

    def _quit(self) -> None:
        self._shutdown_session()
        self.exit()

    def _shutdown_session(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        self.saved_log = self.orchestrator.shutdown()

    def _tick(self) -> None:
        if self.orchestrator.tick():
            self._redraw()

    # -- drawing ---------------------------------------------------------------

    def _panel_widgets(self) -> list[Static]:
        count = len(self.orchestrator.slots)
        widgets = [self.query_one(f"#panel-{i}", Static) for i in range(count)]
        widgets.append(self.query_one("#panel-delta", Static))
        return widgets

    def _redraw(self) -> None:
        orch = self.orchestrator
        nav = orch.navigation
        panels_height = self.query_one("#panels").size.height
        if panels_height > PANEL_CHROME_LINES:
            nav.viewport_height = panels_height - PANEL_CHROME_LINES

        for index, widget in enumerate(self._panel_widgets()):
            panel = orch.slots.panel(index)
            rows = self._rows(panel, widget.content_size.width)
            nav.row_counts[index] = len(rows)
            panel.scroll_offset = min(panel.scroll_offset, nav.max_scroll(index))
            window = rows[panel.scroll_offset:panel.scroll_offset + nav.viewport_height]
            widget.border_title = self._title(panel)
            widget.set_class(index == nav.selected_panel, "selected")
            widget.update(Text("\n", no_wrap=True).join(window))

        self.query_one("#prompt", Static).update(Text(f"> {orch.input.text}"))
        streaming = "on" if orch.streaming else "off"
        self.query_one("#status", Static).update(
            Text(f"streaming: {streaming} | {orch.metrics.summary()}")
        )

    @staticmethod
    def _title(panel: ProviderSlot | DeltaPanel) -> str:
        if panel.in_flight:
            return f"{panel.name} …"
        return panel.name

    def _rows(self, panel: ProviderSlot | DeltaPanel, width: int) -> list[Text]:
        """The panel transcript as screen rows, wrapped to the panel width."""
        lines: list[str] = []
        for entry in panel.transcript:
            lines.extend(entry.splitlines() or [""])
        if width <= 0:
            return [Text(line) for line in lines]
        return list(Text("\n".join(lines)).wrap(self.console, width))
