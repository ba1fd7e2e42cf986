"""
Provider slots -- per-provider mutable state owned by the orchestrator.

A slot holds the provider's chat transcript (display lines), its scroll
offset, whether it is enabled, and whether a request is in flight. The
DeltaPanel is the extra panel that shows the cross-provider summary.

Nothing here is touched from provider tasks: the orchestrator's apply loop
is the only writer, so no locks are needed.
"""

import logging
from dataclasses import dataclass, field

from ..llm.client import AiClient
from ..llm.factory import ProviderHandle

logger = logging.getLogger(__name__)

THINKING = "Thinking…"
ERROR_PREFIX = "Error: "
DISABLED_NOTICE = "API key missing. Set environment variable to enable."
DELTA_WELCOME = "Differences between providers appear here once they all answer."


def count_lines(lines: list[str]) -> int:
    """Display lines, counting embedded newlines."""
    return sum(max(1, len(line.splitlines())) for line in lines)


@dataclass
class ProviderSlot:
    """State of one provider column."""

    name: str
    client: AiClient | None = None
    transcript: list[str] = field(default_factory=list)
    scroll_offset: int = 0
    in_flight: bool = False
    _response_line: int | None = field(default=None, init=False, repr=False)
    _stream_text: str = field(default="", init=False, repr=False)
    _streamed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        if not self.transcript:
            self.transcript.append(
                f"Welcome to {self.name} chat!" if self.enabled else DISABLED_NOTICE
            )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @property
    def line_count(self) -> int:
        return count_lines(self.transcript)

    def begin_request(self, prompt: str) -> None:
        """Record the prompt, add the placeholder and mark the slot in flight."""
        self.transcript.append(f"You: {prompt}")
        self.transcript.append(THINKING)
        self._response_line = len(self.transcript) - 1
        self._stream_text = ""
        self._streamed = False
        self.in_flight = True

    def apply_chunk(self, text: str) -> None:
        """First chunk replaces the placeholder; later ones append to it."""
        if self._response_line is None:
            logger.warning(f"[Slot:{self.name}] Chunk with no pending request")
            return
        self._stream_text += text
        self._streamed = True
        self.transcript[self._response_line] = self._stream_text

    def finish_stream(self) -> str:
        """Final chunk: append nothing, mark terminal, return the full text."""
        if self._response_line is not None and not self._streamed:
            self.transcript[self._response_line] = ""
        self._response_line = None
        self.in_flight = False
        return self._stream_text

    def complete(self, text: str, error: str | None = None) -> str:
        """Whole reply (or failure) in one go. Returns the displayed text."""
        display = f"{ERROR_PREFIX}{error}" if error is not None else text
        if self._response_line is not None:
            self.transcript[self._response_line] = display
        else:
            self.transcript.append(display)
        self._response_line = None
        self.in_flight = False
        return display

    @classmethod
    def from_handle(cls, handle: ProviderHandle) -> "ProviderSlot":
        return cls(name=handle.name, client=handle.client)


@dataclass
class DeltaPanel:
    """The distinguished last panel holding the delta summary."""

    name: str = "Delta"
    transcript: list[str] = field(default_factory=lambda: [DELTA_WELCOME])
    scroll_offset: int = 0
    in_flight: bool = False

    @property
    def line_count(self) -> int:
        return count_lines(self.transcript)

    def show(self, text: str) -> None:
        self.transcript = [text]
        self.scroll_offset = 0


class SlotManager:
    """Ordered provider slots plus the delta panel."""

    def __init__(self, slots: list[ProviderSlot]):
        self._slots = list(slots)
        self.delta = DeltaPanel()

    @classmethod
    def from_handles(cls, handles: list[ProviderHandle]) -> "SlotManager":
        return cls([ProviderSlot.from_handle(h) for h in handles])

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> ProviderSlot:
        return self._slots[index]

    def __iter__(self):
        return iter(self._slots)

    @property
    def slots(self) -> list[ProviderSlot]:
        return list(self._slots)

    def enabled_indices(self) -> list[int]:
        return [i for i, s in enumerate(self._slots) if s.enabled]

    def any_in_flight(self) -> bool:
        return any(s.in_flight for s in self._slots) or self.delta.in_flight

    @property
    def panel_count(self) -> int:
        """Provider panels plus the delta panel."""
        return len(self._slots) + 1

    def panel(self, index: int) -> ProviderSlot | DeltaPanel:
        if index == len(self._slots):
            return self.delta
        return self._slots[index]
