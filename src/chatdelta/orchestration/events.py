"""
Events -- everything that crosses into the orchestrator's apply loop.

Response events are produced by provider tasks and the delta task and flow
through one asyncio.Queue:

  Completed(slot_index, text, error)   terminal, full reply or failure
  StreamChunk(slot_index, text, is_final)   is_final=True is terminal
  DeltaReady(text) / DeltaFailed(reason)    result of delta synthesis

UI events come from whatever front end drives the session.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


# =============================================================================
# RESPONSE EVENTS
# =============================================================================


@dataclass(frozen=True)
class Completed:
    slot_index: int
    text: str
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class StreamChunk:
    slot_index: int
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class DeltaReady:
    text: str


@dataclass(frozen=True)
class DeltaFailed:
    reason: str


ResponseEvent = Union[Completed, StreamChunk, DeltaReady, DeltaFailed]


def is_terminal(event: ResponseEvent) -> bool:
    """Whether the event resolves a provider slot's current request."""
    if isinstance(event, Completed):
        return True
    if isinstance(event, StreamChunk):
        return event.is_final
    return False


# =============================================================================
# UI EVENTS
# =============================================================================


class UIAction(Enum):
    NAVIGATE_LEFT = "navigate_left"
    NAVIGATE_RIGHT = "navigate_right"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    INSERT_CHAR = "insert_char"
    BACKSPACE = "backspace"
    SUBMIT = "submit"
    TOGGLE_STREAMING = "toggle_streaming"
    QUIT = "quit"


@dataclass(frozen=True)
class UIEvent:
    action: UIAction
    char: str = ""

    @classmethod
    def insert(cls, char: str) -> "UIEvent":
        return cls(UIAction.INSERT_CHAR, char)
