"""Interactive terminal UI (textual)."""
from .app import ChatDeltaApp, key_to_event
