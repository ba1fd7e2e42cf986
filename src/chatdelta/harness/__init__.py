"""Session harness -- the append-only log of prompts, responses and deltas."""
from .session_log import ProviderResponse, SessionLog, SessionLogger, Turn
