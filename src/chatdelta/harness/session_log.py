"""
Session Log - append-only record of one chatdelta session.

  SessionLog  -- Durable container: session id, start/end time, closed turns
  Turn        -- One prompt, every provider's response, optional delta
  ProviderResponse -- text, latency_ms, error for one provider in one turn

Exactly one Turn is open at a time. It closes (moves into the log) when the
delta is attached, when the next prompt arrives, or at shutdown. Closed
turns are never touched again.

On disk (one JSON document per session):
  <log_root>/<YYYY-MM-DD>/session_<YYYYmmdd_HHMMSS>_<8-char id>.json
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from ..config import default_log_root

logger = logging.getLogger(__name__)

SESSION_ID_PREFIX_LENGTH = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PRIMITIVES
# =============================================================================


@dataclass
class ProviderResponse:
    """One provider's answer (or failure) within a turn."""

    text: str = ""
    latency_ms: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "latency_ms": self.latency_ms, "error": self.error}


@dataclass
class Turn:
    """One prompt-and-all-responses unit."""

    prompt: str
    timestamp: datetime = field(default_factory=_utcnow)
    responses: dict[str, ProviderResponse] = field(default_factory=dict)
    delta_analysis: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "prompt": self.prompt,
            "responses": {name: r.to_dict() for name, r in self.responses.items()},
            "delta_analysis": self.delta_analysis,
        }


@dataclass
class SessionLog:
    """Durable container for a session. Turns are only ever appended."""

    session_id: uuid.UUID = field(default_factory=uuid.uuid4)
    start_time: datetime = field(default_factory=_utcnow)
    end_time: datetime | None = None
    conversations: list[Turn] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": str(self.session_id),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "conversations": [t.to_dict() for t in self.conversations],
        }


# =============================================================================
# LOGGER
# =============================================================================


class SessionLogger:
    """
    Records prompts, per-provider responses with latency, and delta text.

    Usage:
        log = SessionLogger()
        log.log_prompt("What is Rust?")
        log.start_timer("ChatGPT")
        log.log_response("ChatGPT", "Rust is ...", is_error=False)
        log.log_delta("Both answers agree that ...")
        path = log.save()
    """

    def __init__(
        self,
        log_root: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._log_root = log_root or default_log_root()
        self._clock = clock
        self._log = SessionLog()
        self._current: Turn | None = None
        self._timers: dict[str, float] = {}

    @property
    def log(self) -> SessionLog:
        return self._log

    @property
    def session_id(self) -> uuid.UUID:
        return self._log.session_id

    @property
    def current_turn(self) -> Turn | None:
        return self._current

    def log_prompt(self, prompt: str) -> None:
        """Open a new turn, closing any open one as-is (partial turns are kept)."""
        if self._current is not None:
            logger.debug("[SessionLog] Closing previous turn without delta")
            self._close()
        self._current = Turn(prompt=prompt)
        self._timers.clear()

    def start_timer(self, provider: str) -> None:
        self._timers[provider] = self._clock()

    def log_response(
        self, provider: str, text: str, is_error: bool = False
    ) -> ProviderResponse | None:
        """Fill the provider's entry in the open turn. No-op without one."""
        if self._current is None:
            logger.debug(f"[SessionLog] Response from {provider} with no open turn")
            return None

        latency_ms = None
        started = self._timers.get(provider)
        if started is not None:
            latency_ms = int((self._clock() - started) * 1000)

        if is_error:
            entry = ProviderResponse(text="", latency_ms=latency_ms, error=text)
        else:
            entry = ProviderResponse(text=text, latency_ms=latency_ms)
        self._current.responses[provider] = entry
        return entry

    def log_delta(self, delta: str) -> None:
        """Attach the delta analysis and close the open turn."""
        if self._current is not None:
            self._current.delta_analysis = delta
        self._close()

    def close_turn(self) -> None:
        """Close the open turn without a delta."""
        self._close()

    def finalize(self) -> None:
        """Shutdown: keep whatever turn is still open."""
        self._close()

    def _close(self) -> None:
        if self._current is None:
            return
        self._log.conversations.append(self._current)
        self._current = None

    def file_path(self) -> Path:
        start = self._log.start_time
        filename = (
            f"session_{start.strftime('%Y%m%d_%H%M%S')}_"
            f"{str(self._log.session_id)[:SESSION_ID_PREFIX_LENGTH]}.json"
        )
        return self._log_root / start.strftime("%Y-%m-%d") / filename

    def save(self) -> Path:
        """
        Write the whole log as pretty JSON and return the file path.

        Raises:
            OSError: directory creation or write failed.
        """
        self._log.end_time = _utcnow()
        path = self.file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._log.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(
            f"[SessionLog] Saved {len(self._log.conversations)} turn(s) to {path}"
        )
        return path
