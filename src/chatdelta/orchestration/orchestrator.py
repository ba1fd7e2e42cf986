"""
Orchestrator -- fans one prompt out to every enabled provider and builds the delta.

Flow of one round:
  dispatch(prompt)  -> one asyncio task per enabled slot (retry-wrapped)
  provider tasks    -> Completed / StreamChunk events into one asyncio.Queue
  tick()            -> drain the queue without blocking, apply each event to
                       its slot, the session log and the metrics
  completion check  -> every enabled slot terminal and >= 2 successes:
                       one delta task on the summarizer -> DeltaReady/DeltaFailed

Concurrency rules:
  - tick() is the only code that mutates slots, the session log or metrics
  - provider tasks only read their client and put events on the queue
  - per-slot event order is the queue order; slots interleave arbitrarily
  - completion uses an explicit per-round pending set, never transcript text
  - the delta fires at most once per round (flag reset only by dispatch)
  - on quit nothing is cancelled; outstanding tasks are abandoned
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable

from ..errors import ProviderError
from ..harness.session_log import SessionLogger
from ..llm.client import AiClient, StreamDelta
from ..llm.retry import call_with_retry
from ..metrics import MetricsTracker
from ..security.prompt_guard import sanitize_prompt
from .delta import MIN_ANSWERS_FOR_DELTA, build_delta_prompt, pick_summarizer
from .events import (
    Completed,
    DeltaFailed,
    DeltaReady,
    ResponseEvent,
    StreamChunk,
    UIAction,
    UIEvent,
    is_terminal,
)
from .navigation import InputBuffer, NavigationState
from .slots import ERROR_PREFIX, THINKING, SlotManager

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1


# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass
class Round:
    """Book-keeping for one dispatched prompt."""

    prompt: str
    pending: set[int] = field(default_factory=set)
    answers: dict[int, str] = field(default_factory=dict)
    errors: dict[int, str] = field(default_factory=dict)
    delta_triggered: bool = False
    delta: str | None = None
    delta_error: str | None = None


@dataclass
class RoundResult:
    """Snapshot of a finished round, for one-shot output."""

    prompt: str
    responses: list[tuple[str, str]] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)
    delta: str | None = None
    delta_error: str | None = None


def describe_error(error: Exception) -> str:
    if isinstance(error, ProviderError):
        return error.message
    return f"{type(error).__name__}: {error}"


# =============================================================================
# ORCHESTRATOR
# =============================================================================


class Orchestrator:
    """
    Concurrent multi-provider dispatcher with a single-threaded apply loop.

    Usage:
        slots = SlotManager.from_handles(build_handles(config, http))
        orch = Orchestrator(slots, session_log=SessionLogger(config.log_root))
        orch.dispatch("What is Rust?")
        await orch.wait_round()          # or call orch.tick() every ~100ms
        print(orch.slots.delta.transcript)
    """

    def __init__(
        self,
        slots: SlotManager,
        session_log: SessionLogger | None = None,
        metrics: MetricsTracker | None = None,
        retries: int = 0,
        streaming: bool = False,
        summarize: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.slots = slots
        self.session_log = session_log or SessionLogger()
        self.metrics = metrics or MetricsTracker()
        self.retries = retries
        self.streaming = streaming
        self.summarize = summarize
        self.navigation = NavigationState(slots)
        self.input = InputBuffer()
        self.last_save_error: str | None = None
        self._sleep = sleep
        self._queue: asyncio.Queue[ResponseEvent] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._round: Round | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """A provider or the delta is still working on the current round."""
        return self.slots.any_in_flight()

    @property
    def round_complete(self) -> bool:
        r = self._round
        return r is None or (not r.pending and not self.slots.delta.in_flight)

    @property
    def pending_tasks(self) -> set[asyncio.Task]:
        return set(self._tasks)

    @property
    def current_round(self) -> Round | None:
        return self._round

    def round_result(self) -> RoundResult | None:
        r = self._round
        if r is None:
            return None
        return RoundResult(
            prompt=r.prompt,
            responses=[(self.slots[i].name, r.answers[i]) for i in sorted(r.answers)],
            errors=[(self.slots[i].name, r.errors[i]) for i in sorted(r.errors)],
            delta=r.delta,
            delta_error=r.delta_error,
        )

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, prompt: str) -> bool:
        """Send the prompt to every enabled slot. Must run inside an event loop."""
        prompt = sanitize_prompt(prompt)
        if not prompt:
            return False
        if self.busy:
            logger.warning("[Orchestrator] Previous round still running, prompt ignored")
            return False
        enabled = self.slots.enabled_indices()
        if not enabled:
            logger.warning("[Orchestrator] No enabled providers, prompt ignored")
            return False

        self._round = Round(prompt=prompt, pending=set(enabled))
        self.session_log.log_prompt(prompt)

        use_stream = self.streaming
        for index in enabled:
            slot = self.slots[index]
            slot.begin_request(prompt)
            self.session_log.start_timer(slot.name)
            self._spawn(self._run_provider(index, slot.client, prompt, use_stream))

        logger.info(
            f"[Orchestrator] Dispatched to {len(enabled)} provider(s) "
            f"(streaming={'on' if use_stream else 'off'})"
        )
        return True

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _emit(self, event: ResponseEvent) -> None:
        self._queue.put_nowait(event)

    async def _run_provider(
        self, index: int, client: AiClient, prompt: str, use_stream: bool
    ) -> None:
        if use_stream and client.supports_streaming():
            await self._run_streaming(index, client, prompt)
            return

        try:
            text = await call_with_retry(
                lambda: client.send_prompt(prompt),
                retries=self.retries,
                sleep=self._sleep,
                label=client.name,
            )
        except Exception as e:
            self._emit(Completed(index, "", error=describe_error(e)))
            return
        self._emit(Completed(index, text))

    async def _run_streaming(self, index: int, client: AiClient, prompt: str) -> None:
        """Forward stream deltas as chunks; exactly one terminal event per slot."""
        delivered = False
        finished = False

        def sink(delta: StreamDelta) -> None:
            nonlocal delivered, finished
            if finished:
                return
            if delta.finished:
                finished = True
                self._emit(StreamChunk(index, "", is_final=True))
            elif delta.content:
                delivered = True
                self._emit(StreamChunk(index, delta.content))

        try:
            await call_with_retry(
                lambda: client.send_prompt_streaming(prompt, sink),
                retries=self.retries,
                sleep=self._sleep,
                # once text is on screen a retry would duplicate it
                retry_if=lambda e: not delivered,
                label=f"{client.name} (stream)",
            )
        except Exception as e:
            if not finished:
                finished = True
                self._emit(Completed(index, "", error=describe_error(e)))
            return

        if not finished:
            finished = True
            self._emit(StreamChunk(index, "", is_final=True))

    async def _run_delta(self, client: AiClient, prompt: str) -> None:
        try:
            text = await client.send_prompt(prompt)
        except Exception as e:
            self._emit(DeltaFailed(describe_error(e)))
            return
        self._emit(DeltaReady(text))

    # -------------------------------------------------------------------------
    # Apply loop
    # -------------------------------------------------------------------------

    def tick(self) -> int:
        """Drain every queued event, apply it, then check for completion."""
        applied = 0
        saw_terminal = False
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            saw_terminal = self._apply(event) or saw_terminal
            applied += 1

        if saw_terminal:
            self._check_completion()
        return applied

    def _apply(self, event: ResponseEvent) -> bool:
        """Apply one event. Returns True when it resolved a provider slot."""
        if isinstance(event, (DeltaReady, DeltaFailed)):
            self._apply_delta(event)
            return False

        slot = self.slots[event.slot_index]
        if not slot.in_flight:
            logger.warning(f"[Orchestrator] Dropping event for idle slot {slot.name}")
            return False

        if not is_terminal(event):
            slot.apply_chunk(event.text)
            return False

        if isinstance(event, StreamChunk):
            text, error = slot.finish_stream(), None
        else:
            slot.complete(event.text, event.error)
            text, error = event.text, event.error

        self._record_terminal(event.slot_index, text, error)
        return True

    def _record_terminal(self, index: int, text: str, error: str | None) -> None:
        name = self.slots[index].name
        r = self._round
        if r is not None:
            r.pending.discard(index)
            if error is None:
                r.answers[index] = text
            else:
                r.errors[index] = error

        entry = self.session_log.log_response(
            name, error if error is not None else text, is_error=error is not None
        )
        self.metrics.record(
            name, success=error is None, latency_ms=entry.latency_ms if entry else None
        )
        if error is not None:
            logger.warning(f"[Orchestrator] {name} failed: {error}")
        else:
            logger.debug(f"[Orchestrator] {name} answered ({len(text)} chars)")

    def _apply_delta(self, event: DeltaReady | DeltaFailed) -> None:
        delta = self.slots.delta
        delta.in_flight = False
        r = self._round

        if isinstance(event, DeltaReady):
            delta.show(event.text)
            self.session_log.log_delta(event.text)
            if r is not None:
                r.delta = event.text
            logger.info("[Orchestrator] Delta ready")
            return

        delta.show(f"{ERROR_PREFIX}{event.reason}")
        self.session_log.close_turn()
        if r is not None:
            r.delta_error = event.reason
        logger.warning(f"[Orchestrator] Delta synthesis failed: {event.reason}")

    def _check_completion(self) -> None:
        r = self._round
        if r is None or r.pending or r.delta_triggered:
            return
        r.delta_triggered = True

        if not self.summarize:
            logger.info("[Orchestrator] Round complete (summary disabled)")
            return
        if len(r.answers) < MIN_ANSWERS_FOR_DELTA:
            logger.info(
                f"[Orchestrator] Round complete with {len(r.answers)} answer(s), "
                f"no delta"
            )
            return

        summarizer = pick_summarizer(self.slots.slots)
        if summarizer is None:
            return

        prompt = build_delta_prompt(
            [(self.slots[i].name, r.answers[i]) for i in sorted(r.answers)]
        )
        self.slots.delta.in_flight = True
        self.slots.delta.show(THINKING)
        self._spawn(self._run_delta(summarizer.client, prompt))
        logger.info(f"[Orchestrator] Delta synthesis sent to {summarizer.name}")

    async def wait_round(self, poll_interval: float = POLL_INTERVAL_SECONDS) -> None:
        """Tick until the current round, delta included, is finished."""
        while True:
            self.tick()
            if self.round_complete:
                return
            await asyncio.sleep(poll_interval)

    # -------------------------------------------------------------------------
    # UI events
    # -------------------------------------------------------------------------

    def handle_event(self, event: UIEvent) -> bool:
        """Apply one UI event. Returns False when the session should end."""
        action = event.action
        if action is UIAction.QUIT:
            return False
        if action is UIAction.NAVIGATE_LEFT:
            self.navigation.previous()
        elif action is UIAction.NAVIGATE_RIGHT:
            self.navigation.next()
        elif action is UIAction.SCROLL_UP:
            self.navigation.scroll_up()
        elif action is UIAction.SCROLL_DOWN:
            self.navigation.scroll_down()
        elif action is UIAction.INSERT_CHAR:
            self.input.insert(event.char)
        elif action is UIAction.BACKSPACE:
            self.input.backspace()
        elif action is UIAction.SUBMIT:
            prompt = self.input.pending_prompt()
            if prompt is not None and self.dispatch(prompt):
                self.input.clear()
        elif action is UIAction.TOGGLE_STREAMING:
            self.streaming = not self.streaming
            logger.info(f"[Orchestrator] Streaming {'on' if self.streaming else 'off'}")
        return True

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def shutdown(self) -> Path | None:
        """Close any open turn and save the session log. Never raises on I/O."""
        self.session_log.finalize()
        try:
            return self.session_log.save()
        except OSError as e:
            self.last_save_error = str(e)
            logger.warning(f"[Orchestrator] Could not save session log: {e}")
            return None
