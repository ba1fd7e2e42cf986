"""Test fixtures -- fake provider clients, slot sets, temp log root."""

import asyncio

import pytest

from chatdelta.errors import ProviderError
from chatdelta.harness import SessionLogger
from chatdelta.llm.client import StreamDelta
from chatdelta.orchestration import Orchestrator, ProviderSlot, SlotManager
from chatdelta.orchestration.delta import DELTA_HEADER


class FakeClient:
    """Provider client that answers from memory without any network.

    Args:
        reply: Answer to ordinary prompts.
        error: When set, ordinary prompts raise ProviderError(error).
        delta_reply: Answer to delta-synthesis prompts.
        delta_error: When set, delta prompts raise ProviderError(delta_error).
        chunks: Pieces pushed to the sink when streaming.
        fail_times: Fail this many calls before answering.
        delay: Seconds to await before answering (orders completions).
    """

    def __init__(
        self,
        name,
        reply="ok",
        error=None,
        delta_reply="delta",
        delta_error=None,
        chunks=None,
        streaming=False,
        fail_times=0,
        delay=0.0,
        gate=None,
    ):
        self._name = name
        self.reply = reply
        self.error = error
        self.delta_reply = delta_reply
        self.delta_error = delta_error
        self.chunks = chunks
        self.streaming = streaming
        self.fail_times = fail_times
        self.delay = delay
        self.gate = gate
        self.prompts = []
        self.stream_prompts = []

    @property
    def name(self):
        return self._name

    @property
    def delta_prompts(self):
        return [p for p in self.prompts if p.startswith(DELTA_HEADER)]

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)

    async def send_prompt(self, prompt):
        self.prompts.append(prompt)
        await self._wait()
        if prompt.startswith(DELTA_HEADER):
            if self.delta_error:
                raise ProviderError(self._name, self.delta_error)
            return self.delta_reply
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ProviderError(self._name, "temporary failure")
        if self.error:
            raise ProviderError(self._name, self.error)
        return self.reply

    def supports_streaming(self):
        return self.streaming

    async def send_prompt_streaming(self, prompt, sink):
        self.stream_prompts.append(prompt)
        await self._wait()
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ProviderError(self._name, "temporary failure")
        for chunk in self.chunks or []:
            sink(StreamDelta(content=chunk))
        if self.error:
            raise ProviderError(self._name, self.error)
        sink(StreamDelta(finished=True))


async def run_round(orchestrator, prompt):
    """Dispatch and tick until the round (delta included) is finished."""
    assert orchestrator.dispatch(prompt)
    await orchestrator.wait_round(poll_interval=0)


@pytest.fixture
def log_root(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def make_orchestrator(log_root):
    """Build an orchestrator over the given fake clients (None = disabled slot)."""

    def _make(clients, **kwargs):
        slots = SlotManager(
            [
                ProviderSlot(name=name, client=client)
                for name, client in clients
            ]
        )
        kwargs.setdefault("session_log", SessionLogger(log_root))
        return Orchestrator(slots, **kwargs)

    return _make


@pytest.fixture
def three_providers():
    """ChatGPT, Gemini and Claude fakes that all answer."""
    return {
        "ChatGPT": FakeClient("ChatGPT", reply="Rust is a systems language."),
        "Gemini": FakeClient("Gemini", reply="Rust is memory safe."),
        "Claude": FakeClient("Claude", reply="Rust has no garbage collector."),
    }
