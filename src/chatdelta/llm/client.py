"""
Provider capability -- the contract every AI backend satisfies.

The orchestrator only ever talks to this interface:

    reply = await client.send_prompt("What is Rust?")

    if client.supports_streaming():
        await client.send_prompt_streaming("What is Rust?", sink)

A streaming client pushes StreamDelta items into the sink as tokens arrive
and finishes with StreamDelta(finished=True). Every failure (transport,
HTTP status, malformed payload) surfaces as ProviderError, so callers never
need to know which wire format sits underneath.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass(frozen=True)
class StreamDelta:
    """One increment of a streamed reply."""

    content: str = ""
    finished: bool = False


StreamSink = Callable[[StreamDelta], None]


# =============================================================================
# CAPABILITY
# =============================================================================


@runtime_checkable
class AiClient(Protocol):
    """Interface any provider client must implement.

    Example:
        class EchoClient:
            name = "Echo"

            async def send_prompt(self, prompt): return prompt
            def supports_streaming(self): return False
            async def send_prompt_streaming(self, prompt, sink): ...
    """

    @property
    def name(self) -> str: ...

    async def send_prompt(self, prompt: str) -> str: ...

    def supports_streaming(self) -> bool: ...

    async def send_prompt_streaming(self, prompt: str, sink: StreamSink) -> None: ...
