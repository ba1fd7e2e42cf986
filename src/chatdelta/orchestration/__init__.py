"""
Multi-provider orchestration.

  Orchestrator    -- dispatch, event channel, apply loop, delta synthesis
  SlotManager     -- per-provider transcript/scroll/in-flight state + delta panel
  NavigationState -- panel selection and scrolling driven by UI events

Provider tasks and the apply loop only meet at one asyncio.Queue of
ResponseEvents; everything else is mutated by the apply loop alone.
"""
from .events import (
    Completed,
    DeltaFailed,
    DeltaReady,
    ResponseEvent,
    StreamChunk,
    UIAction,
    UIEvent,
)
from .navigation import InputBuffer, NavigationState
from .orchestrator import Orchestrator, Round, RoundResult
from .slots import DeltaPanel, ProviderSlot, SlotManager
