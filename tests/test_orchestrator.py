"""Orchestrator: fan-out, event application, completion and delta synthesis."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from chatdelta.orchestration import Completed, UIAction, UIEvent
from chatdelta.orchestration.delta import build_delta_prompt, pick_summarizer
from chatdelta.orchestration.slots import DELTA_WELCOME, THINKING, ProviderSlot

from conftest import FakeClient, run_round


class TestDispatch:
    @pytest.mark.asyncio
    async def test_marks_enabled_slots_in_flight(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", gate=asyncio.Event())
        orch = make_orchestrator([("ChatGPT", gpt), ("Claude", None)])

        assert orch.dispatch("hello")

        slot = orch.slots[0]
        assert slot.in_flight
        assert slot.transcript[-2:] == ["You: hello", THINKING]
        assert orch.busy
        disabled = orch.slots[1]
        assert not disabled.in_flight
        assert "You: hello" not in disabled.transcript

        gpt.gate.set()
        await orch.wait_round(poll_interval=0)
        assert not orch.busy

    @pytest.mark.asyncio
    async def test_empty_prompt_rejected(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        assert not orch.dispatch("   ")
        assert orch.current_round is None

    @pytest.mark.asyncio
    async def test_no_enabled_slots_rejected(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", None), ("Gemini", None)])
        assert not orch.dispatch("hello")
        assert orch.session_log.current_turn is None

    @pytest.mark.asyncio
    async def test_busy_rejects_second_prompt(self, make_orchestrator):
        gate = asyncio.Event()
        gpt = FakeClient("ChatGPT", gate=gate)
        orch = make_orchestrator([("ChatGPT", gpt)])

        assert orch.dispatch("first")
        assert not orch.dispatch("second")

        gate.set()
        await orch.wait_round(poll_interval=0)
        assert gpt.prompts == ["first"]
        assert orch.dispatch("second")
        await orch.wait_round(poll_interval=0)

    @pytest.mark.asyncio
    async def test_prompt_sanitized(self, make_orchestrator):
        gpt = FakeClient("ChatGPT")
        orch = make_orchestrator([("ChatGPT", gpt)])
        await run_round(orch, "  hel\x00lo  ")
        assert gpt.prompts == ["hello"]


class TestDeltaSynthesis:
    """Delta fires once per round, only with two or more successes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "delays",
        [(0.0, 0.01, 0.02), (0.02, 0.01, 0.0), (0.01, 0.0, 0.02)],
    )
    async def test_two_success_one_error_gives_one_delta(self, make_orchestrator, delays):
        gpt = FakeClient("ChatGPT", reply="answer A", delay=delays[0])
        gemini = FakeClient("Gemini", reply="answer B", delay=delays[1])
        claude = FakeClient("Claude", error="HTTP 500: overloaded", delay=delays[2])
        orch = make_orchestrator([("ChatGPT", gpt), ("Gemini", gemini), ("Claude", claude)])

        await run_round(orch, "compare")

        assert len(gemini.delta_prompts) == 1
        assert gpt.delta_prompts == [] and claude.delta_prompts == []
        delta_prompt = gemini.delta_prompts[0]
        assert delta_prompt == build_delta_prompt(
            [("ChatGPT", "answer A"), ("Gemini", "answer B")]
        )
        assert "overloaded" not in delta_prompt
        assert orch.slots[2].transcript[-1] == "Error: HTTP 500: overloaded"

    @pytest.mark.asyncio
    async def test_single_slot_never_triggers_delta(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="only answer")
        orch = make_orchestrator([("ChatGPT", gpt)])

        await run_round(orch, "hello")

        assert gpt.delta_prompts == []
        assert orch.slots.delta.transcript == [DELTA_WELCOME]
        assert orch.round_result().delta is None

    @pytest.mark.asyncio
    async def test_one_success_skips_delta(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="fine")
        gemini = FakeClient("Gemini", error="down")
        orch = make_orchestrator([("ChatGPT", gpt), ("Gemini", gemini)])

        await run_round(orch, "hello")

        assert gemini.delta_prompts == []
        assert orch.slots.delta.transcript == [DELTA_WELCOME]

    @pytest.mark.asyncio
    async def test_delta_fires_at_most_once(self, make_orchestrator, three_providers):
        orch = make_orchestrator(list(three_providers.items()))
        await run_round(orch, "hello")

        # a stray terminal event for an already-resolved slot changes nothing
        orch._emit(Completed(0, "duplicate"))
        orch.tick()
        orch._check_completion()
        await asyncio.sleep(0)
        orch.tick()

        assert len(three_providers["Gemini"].delta_prompts) == 1
        assert orch.slots[0].transcript[-1] == "Rust is a systems language."

    @pytest.mark.asyncio
    async def test_summary_disabled(self, make_orchestrator, three_providers):
        orch = make_orchestrator(list(three_providers.items()), summarize=False)
        await run_round(orch, "hello")
        assert three_providers["Gemini"].delta_prompts == []
        assert orch.round_complete

    @pytest.mark.asyncio
    async def test_delta_failure_shows_error_and_closes_turn(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="A")
        gemini = FakeClient("Gemini", reply="B", delta_error="quota exceeded")
        orch = make_orchestrator([("ChatGPT", gpt), ("Gemini", gemini)])

        await run_round(orch, "hello")

        assert orch.slots.delta.transcript == ["Error: quota exceeded"]
        assert orch.session_log.current_turn is None
        assert orch.session_log.log.conversations[0].delta_analysis is None
        assert orch.round_result().delta_error == "quota exceeded"
        assert len(gemini.delta_prompts) == 1

    @pytest.mark.asyncio
    async def test_first_enabled_summarizes_without_gemini(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="A", delta_reply="from gpt")
        claude = FakeClient("Claude", reply="B")
        orch = make_orchestrator([("ChatGPT", gpt), ("Gemini", None), ("Claude", claude)])

        await run_round(orch, "hello")

        assert len(gpt.delta_prompts) == 1
        assert orch.slots.delta.transcript == ["from gpt"]


class TestPickSummarizer:
    def test_prefers_gemini(self):
        slots = [
            ProviderSlot("ChatGPT", client=FakeClient("ChatGPT")),
            ProviderSlot("Gemini", client=FakeClient("Gemini")),
        ]
        assert pick_summarizer(slots).name == "Gemini"

    def test_skips_disabled_gemini(self):
        slots = [ProviderSlot("Gemini"), ProviderSlot("Claude", client=FakeClient("Claude"))]
        assert pick_summarizer(slots).name == "Claude"

    def test_none_when_nothing_enabled(self):
        assert pick_summarizer([ProviderSlot("Gemini")]) is None


class TestStreaming:
    @pytest.mark.asyncio
    async def test_chunks_reassemble(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", chunks=["Hel", "lo"], streaming=True)
        orch = make_orchestrator([("ChatGPT", gpt)], streaming=True)

        await run_round(orch, "hi")

        slot = orch.slots[0]
        assert slot.transcript[-1] == "Hello"
        assert THINKING not in slot.transcript
        assert not slot.in_flight
        assert orch.session_log.current_turn.responses["ChatGPT"].text == "Hello"
        assert gpt.prompts == []

    @pytest.mark.asyncio
    async def test_empty_stream_leaves_empty_line(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", chunks=[], streaming=True)
        orch = make_orchestrator([("ChatGPT", gpt)], streaming=True)

        await run_round(orch, "hi")

        assert orch.slots[0].transcript[-1] == ""
        assert orch.round_result().responses == [("ChatGPT", "")]

    @pytest.mark.asyncio
    async def test_error_after_text_is_terminal_without_retry(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", chunks=["partial"], error="connection reset", streaming=True)
        sleep = AsyncMock()
        orch = make_orchestrator([("ChatGPT", gpt)], streaming=True, retries=3, sleep=sleep)

        await run_round(orch, "hi")

        assert len(gpt.stream_prompts) == 1
        sleep.assert_not_awaited()
        assert orch.slots[0].transcript[-1] == "Error: connection reset"
        assert orch.round_result().errors == [("ChatGPT", "connection reset")]

    @pytest.mark.asyncio
    async def test_failure_before_first_chunk_is_retried(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", chunks=["ok"], streaming=True, fail_times=1)
        sleep = AsyncMock()
        orch = make_orchestrator([("ChatGPT", gpt)], streaming=True, retries=1, sleep=sleep)

        await run_round(orch, "hi")

        assert len(gpt.stream_prompts) == 2
        assert orch.slots[0].transcript[-1] == "ok"

    @pytest.mark.asyncio
    async def test_non_streaming_client_uses_plain_call(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="whole", streaming=False)
        orch = make_orchestrator([("ChatGPT", gpt)], streaming=True)
        await run_round(orch, "hi")
        assert gpt.prompts == ["hi"]
        assert orch.slots[0].transcript[-1] == "whole"


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_failure_recovered(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="finally", fail_times=2)
        sleep = AsyncMock()
        orch = make_orchestrator([("ChatGPT", gpt)], retries=2, sleep=sleep)

        await run_round(orch, "hi")

        assert len(gpt.prompts) == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
        assert orch.slots[0].transcript[-1] == "finally"


class TestWhatIsRust:
    """End to end: three providers answer, Gemini writes the delta."""

    @pytest.mark.asyncio
    async def test_full_round(self, make_orchestrator, three_providers):
        three_providers["Gemini"].delta_reply = "All agree Rust is safe and fast."
        orch = make_orchestrator(list(three_providers.items()))

        await run_round(orch, "What is Rust?")

        for slot in orch.slots:
            assert slot.transcript == [
                f"Welcome to {slot.name} chat!",
                "You: What is Rust?",
                three_providers[slot.name].reply,
            ]
            assert not slot.in_flight
        assert orch.slots.delta.transcript == ["All agree Rust is safe and fast."]

        log = orch.session_log
        assert log.current_turn is None
        assert len(log.log.conversations) == 1
        turn = log.log.conversations[0]
        assert set(turn.responses) == {"ChatGPT", "Gemini", "Claude"}
        assert turn.delta_analysis == "All agree Rust is safe and fast."

        assert orch.metrics.summary() == "3 requests | 100% success"
        result = orch.round_result()
        assert [name for name, _ in result.responses] == ["ChatGPT", "Gemini", "Claude"]
        assert result.delta == "All agree Rust is safe and fast."


class TestUIEvents:
    @pytest.mark.asyncio
    async def test_typing_and_submit(self, make_orchestrator):
        gpt = FakeClient("ChatGPT", reply="hi there")
        orch = make_orchestrator([("ChatGPT", gpt)])

        for ch in "hey":
            assert orch.handle_event(UIEvent.insert(ch))
        orch.handle_event(UIEvent(UIAction.BACKSPACE))
        assert orch.input.text == "he"

        orch.handle_event(UIEvent(UIAction.SUBMIT))
        assert orch.input.text == ""
        await orch.wait_round(poll_interval=0)
        assert gpt.prompts == ["he"]

    @pytest.mark.asyncio
    async def test_submit_while_busy_keeps_buffer(self, make_orchestrator):
        gate = asyncio.Event()
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT", gate=gate))])
        orch.dispatch("first")

        for ch in "next":
            orch.handle_event(UIEvent.insert(ch))
        orch.handle_event(UIEvent(UIAction.SUBMIT))
        assert orch.input.text == "next"

        gate.set()
        await orch.wait_round(poll_interval=0)

    def test_blank_submit_is_noop(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        orch.handle_event(UIEvent.insert(" "))
        assert orch.handle_event(UIEvent(UIAction.SUBMIT))
        assert orch.current_round is None

    def test_toggle_streaming(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        orch.handle_event(UIEvent(UIAction.TOGGLE_STREAMING))
        assert orch.streaming

    def test_quit_returns_false(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        assert orch.handle_event(UIEvent(UIAction.QUIT)) is False

    def test_navigation_routed(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        orch.handle_event(UIEvent(UIAction.NAVIGATE_RIGHT))
        assert orch.navigation.on_delta_panel
        orch.handle_event(UIEvent(UIAction.NAVIGATE_LEFT))
        assert orch.navigation.selected_panel == 0


class TestShutdown:
    @pytest.mark.asyncio
    async def test_saves_open_turn(self, make_orchestrator):
        orch = make_orchestrator([("ChatGPT", FakeClient("ChatGPT"))])
        await run_round(orch, "hello")

        path = orch.shutdown()

        assert path is not None and path.exists()
        assert len(orch.session_log.log.conversations) == 1

    def test_save_failure_reported_not_raised(self, tmp_path, make_orchestrator):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        from chatdelta.harness import SessionLogger

        orch = make_orchestrator(
            [("ChatGPT", FakeClient("ChatGPT"))], session_log=SessionLogger(blocker)
        )

        assert orch.shutdown() is None
        assert orch.last_save_error
