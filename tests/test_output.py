"""One-shot output formats and the plain-text interaction log."""

import json

import pytest

from chatdelta.orchestration import RoundResult
from chatdelta.output import render, write_interaction_log


@pytest.fixture
def result():
    return RoundResult(
        prompt="What is Rust?",
        responses=[("ChatGPT", "A systems language."), ("Claude", "A safe language.")],
        delta="Both stress systems programming.",
    )


class TestText:
    def test_single_response_printed_as_is(self):
        single = RoundResult(prompt="q", responses=[("Gemini", "Just me.")])
        assert render(single) == "Just me."

    def test_multiple_prints_summary(self, result):
        assert render(result) == "Both stress systems programming."

    def test_no_summary_falls_back_to_first(self, result):
        result.delta = None
        assert render(result) == "A systems language."

    def test_verbose_sections(self, result):
        text = render(result, verbose=True)
        assert "=== ChatGPT ===" in text
        assert "=== Claude ===" in text
        assert text.index("=== Summary ===") > text.index("A safe language.")


class TestJson:
    def test_shape(self, result):
        data = json.loads(render(result, "json"))
        assert data == {
            "prompt": "What is Rust?",
            "responses": {"ChatGPT": "A systems language.", "Claude": "A safe language."},
            "summary": "Both stress systems programming.",
        }

    def test_summary_omitted_when_absent(self, result):
        result.delta = None
        assert "summary" not in json.loads(render(result, "json"))


class TestMarkdown:
    def test_sections(self, result):
        md = render(result, "markdown")
        assert md.startswith("# ChatDelta Results")
        assert "**Prompt:** What is Rust?" in md
        assert "## ChatGPT" in md and "## Claude" in md
        assert "## Summary" in md


class TestInteractionLog:
    def test_writes_blocks(self, tmp_path, result):
        path = tmp_path / "chat.log"
        write_interaction_log(path, result)
        text = path.read_text(encoding="utf-8")
        assert text.startswith("Prompt:\nWhat is Rust?")
        assert "ChatGPT:\nA systems language." in text
        assert "Summary:\nBoth stress systems programming." in text

    def test_unwritable_path_raises(self, tmp_path, result):
        with pytest.raises(OSError):
            write_interaction_log(tmp_path / "missing" / "chat.log", result)
