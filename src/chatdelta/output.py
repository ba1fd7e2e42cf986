"""
One-shot output -- render a finished round as text, JSON or markdown.

  text      single answer as-is; several answers -> the summary (or the
            first answer when there is none); --verbose adds a section per
            provider
  json      {"prompt", "responses": {name: text}, "summary"?}
  markdown  "# ChatDelta Results" with one "##" section per provider
"""

import json
import logging
from pathlib import Path

from .orchestration.orchestrator import RoundResult

logger = logging.getLogger(__name__)


def render_text(result: RoundResult, verbose: bool = False) -> str:
    responses = result.responses
    if len(responses) == 1:
        return responses[0][1]

    lines: list[str] = []
    if verbose:
        for name, response in responses:
            lines.append(f"=== {name} ===")
            lines.append(f"{response}\n")

    if result.delta is not None:
        if verbose:
            lines.append("=== Summary ===")
        lines.append(result.delta)
    elif not verbose and responses:
        lines.append(responses[0][1])

    return "\n".join(lines)


def render_json(result: RoundResult) -> str:
    output: dict = {
        "prompt": result.prompt,
        "responses": {name: response for name, response in result.responses},
    }
    if result.delta is not None:
        output["summary"] = result.delta
    return json.dumps(output, indent=2, ensure_ascii=False)


def render_markdown(result: RoundResult) -> str:
    lines = ["# ChatDelta Results\n", f"**Prompt:** {result.prompt}\n"]
    for name, response in result.responses:
        lines.append(f"## {name}\n")
        lines.append(f"{response}\n")
    if result.delta is not None:
        lines.append("## Summary\n")
        lines.append(f"{result.delta}\n")
    return "\n".join(lines)


def render(result: RoundResult, fmt: str = "text", verbose: bool = False) -> str:
    """Dispatch on the --format value."""
    if fmt == "json":
        return render_json(result)
    if fmt == "markdown":
        return render_markdown(result)
    return render_text(result, verbose=verbose)


def write_interaction_log(path: Path, result: RoundResult) -> None:
    """
    Plain-text record of the prompt, each answer and the summary.

    Raises:
        OSError: the file could not be written.
    """
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"Prompt:\n{result.prompt}\n\n")
        for name, response in result.responses:
            f.write(f"{name}:\n{response}\n\n")
        if result.delta is not None:
            f.write(f"Summary:\n{result.delta}\n\n")
    logger.debug(f"[Output] Interaction logged to {path}")
