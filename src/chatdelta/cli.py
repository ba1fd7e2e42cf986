"""
chatdelta CLI - ask several AI providers at once and compare the answers.

Commands:
    chatdelta ask "prompt"     One-shot: query every provider, print answers/summary
    chatdelta tui              Interactive side-by-side columns plus the delta panel
    chatdelta models           List known models per provider
    chatdelta test             Probe each selected provider with a tiny prompt
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ChatDeltaConfig
from .errors import ConfigError, ProviderError
from .harness import SessionLogger
from .llm import build_handles, create_http_client
from .llm.factory import PROVIDERS
from .logging_config import DEFAULT_LOG_FILE, setup_logging
from .metrics import MetricsTracker
from .orchestration import Orchestrator, RoundResult, SlotManager
from .output import render, write_interaction_log

app = typer.Typer(help="Query ChatGPT, Gemini and Claude side by side", no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

PROBE_PROMPT = "Hello, please respond with just 'OK' to confirm you're working."
PROBE_EXCERPT_LENGTH = 60

KNOWN_MODELS = {
    "OpenAI": ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"],
    "Google Gemini": ["gemini-1.5-pro-latest", "gemini-1.5-flash-latest", "gemini-pro"],
    "Anthropic Claude": [
        "claude-3-5-sonnet-20241022",
        "claude-3-haiku-20240307",
        "claude-3-opus-20240229",
    ],
}

NO_PROVIDERS_MESSAGE = (
    "No AI providers available. Set OPENAI_API_KEY, GEMINI_API_KEY or ANTHROPIC_API_KEY."
)


# =============================================================================
# SHARED OPTIONS
# =============================================================================

OnlyOption = typer.Option(None, "--only", help="Only query these AIs (comma-separated: gpt,gemini,claude)")
ExcludeOption = typer.Option(None, "--exclude", help="Skip these AIs (comma-separated)")
TimeoutOption = typer.Option(30.0, "--timeout", help="Per-request timeout in seconds")
RetriesOption = typer.Option(0, "--retries", help="Retries per request (linear backoff)")
GptModelOption = typer.Option(None, "--gpt-model", help="OpenAI model name")
GeminiModelOption = typer.Option(None, "--gemini-model", help="Gemini model name")
ClaudeModelOption = typer.Option(None, "--claude-model", help="Claude model name")
MaxTokensOption = typer.Option(1024, "--max-tokens", help="Max tokens for Claude replies")
TemperatureOption = typer.Option(None, "--temperature", help="Sampling temperature (0.0-2.0)")
StreamOption = typer.Option(False, "--stream", help="Stream responses as they arrive")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Show every response and debug logs")
QuietOption = typer.Option(False, "--quiet", "-q", help="Only print the result")


def _load_config(**options) -> ChatDeltaConfig:
    """Build and validate the run config; print the problem and exit 1 if invalid."""
    try:
        config = ChatDeltaConfig.from_options(**options)
        config.validate()
    except ConfigError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    return config


def _console_level(config: ChatDeltaConfig) -> int:
    if config.verbose:
        return logging.DEBUG
    if config.quiet:
        return logging.ERROR
    return logging.WARNING


def _version_callback(value: bool):
    if value:
        console.print(f"chatdelta {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
):
    """Query ChatGPT, Gemini and Claude side by side and summarize the differences."""


# =============================================================================
# ASK
# =============================================================================


async def _ask_once(config: ChatDeltaConfig, prompt: str) -> RoundResult | None:
    """Run one round on a fresh transport. None when nothing could be dispatched."""
    http = create_http_client(config.timeout)
    try:
        slots = SlotManager.from_handles(build_handles(config, http))
        orchestrator = Orchestrator(
            slots,
            session_log=SessionLogger(config.log_root),
            retries=config.retries,
            streaming=config.stream,
            summarize=not config.no_summary,
        )
        if not orchestrator.dispatch(prompt):
            return None
        await orchestrator.wait_round()
        return orchestrator.round_result()
    finally:
        await http.aclose()


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="The prompt to send to every AI"),
    log: Path = typer.Option(None, "--log", help="Write a plain-text interaction log here"),
    verbose: bool = VerboseOption,
    quiet: bool = QuietOption,
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json, markdown"),
    no_summary: bool = typer.Option(False, "--no-summary", help="Skip the delta summary"),
    only: str = OnlyOption,
    exclude: str = ExcludeOption,
    timeout: float = TimeoutOption,
    retries: int = RetriesOption,
    gpt_model: str = GptModelOption,
    gemini_model: str = GeminiModelOption,
    claude_model: str = ClaudeModelOption,
    max_tokens: int = MaxTokensOption,
    temperature: float = TemperatureOption,
    stream: bool = StreamOption,
):
    """Send one prompt to every available AI and print the result."""
    config = _load_config(
        log=log,
        verbose=verbose,
        quiet=quiet,
        format=format,
        no_summary=no_summary,
        only=only,
        exclude=exclude,
        timeout=timeout,
        retries=retries,
        gpt_model=gpt_model,
        gemini_model=gemini_model,
        claude_model=claude_model,
        max_tokens=max_tokens,
        temperature=temperature,
        stream=stream,
    )
    setup_logging(_console_level(config))

    if not prompt.strip():
        err_console.print("[bold red]Error:[/bold red] Prompt is empty")
        raise typer.Exit(1)

    result = asyncio.run(_ask_once(config, prompt))
    if result is None:
        err_console.print(f"[bold red]Error:[/bold red] {NO_PROVIDERS_MESSAGE}")
        raise typer.Exit(1)

    if not config.quiet:
        for name, error in result.errors:
            err_console.print(f"[yellow]{escape(name)} failed:[/yellow] {escape(error)}")
        if result.delta_error is not None:
            err_console.print(f"[yellow]Summary failed:[/yellow] {escape(result.delta_error)}")

    if not result.responses:
        err_console.print("[bold red]Error:[/bold red] No AI returned a response")
        raise typer.Exit(1)

    typer.echo(render(result, config.format, verbose=config.verbose))

    if config.log is not None:
        try:
            write_interaction_log(config.log, result)
        except OSError as e:
            err_console.print(f"[yellow]Warning:[/yellow] could not write log {config.log}: {e}")


# =============================================================================
# TUI
# =============================================================================


@app.command()
def tui(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to the log file"),
    only: str = OnlyOption,
    exclude: str = ExcludeOption,
    timeout: float = TimeoutOption,
    retries: int = RetriesOption,
    gpt_model: str = GptModelOption,
    gemini_model: str = GeminiModelOption,
    claude_model: str = ClaudeModelOption,
    max_tokens: int = MaxTokensOption,
    temperature: float = TemperatureOption,
    stream: bool = StreamOption,
):
    """Interactive columns, one per AI, plus the delta panel."""
    from .tui import ChatDeltaApp

    config = _load_config(
        verbose=verbose,
        only=only,
        exclude=exclude,
        timeout=timeout,
        retries=retries,
        gpt_model=gpt_model,
        gemini_model=gemini_model,
        claude_model=claude_model,
        max_tokens=max_tokens,
        temperature=temperature,
        stream=stream,
    )
    setup_logging(
        logging.DEBUG if config.verbose else logging.INFO,
        log_file=DEFAULT_LOG_FILE,
        console=False,
    )

    http = create_http_client(config.timeout)
    slots = SlotManager.from_handles(build_handles(config, http))
    if not slots.enabled_indices():
        logger.warning(f"[CLI] {NO_PROVIDERS_MESSAGE}")

    orchestrator = Orchestrator(
        slots,
        session_log=SessionLogger(config.log_root),
        metrics=MetricsTracker(),
        retries=config.retries,
        streaming=config.stream,
    )
    tui_app = ChatDeltaApp(orchestrator, http=http)
    tui_app.run()

    if tui_app.saved_log is not None:
        console.print(f"Session log saved to [bold]{escape(str(tui_app.saved_log))}[/bold]")
    elif orchestrator.last_save_error is not None:
        err_console.print(
            f"[yellow]Warning:[/yellow] session log not saved: "
            f"{escape(orchestrator.last_save_error)}"
        )


# =============================================================================
# MODELS
# =============================================================================


@app.command()
def models():
    """List the models each provider is known to accept."""
    table = Table(title="Available Models")
    table.add_column("Provider", style="bold")
    table.add_column("Model")

    for provider, names in KNOWN_MODELS.items():
        for i, name in enumerate(names):
            table.add_row(provider if i == 0 else "", name)

    console.print(table)


# =============================================================================
# TEST
# =============================================================================


async def _probe_all(config: ChatDeltaConfig) -> list[tuple[str, bool, str]]:
    """Send the probe prompt once to every selected provider, concurrently."""
    http = create_http_client(config.timeout)
    try:
        handles = build_handles(config, http)

        async def probe(handle) -> tuple[str, bool, str]:
            if handle.client is None:
                return handle.name, False, "API key not set"
            try:
                reply = await handle.client.send_prompt(PROBE_PROMPT)
            except ProviderError as e:
                return handle.name, False, e.message
            return handle.name, True, reply.strip()[:PROBE_EXCERPT_LENGTH]

        return list(await asyncio.gather(*(probe(h) for h in handles)))
    finally:
        await http.aclose()


@app.command()
def test(
    only: str = OnlyOption,
    exclude: str = ExcludeOption,
    timeout: float = TimeoutOption,
    gpt_model: str = GptModelOption,
    gemini_model: str = GeminiModelOption,
    claude_model: str = ClaudeModelOption,
):
    """Check that each selected AI answers (no retries)."""
    config = _load_config(
        only=only,
        exclude=exclude,
        timeout=timeout,
        gpt_model=gpt_model,
        gemini_model=gemini_model,
        claude_model=claude_model,
    )
    setup_logging(_console_level(config))

    results = asyncio.run(_probe_all(config))
    if not results:
        err_console.print("[bold red]Error:[/bold red] No providers selected")
        raise typer.Exit(1)

    env_vars = {info.display_name: info.env_var for info in PROVIDERS}
    table = Table(title="Connection Test")
    table.add_column("AI", style="bold")
    table.add_column("Status")
    table.add_column("Details")

    failures = 0
    for name, ok, detail in results:
        if ok:
            table.add_row(name, "[green]OK[/green]", escape(detail))
            continue
        failures += 1
        if detail == "API key not set":
            detail = f"{env_vars.get(name, 'API key')} not set"
        table.add_row(name, "[red]FAIL[/red]", escape(detail))

    console.print(table)

    if failures:
        console.print(f"\n[bold red]{failures} provider(s) failed.[/bold red]")
        raise typer.Exit(1)
    console.print("\n[bold green]All providers responded![/bold green]")


if __name__ == "__main__":
    app()
