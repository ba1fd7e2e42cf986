"""
Run configuration -- every CLI option in one validated dataclass.

Usage:
    config = ChatDeltaConfig.from_options(only=["gpt", "claude"], retries=2)
    config.validate()            # raises ConfigError
    config.should_use("gemini")  # False
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

PROVIDER_IDS = ("gpt", "gemini", "claude")
OUTPUT_FORMATS = ("text", "json", "markdown")

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_GPT_MODEL = "gpt-4o"
DEFAULT_GEMINI_MODEL = "gemini-1.5-pro-latest"
DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_MAX_TOKENS = 1024
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

LOG_DIR_ENV = "CHATDELTA_LOG_DIR"


def default_log_root() -> Path:
    """~/.chatdelta/logs unless CHATDELTA_LOG_DIR says otherwise."""
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".chatdelta" / "logs"


@dataclass
class ChatDeltaConfig:
    """Configuration for one chatdelta run."""

    log: Path | None = None  # plain-text interaction log (ask only)
    verbose: bool = False
    quiet: bool = False
    format: str = "text"
    no_summary: bool = False
    only: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = 0
    gpt_model: str = DEFAULT_GPT_MODEL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    claude_model: str = DEFAULT_CLAUDE_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float | None = None
    stream: bool = False
    log_root: Path = field(default_factory=default_log_root)

    @classmethod
    def from_options(cls, **options) -> "ChatDeltaConfig":
        """Build from keyword options, ignoring None and unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            if key not in known or value is None:
                continue
            if key in ("only", "exclude"):
                value = _split_ids(value)
            values[key] = value
        return cls(**values)

    def validate(self) -> None:
        """Reject conflicting or out-of-range options."""
        if self.verbose and self.quiet:
            raise ConfigError("Cannot use both --verbose and --quiet flags")

        if self.format not in OUTPUT_FORMATS:
            raise ConfigError("Output format must be one of: text, json, markdown")

        if self.only and self.exclude:
            raise ConfigError("Cannot use both --only and --exclude flags")

        for ai in [*self.only, *self.exclude]:
            if ai not in PROVIDER_IDS:
                raise ConfigError(
                    f"Unknown AI '{ai}'. Valid options: {', '.join(PROVIDER_IDS)}"
                )

        if self.temperature is not None and not (
            MIN_TEMPERATURE <= self.temperature <= MAX_TEMPERATURE
        ):
            raise ConfigError("Temperature must be between 0.0 and 2.0")

        if self.timeout <= 0:
            raise ConfigError("Timeout must be greater than 0")

        if self.retries < 0:
            raise ConfigError("Retries must be 0 or more")

        if self.max_tokens <= 0:
            raise ConfigError("Max tokens must be greater than 0")

    def should_use(self, ai: str) -> bool:
        """Whether the provider id survives --only / --exclude."""
        if self.only:
            return ai in self.only
        if self.exclude:
            return ai not in self.exclude
        return True


def _split_ids(value) -> list[str]:
    """Accept "gpt,claude" or ["gpt", "claude"] or ["gpt,claude"]."""
    if isinstance(value, str):
        value = [value]
    ids = []
    for item in value:
        ids.extend(part.strip().lower() for part in str(item).split(",") if part.strip())
    return ids
