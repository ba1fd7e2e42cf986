"""
Error taxonomy.

  ChatDeltaError   base class
  ProviderError    one provider call failed (network, HTTP status, bad payload);
                   local to its slot, never fatal to the session
  ConfigError      invalid or conflicting options; the CLI exits 1
"""


class ChatDeltaError(Exception):
    """Base class for all chatdelta errors."""


class ProviderError(ChatDeltaError):
    """A provider call failed: network, HTTP status, or unparseable reply."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider
        self.message = message

    def __str__(self) -> str:
        return f"{self.provider}: {self.message}"


class ConfigError(ChatDeltaError, ValueError):
    """Invalid or conflicting options."""
