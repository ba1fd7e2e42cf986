"""
Client factory -- key discovery and construction of the provider clients.

Detection:
  gpt     -> OPENAI_API_KEY     -> ChatGPT
  gemini  -> GEMINI_API_KEY     -> Gemini
  claude  -> ANTHROPIC_API_KEY  -> Claude

A provider filtered out by --only/--exclude gets no slot at all. A selected
provider without a key gets a disabled slot (client=None) for the whole
session and is never dispatched.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping

import httpx

from ..config import ChatDeltaConfig
from .client import AiClient
from .providers import ChatGptClient, ClaudeClient, GeminiClient, HttpProviderClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderInfo:
    """Static description of one supported provider."""

    id: str
    display_name: str
    env_var: str
    client_cls: type[HttpProviderClient]


PROVIDERS = (
    ProviderInfo("gpt", "ChatGPT", "OPENAI_API_KEY", ChatGptClient),
    ProviderInfo("gemini", "Gemini", "GEMINI_API_KEY", GeminiClient),
    ProviderInfo("claude", "Claude", "ANTHROPIC_API_KEY", ClaudeClient),
)


@dataclass
class ProviderHandle:
    """A slot-to-be: display name plus client, or None when disabled."""

    name: str
    client: AiClient | None = None

    @property
    def enabled(self) -> bool:
        return self.client is not None


def discover_keys(env: Mapping[str, str] | None = None) -> dict[str, str | None]:
    """Map provider id -> API key (None when the variable is unset or empty)."""
    env = os.environ if env is None else env
    return {info.id: (env.get(info.env_var) or None) for info in PROVIDERS}


def create_http_client(timeout: float) -> httpx.AsyncClient:
    """The single transport shared by every provider client."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout))


def _model_for(info: ProviderInfo, config: ChatDeltaConfig) -> str:
    return {
        "gpt": config.gpt_model,
        "gemini": config.gemini_model,
        "claude": config.claude_model,
    }[info.id]


def build_client(
    info: ProviderInfo, api_key: str, config: ChatDeltaConfig, http: httpx.AsyncClient
) -> HttpProviderClient:
    """Construct one provider client on the shared transport."""
    kwargs = {}
    if info.client_cls is ClaudeClient:
        kwargs["max_tokens"] = config.max_tokens
    return info.client_cls(
        http,
        api_key,
        _model_for(info, config),
        temperature=config.temperature,
        **kwargs,
    )


def build_handles(
    config: ChatDeltaConfig,
    http: httpx.AsyncClient,
    env: Mapping[str, str] | None = None,
) -> list[ProviderHandle]:
    """One handle per selected provider, disabled where the key is missing."""
    keys = discover_keys(env)
    handles = []
    for info in PROVIDERS:
        if not config.should_use(info.id):
            continue
        key = keys[info.id]
        if key is None:
            logger.warning(f"[Factory] {info.env_var} not set, skipping {info.display_name}")
            handles.append(ProviderHandle(name=info.display_name))
            continue
        handles.append(
            ProviderHandle(name=info.display_name, client=build_client(info, key, config, http))
        )
    return handles


def build_clients(
    config: ChatDeltaConfig,
    http: httpx.AsyncClient,
    env: Mapping[str, str] | None = None,
) -> list[AiClient]:
    """Only the enabled clients, in provider order."""
    return [h.client for h in build_handles(config, http, env) if h.client is not None]
