"""
LLM clients -- one capability, three providers, one shared HTTP transport.

Supports OpenAI (ChatGPT), Google (Gemini) and Anthropic (Claude).
Every failure surfaces as ProviderError; retries live in retry.py and are
applied by the orchestrator at each call site.

Usage:
    from .llm import build_clients

    async with httpx.AsyncClient(timeout=30) as http:
        clients = build_clients(config, http)
        reply = await clients[0].send_prompt("What is Rust?")
"""

from ..errors import ChatDeltaError, ProviderError
from .client import AiClient, StreamDelta, StreamSink
from .factory import (
    PROVIDERS,
    ProviderHandle,
    ProviderInfo,
    build_clients,
    build_handles,
    create_http_client,
    discover_keys,
)
from .providers import ChatGptClient, ClaudeClient, GeminiClient
from .retry import call_with_retry
