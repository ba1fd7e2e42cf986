"""
Concrete provider clients: ChatGPT (OpenAI), Gemini (Google), Claude (Anthropic).

All three share one httpx.AsyncClient handed in by the factory; each request
is independent, so no locking is needed. Request bodies and replies go
through the pydantic models in wire.py.

Error mapping (every failure becomes ProviderError):
  - httpx.HTTPStatusError   -> "HTTP <code>: <body excerpt>"
  - httpx.HTTPError         -> transport/timeout message
  - ValidationError / JSON  -> "malformed response"

API keys never appear in error text or logs (redact_secrets).
"""

import json
import logging
from typing import Any, AsyncIterator

import httpx
from pydantic import BaseModel, ValidationError

from ..errors import ProviderError
from ..security.prompt_guard import redact_secrets
from .client import StreamDelta, StreamSink
from .wire import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatMessage,
    ClaudeMessage,
    ClaudeRequest,
    ClaudeStreamEvent,
    GeminiContent,
    GeminiGenerationConfig,
    GeminiPart,
    GeminiRequest,
    GeminiResponse,
)

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

ERROR_BODY_EXCERPT = 200


# =============================================================================
# SHARED HTTP PLUMBING
# =============================================================================


class HttpProviderClient:
    """
    Base for the JSON-over-HTTPS providers.

    Subclasses implement _request() (url, headers, body) and the two reply
    parsers; the base handles transport, error mapping and SSE framing.
    """

    display_name = "Provider"

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        model: str,
        temperature: float | None = None,
        streaming: bool = True,
    ):
        self._http = http
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._streaming = streaming

    @property
    def name(self) -> str:
        return self.display_name

    @property
    def model(self) -> str:
        return self._model

    def supports_streaming(self) -> bool:
        return self._streaming

    # -- subclass hooks --------------------------------------------------------

    def _request(self, prompt: str, stream: bool) -> tuple[str, dict[str, str], BaseModel]:
        raise NotImplementedError

    def _parse_reply(self, data: Any) -> str:
        raise NotImplementedError

    def _parse_stream_event(self, data: Any) -> str:
        raise NotImplementedError

    # -- capability ------------------------------------------------------------

    async def send_prompt(self, prompt: str) -> str:
        url, headers, body = self._request(prompt, stream=False)
        try:
            response = await self._http.post(
                url, headers=headers, json=body.model_dump(exclude_none=True)
            )
            response.raise_for_status()
            return self._parse_reply(response.json())
        except Exception as e:
            raise self._provider_error(e) from e

    async def send_prompt_streaming(self, prompt: str, sink: StreamSink) -> None:
        url, headers, body = self._request(prompt, stream=True)
        try:
            async for payload in self._sse_payloads(url, headers, body):
                text = self._parse_stream_event(json.loads(payload))
                if text:
                    sink(StreamDelta(content=text))
        except ProviderError:
            raise
        except Exception as e:
            raise self._provider_error(e) from e
        sink(StreamDelta(finished=True))

    async def _sse_payloads(
        self, url: str, headers: dict[str, str], body: BaseModel
    ) -> AsyncIterator[str]:
        """Yield the data field of each server-sent event until [DONE]."""
        async with self._http.stream(
            "POST", url, headers=headers, json=body.model_dump(exclude_none=True)
        ) as response:
            if response.is_error:
                await response.aread()
                response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                payload = line[len("data:"):].strip()
                if not payload:
                    continue
                if payload == "[DONE]":
                    return
                yield payload

    def _provider_error(self, error: Exception) -> ProviderError:
        if isinstance(error, ProviderError):
            return error
        if isinstance(error, httpx.HTTPStatusError):
            excerpt = error.response.text[:ERROR_BODY_EXCERPT]
            message = f"HTTP {error.response.status_code}: {excerpt}"
        elif isinstance(error, httpx.HTTPError):
            message = f"{type(error).__name__}: {error}"
        elif isinstance(error, (ValidationError, ValueError)):
            message = f"malformed response ({type(error).__name__})"
        else:
            message = f"{type(error).__name__}: {error}"
        message = redact_secrets(message, [self._api_key])
        logger.debug(f"[LLM:{self.name}] {message}")
        return ProviderError(self.name, message)


# =============================================================================
# OPENAI
# =============================================================================


class ChatGptClient(HttpProviderClient):
    """OpenAI chat completions."""

    display_name = "ChatGPT"

    def _request(self, prompt, stream):
        body = ChatCompletionRequest(
            model=self._model,
            messages=[ChatMessage(role="user", content=prompt)],
            temperature=self._temperature,
            stream=True if stream else None,
        )
        headers = {"Authorization": f"Bearer {self._api_key}"}
        return OPENAI_URL, headers, body

    def _parse_reply(self, data):
        text = ChatCompletion.model_validate(data).first_text()
        return text if text else "No response from ChatGPT"

    def _parse_stream_event(self, data):
        return ChatCompletionChunk.model_validate(data).text()


# =============================================================================
# GOOGLE
# =============================================================================


class GeminiClient(HttpProviderClient):
    """Google Gemini generateContent / streamGenerateContent."""

    display_name = "Gemini"

    def _request(self, prompt, stream):
        body = GeminiRequest(
            contents=[GeminiContent(role="user", parts=[GeminiPart(text=prompt)])],
            generationConfig=(
                GeminiGenerationConfig(temperature=self._temperature)
                if self._temperature is not None
                else None
            ),
        )
        if stream:
            url = f"{GEMINI_URL}/{self._model}:streamGenerateContent?alt=sse&key={self._api_key}"
        else:
            url = f"{GEMINI_URL}/{self._model}:generateContent?key={self._api_key}"
        return url, {}, body

    def _parse_reply(self, data):
        text = GeminiResponse.model_validate(data).first_text()
        return text if text else "No response from Gemini"

    def _parse_stream_event(self, data):
        return GeminiResponse.model_validate(data).first_text() or ""


# =============================================================================
# ANTHROPIC
# =============================================================================


class ClaudeClient(HttpProviderClient):
    """Anthropic messages API."""

    display_name = "Claude"

    def __init__(self, *args, max_tokens: int = 1024, **kwargs):
        super().__init__(*args, **kwargs)
        self._max_tokens = max_tokens

    def _request(self, prompt, stream):
        body = ClaudeRequest(
            model=self._model,
            messages=[ChatMessage(role="user", content=prompt)],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            stream=True if stream else None,
        )
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        return ANTHROPIC_URL, headers, body

    def _parse_reply(self, data):
        text = ClaudeMessage.model_validate(data).first_text()
        return text if text else "No response from Claude"

    def _parse_stream_event(self, data):
        event = ClaudeStreamEvent.model_validate(data)
        if event.type == "error":
            raise ProviderError(self.name, f"stream error: {str(data)[:ERROR_BODY_EXCERPT]}")
        return event.text()
