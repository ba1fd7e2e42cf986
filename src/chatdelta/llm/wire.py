"""
Pydantic wire models -- request bodies and reply shapes for each provider.

Only the fields chatdelta reads are modelled; everything else the providers
send is ignored. A reply that does not match its model raises
pydantic.ValidationError, which the provider clients turn into
ProviderError.

  ChatGPT  POST /v1/chat/completions         -> ChatCompletion / ChatCompletionChunk
  Gemini   POST /v1beta/models/{m}:generate*  -> GeminiResponse
  Claude   POST /v1/messages                  -> ClaudeMessage / ClaudeStreamEvent
"""

from pydantic import BaseModel, ConfigDict, Field


class _Reply(BaseModel):
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# OPENAI (CHATGPT)
# =============================================================================


class ChatMessage(BaseModel):
    role: str = "user"
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    stream: bool | None = None


class _ChoiceMessage(_Reply):
    content: str | None = None


class _Choice(_Reply):
    message: _ChoiceMessage


class ChatCompletion(_Reply):
    choices: list[_Choice] = Field(default_factory=list)

    def first_text(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].message.content


class _ChunkDelta(_Reply):
    content: str | None = None


class _ChunkChoice(_Reply):
    delta: _ChunkDelta = Field(default_factory=_ChunkDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(_Reply):
    choices: list[_ChunkChoice] = Field(default_factory=list)

    def text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


# =============================================================================
# GOOGLE (GEMINI)
# =============================================================================


class GeminiPart(BaseModel):
    text: str


class GeminiContent(BaseModel):
    role: str = "user"
    parts: list[GeminiPart]


class GeminiGenerationConfig(BaseModel):
    temperature: float | None = None


class GeminiRequest(BaseModel):
    contents: list[GeminiContent]
    generationConfig: GeminiGenerationConfig | None = None


class _CandidatePart(_Reply):
    text: str = ""


class _CandidateContent(_Reply):
    parts: list[_CandidatePart] = Field(default_factory=list)


class _Candidate(_Reply):
    content: _CandidateContent = Field(default_factory=_CandidateContent)


class GeminiResponse(_Reply):
    """Shared by generateContent and each streamGenerateContent event."""

    candidates: list[_Candidate] = Field(default_factory=list)

    def first_text(self) -> str | None:
        if not self.candidates or not self.candidates[0].content.parts:
            return None
        return self.candidates[0].content.parts[0].text


# =============================================================================
# ANTHROPIC (CLAUDE)
# =============================================================================


class ClaudeRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float | None = None
    stream: bool | None = None


class _ContentBlock(_Reply):
    type: str = "text"
    text: str = ""


class ClaudeMessage(_Reply):
    content: list[_ContentBlock] = Field(default_factory=list)

    def first_text(self) -> str | None:
        if not self.content:
            return None
        return self.content[0].text


class _StreamDelta(_Reply):
    type: str = ""
    text: str = ""


class ClaudeStreamEvent(_Reply):
    type: str
    delta: _StreamDelta | None = None

    def text(self) -> str:
        if self.type == "content_block_delta" and self.delta is not None:
            return self.delta.text
        return ""
