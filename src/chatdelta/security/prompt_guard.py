"""
Prompt Guard - keep prompts well-formed and keep secrets out of logs.

Two functions:
  sanitize_prompt()  -- null byte removal, whitespace trim, length cap
  redact_secrets()   -- masks API keys in text bound for logs or transcripts

The user's prompt is sent to every provider as-is apart from these
mechanical fixes; nothing is rewritten.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROMPT_LENGTH = 100_000
REDACTED = "***"
TRUNCATION_MARKER = "\n[TRUNCATED]"
MIN_SECRET_LENGTH = 4


def sanitize_prompt(content: str, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """
    Sanitize a prompt before it is dispatched.

    - Strips null bytes (providers reject them)
    - Trims surrounding whitespace
    - Truncates to max_length, marker included

    Returns:
        Sanitized prompt ("" for empty input)
    """
    if not content:
        return ""

    content = content.replace("\x00", "").strip()

    if len(content) > max_length:
        keep = max(0, max_length - len(TRUNCATION_MARKER))
        content = (content[:keep] + TRUNCATION_MARKER)[:max_length]
        logger.info(f"[PromptGuard] Prompt truncated to {max_length} chars")

    return content


def redact_secrets(text: str, secrets: list[str]) -> str:
    """Replace every occurrence of each secret in text with ***."""
    if not text:
        return ""
    for secret in secrets:
        if secret and len(secret) >= MIN_SECRET_LENGTH:
            text = text.replace(secret, REDACTED)
    return text
