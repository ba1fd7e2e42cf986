"""Security utilities -- prompt sanitation and secret redaction."""
from .prompt_guard import redact_secrets, sanitize_prompt
