"""
Delta synthesis helpers -- which provider summarizes, and what it is asked.

The delta prompt lists each successful answer under its provider's name and
asks for the key differences and commonalities. Failed providers are left
out. Gemini summarizes when it is enabled, otherwise the first enabled
provider does.
"""

from .slots import ProviderSlot

PREFERRED_SUMMARIZER = "Gemini"
MIN_ANSWERS_FOR_DELTA = 2

DELTA_HEADER = "Given these AI model responses:\n"
DELTA_FOOTER = "Summarize the key differences and commonalities."


def build_delta_prompt(answers: list[tuple[str, str]]) -> str:
    """Concatenate (provider, answer) pairs into the summary request."""
    parts = [DELTA_HEADER]
    for name, answer in answers:
        parts.append(f"{name}:\n{answer}\n---\n")
    parts.append(DELTA_FOOTER)
    return "".join(parts)


def pick_summarizer(slots: list[ProviderSlot]) -> ProviderSlot | None:
    """The enabled Gemini slot if there is one, else the first enabled slot."""
    enabled = [s for s in slots if s.enabled]
    for slot in enabled:
        if slot.name == PREFERRED_SUMMARIZER:
            return slot
    return enabled[0] if enabled else None
