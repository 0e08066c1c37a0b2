"""Content heuristics for sections that arrive without a usable type."""

import re

from paperkit.schema import SectionType

IMPERATIVE_VERBS = (
    "read",
    "write",
    "complete",
    "solve",
    "answer",
    "choose",
    "select",
    "fill",
    "match",
    "circle",
    "underline",
    "describe",
    "explain",
    "list",
    "calculate",
)

_QUESTION_LABEL = re.compile(r"^(question|câu)\s*\d*\s*[:.]", re.IGNORECASE)
_INSTRUCTION_LABEL = re.compile(r"^(instructions?|directions?)\s*:", re.IGNORECASE)
_IMPERATIVE = re.compile(
    rf"^(please\s+)?({'|'.join(IMPERATIVE_VERBS)})\b", re.IGNORECASE
)
_STEP = re.compile(r"^step\s+\d+", re.IGNORECASE)


def classify_content(text: str) -> SectionType:
    """Guess a section type from its text.

    A question mark or an explicit "Question 3:" label means QUESTION; a
    leading imperative verb, "Instructions:" label or "Step N" means
    INSTRUCTION; anything else is CONTENT.

    Example:
        >>> classify_content("What is 2 + 2?")
        <SectionType.QUESTION: 'question'>
        >>> classify_content("Read the passage below.")
        <SectionType.INSTRUCTION: 'instruction'>
    """
    stripped = text.strip()
    if "?" in stripped or _QUESTION_LABEL.match(stripped):
        return SectionType.QUESTION
    if (
        _IMPERATIVE.match(stripped)
        or _INSTRUCTION_LABEL.match(stripped)
        or _STEP.match(stripped)
    ):
        return SectionType.INSTRUCTION
    return SectionType.CONTENT


__all__ = ["IMPERATIVE_VERBS", "classify_content"]
