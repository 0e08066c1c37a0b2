"""JSON extraction from free-form completion text.

Inference completions wrap their JSON in inconsistent ways: a ```json fence,
an untagged fence, prose around a bare object, or an object on its own lines.
The extractor tries each shape in a fixed order and returns the first match.
Everything here is pure and deterministic.
"""

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from paperkit.core.errors import NoJSONFound

logger = logging.getLogger(__name__)


class ExtractionStrategy(str, Enum):
    """How a JSON candidate was located, in priority order."""

    TAGGED_FENCE = "tagged_fence"  # ```json ... ```
    BRACE_FENCE = "brace_fence"  # ``` { ... } ```
    OUTER_BRACES = "outer_braces"  # first "{" to last "}"
    LINE_BLOCK = "line_block"  # { ... } bounded by line breaks


_TAGGED_FENCE = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\n([\s\S]*?)```")
_OUTER_BRACES = re.compile(r"\{[\s\S]*\}")
_LINE_BLOCK = re.compile(r"(?:^|\n)\s*(\{[\s\S]*?\})\s*(?:\n|$)")


@dataclass(frozen=True)
class Extraction:
    """A located JSON candidate.

    Attributes:
        text: Candidate JSON text, trimmed.
        strategy: Strategy that found it.
    """

    text: str
    strategy: ExtractionStrategy


# =============================================================================
# Extraction
# =============================================================================


def iter_candidates(raw_text: str) -> Iterator[Extraction]:
    """Yield every JSON candidate in strategy order, without duplicates."""
    seen: set[str] = set()

    def _new(text: str, strategy: ExtractionStrategy) -> Extraction | None:
        text = text.strip()
        if not text or text in seen:
            return None
        seen.add(text)
        return Extraction(text=text, strategy=strategy)

    for match in _TAGGED_FENCE.finditer(raw_text):
        if found := _new(match.group(1), ExtractionStrategy.TAGGED_FENCE):
            yield found

    for match in _ANY_FENCE.finditer(raw_text):
        interior = match.group(1).strip()
        if interior.startswith("{") and interior.endswith("}"):
            if found := _new(interior, ExtractionStrategy.BRACE_FENCE):
                yield found

    if match := _OUTER_BRACES.search(raw_text):
        if found := _new(match.group(0), ExtractionStrategy.OUTER_BRACES):
            yield found

    for match in _LINE_BLOCK.finditer(raw_text):
        if found := _new(match.group(1), ExtractionStrategy.LINE_BLOCK):
            yield found


def extract(raw_text: str) -> Extraction:
    """Locate the JSON object in a completion.

    Args:
        raw_text: Completion text.

    Returns:
        The first candidate found by the ordered strategies.

    Raises:
        NoJSONFound: If no strategy matches.

    Example:
        >>> extract('Result:\\n```json\\n{"a": 1}\\n```').text
        '{"a": 1}'
    """
    for candidate in iter_candidates(raw_text or ""):
        logger.debug(f"JSON candidate found via {candidate.strategy.value}")
        return candidate
    raise NoJSONFound(
        "No JSON object found in completion",
        details={"preview": (raw_text or "")[:200]},
    )


def extract_json(raw_text: str) -> str:
    """Return only the JSON text of ``extract(raw_text)``."""
    return extract(raw_text).text


# =============================================================================
# Parsing with repair
# =============================================================================

# (pattern, replacement) applied in order when a candidate fails to parse
JSON_REPAIR_PATTERNS: list[tuple[str, str]] = [
    # Trailing commas before closing braces/brackets
    (r",\s*}", "}"),
    (r",\s*]", "]"),
    # Unquoted keys (simple cases only)
    (r"(\{|,)\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*:", r'\1"\2":'),
    # Python-style literals
    (r":\s*True\b", ": true"),
    (r":\s*False\b", ": false"),
    (r":\s*None\b", ": null"),
]


def _apply_patterns(text: str) -> str:
    for pattern, replacement in JSON_REPAIR_PATTERNS:
        text = re.sub(pattern, replacement, text)
    return text


def repair_json(text: str) -> dict[str, Any] | None:
    """Attempt to repair a malformed JSON object.

    Repairs are cumulative: the regex patterns first, then single-quoted
    strings, then closing brackets left open by a truncated completion.
    After each step the text is parsed whole and as its first balanced object.

    Args:
        text: Candidate text that failed json.loads.

    Returns:
        Parsed dict if repair succeeded, None otherwise.

    Example:
        >>> repair_json("{'title': 'Quiz', 'tags': ['a',]")
        {'title': 'Quiz', 'tags': ['a']}
    """
    cleaned = _apply_patterns(text.strip())
    for step in (_double_quote_strings, _close_brackets):
        parsed = _loads_object(cleaned)
        if parsed is None:
            balanced = _first_balanced_object(cleaned)
            if balanced is not None:
                parsed = _loads_object(balanced)
        if parsed is not None:
            return parsed
        cleaned = _apply_patterns(step(cleaned))
    return _loads_object(cleaned)


def parse_json(raw_text: str) -> tuple[dict[str, Any], Extraction]:
    """Extract and decode the JSON object of a completion.

    Candidates are tried in strategy order; the first that decodes to an
    object (directly or after repair) wins.

    Returns:
        The decoded object and the candidate it came from.

    Raises:
        NoJSONFound: If no candidate decodes to a JSON object.
    """
    for candidate in iter_candidates(raw_text or ""):
        parsed = _loads_object(candidate.text)
        if parsed is None:
            parsed = repair_json(candidate.text)
            if parsed is not None:
                logger.debug(f"Repaired JSON from {candidate.strategy.value}")
        if parsed is not None:
            return parsed, candidate

    # Truncated completions never close their outer brace
    start = (raw_text or "").find("{")
    if start >= 0:
        tail = raw_text[start:].strip()
        parsed = repair_json(tail)
        if parsed is not None:
            logger.debug("Repaired JSON from unterminated object")
            strategy = ExtractionStrategy.OUTER_BRACES
            return parsed, Extraction(text=tail, strategy=strategy)
    raise NoJSONFound(
        "No parseable JSON object found in completion",
        details={"preview": (raw_text or "")[:200]},
    )


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def _double_quote_strings(text: str) -> str:
    """Rewrite single-quoted strings as double-quoted JSON strings."""
    out: list[str] = []
    quote: str | None = None
    escaped = False
    for char in text:
        if quote is None:
            if char in "\"'":
                quote = char
                out.append('"')
            else:
                out.append(char)
        elif escaped:
            out.append(char if char == "'" else "\\" + char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == quote:
            out.append('"')
            quote = None
        elif char == '"':
            out.append('\\"')
        else:
            out.append(char)
    return "".join(out)


def _close_brackets(text: str) -> str:
    """Close an unterminated string and any brackets still open at the end."""
    closers: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            closers.append("}")
        elif char == "[":
            closers.append("]")
        elif closers and char == closers[-1]:
            closers.pop()
    if in_string:
        text += '"'
    text = re.sub(r"[,\s]+$", "", text)
    return text + "".join(reversed(closers))


def _first_balanced_object(text: str) -> str | None:
    """Return the first brace-balanced object, ignoring braces in strings."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i, char in enumerate(text[start:], start):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


# =============================================================================
# Text salvage
# =============================================================================


def clean_text(text: str) -> str:
    """Strip code fences and escaped sequences from completion text."""
    text = re.sub(r"```[a-zA-Z]*", "", text)
    text = text.replace("\\n", "\n").replace('\\"', '"')
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


def salvage_text(raw_text: str, max_lines: int = 10) -> list[str]:
    """Keep the human-readable lines of a completion that held no JSON.

    A line is kept when it is longer than 10 characters and contains neither
    braces nor the word "json".

    Args:
        raw_text: Completion text.
        max_lines: Maximum number of lines returned.

    Returns:
        Meaningful lines in original order.
    """
    lines = []
    for line in clean_text(raw_text or "").splitlines():
        line = line.strip()
        if len(line) <= 10 or "{" in line or "}" in line or "json" in line.lower():
            continue
        lines.append(line)
        if len(lines) >= max_lines:
            break
    return lines


__all__ = [
    "Extraction",
    "ExtractionStrategy",
    "JSON_REPAIR_PATTERNS",
    "clean_text",
    "extract",
    "extract_json",
    "iter_candidates",
    "parse_json",
    "repair_json",
    "salvage_text",
]
