"""Normalization of extracted data into a canonical DocumentAnalysis."""

from .classify import IMPERATIVE_VERBS, classify_content
from .lib import (
    DEGRADED_CONFIDENCE,
    ResponseSanitizer,
    SanitizeContext,
    clamp,
    degraded_analysis,
    fallback_analysis,
    sanitize,
)

__all__ = [
    # Sanitizer
    "ResponseSanitizer",
    "SanitizeContext",
    "sanitize",
    "clamp",
    # Fallbacks
    "DEGRADED_CONFIDENCE",
    "degraded_analysis",
    "fallback_analysis",
    # Heuristics
    "IMPERATIVE_VERBS",
    "classify_content",
]
