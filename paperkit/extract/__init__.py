"""Extraction of JSON objects from inference completions."""

from .lib import (
    JSON_REPAIR_PATTERNS,
    Extraction,
    ExtractionStrategy,
    clean_text,
    extract,
    extract_json,
    iter_candidates,
    parse_json,
    repair_json,
    salvage_text,
)

__all__ = [
    # Types
    "Extraction",
    "ExtractionStrategy",
    # Extraction
    "extract",
    "extract_json",
    "iter_candidates",
    # Parsing
    "JSON_REPAIR_PATTERNS",
    "parse_json",
    "repair_json",
    # Salvage
    "clean_text",
    "salvage_text",
]
