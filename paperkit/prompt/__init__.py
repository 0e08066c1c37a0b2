"""Prompt construction for document analysis."""

from .lib import (
    CONNECTION_TEST_PROMPT,
    RESPONSE_SHAPE,
    PromptBuilder,
    PromptConfig,
    build_analysis_prompt,
)

__all__ = [
    "CONNECTION_TEST_PROMPT",
    "RESPONSE_SHAPE",
    "PromptBuilder",
    "PromptConfig",
    "build_analysis_prompt",
]
