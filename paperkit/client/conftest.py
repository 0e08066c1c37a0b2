"""Client module test fixtures."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import pytest

from paperkit.client.transport import Completion, InferenceTransport
from paperkit.config import ClientConfig

# =============================================================================
# Scripted Transport
# =============================================================================


class ScriptedTransport(InferenceTransport):
    """Transport that replays a fixed script of outcomes.

    Each script entry is either completion text (str), an exception to
    raise, or a float meaning "sleep this many seconds, then answer with
    the default completion". The last entry repeats once the script runs out.
    """

    DEFAULT_COMPLETION = "```json\n" + json.dumps(
        {
            "documentStructure": {
                "type": "quiz",
                "subject": "Mathematics",
                "confidence": 0.9,
                "sections": [
                    {"id": "s1", "title": "Part A", "type": "content",
                     "content": "Answer all questions."}
                ],
            },
            "extractedQuestions": [
                {"id": "q1", "number": "1", "content": "What is 2 + 2?",
                 "type": "multiple_choice", "options": ["3", "4"],
                 "correctAnswer": "4"}
            ],
            "extractedContent": {"title": "Math Quiz"},
        }
    ) + "\n```"

    def __init__(self, script: list[Any] | None = None, model: str = "mock-gemini"):
        self.script = list(script or [self.DEFAULT_COMPLETION])
        self.calls: list[dict[str, Any]] = []
        self.closed = False
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def generate(self, prompt, data, mime_type="application/pdf"):
        self.calls.append(
            {"prompt": prompt, "data": data, "mime_type": mime_type,
             "at": time.monotonic()}
        )
        index = min(len(self.calls) - 1, len(self.script) - 1)
        outcome = self.script[index]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
            outcome = self.DEFAULT_COMPLETION
        return Completion(text=outcome, candidates=[outcome], total_tokens=42,
                          model=self._model)

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fast_config() -> ClientConfig:
    """Client config with near-zero delays for unit tests."""
    return ClientConfig(
        api_key="AIza-test",
        max_retries=3,
        retry_delay_ms=1,
        timeout_ms=1000,
        rate_limit_delay_ms=0,
        enable_fallback=True,
        max_upload_bytes=1024,
    )


@pytest.fixture
def scripted_transport() -> ScriptedTransport:
    return ScriptedTransport()
