"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Auto-skip for tests that need a real inference service
- Sample analysis data shared by module tests
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

import pytest
from dotenv import load_dotenv

from paperkit.config import EnvVar, get_environment

if TYPE_CHECKING:
    from paperkit.schema import AnalysisRequest, DocumentAnalysis

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Skip integration tests when no inference API key is configured."""
    if get_environment(EnvVar.GEMINI_API_KEY):
        return

    skip_integration = pytest.mark.skip(reason="GEMINI_API_KEY not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# =============================================================================
# Common Test Fixtures
# =============================================================================


@pytest.fixture
def pdf_data_url() -> str:
    """A tiny (not renderable) PDF payload as a data URL."""
    payload = base64.b64encode(b"%PDF-1.4\n%test\n").decode()
    return f"data:application/pdf;base64,{payload}"


@pytest.fixture
def analysis_request(pdf_data_url: str) -> AnalysisRequest:
    from paperkit.schema import AnalysisRequest

    return AnalysisRequest(pdf_base64=pdf_data_url, document_type="quiz")


@pytest.fixture
def raw_analysis_data() -> dict[str, Any]:
    """Loosely shaped analysis JSON as returned by the inference service."""
    return {
        "documentStructure": {
            "type": "quiz",
            "subject": "Science",
            "confidence": 0.92,
            "sections": [
                {
                    "id": "intro",
                    "title": "Instructions",
                    "type": "instruction",
                    "content": "Read each question carefully before answering.",
                    "position": {"page": 1, "x": 5, "y": 5, "width": 90, "height": 8},
                    "confidence": 0.95,
                },
                {
                    "title": "Background",
                    "content": "Plants convert sunlight into chemical energy.",
                    "confidence": 0.8,
                },
            ],
            "metadata": {"totalPages": 1, "language": "en"},
        },
        "extractedQuestions": [
            {
                "id": "q1",
                "number": "1",
                "content": "Which gas do plants absorb?",
                "type": "multiple_choice",
                "options": ["Oxygen", "Carbon dioxide", "Nitrogen"],
                "correctAnswer": "Carbon dioxide",
                "points": 2,
                "difficulty": "easy",
                "confidence": 0.9,
            },
            {
                "id": "q2",
                "number": "2",
                "content": "Explain photosynthesis in your own words.",
                "type": "essay",
                "confidence": 0.85,
            },
        ],
        "extractedContent": {
            "title": "Photosynthesis Quiz",
            "subtitle": "Unit 3",
            "author": "Ms. Tran",
            "course": "Biology 101",
        },
    }


@pytest.fixture
def sample_analysis(raw_analysis_data: dict[str, Any]) -> DocumentAnalysis:
    """Canonical analysis built from raw_analysis_data."""
    from paperkit.sanitize import sanitize

    return sanitize(raw_analysis_data)
