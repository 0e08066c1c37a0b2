"""Tests for the document analysis schema."""

import pytest
from pydantic import ValidationError

from .lib import (
    DEFAULT_TITLE,
    AnalysisRequest,
    DocumentAnalysis,
    MultipleChoiceQuestion,
    OpenQuestion,
    Section,
    SectionPosition,
)


class TestQuestionUnion:
    """Tests for the tagged question union."""

    @pytest.mark.unit
    def test_multiple_choice_selected_by_type(self):
        """type=multiple_choice validates into MultipleChoiceQuestion."""
        analysis = DocumentAnalysis.model_validate(
            {
                "extractedQuestions": [
                    {
                        "id": "q1",
                        "number": "1",
                        "content": "Pick one",
                        "type": "multiple_choice",
                        "options": ["A", "B"],
                    }
                ]
            }
        )
        question = analysis.extracted_questions[0]
        assert isinstance(question, MultipleChoiceQuestion)
        assert question.options == ["A", "B"]

    @pytest.mark.unit
    def test_multiple_choice_requires_two_options(self):
        """Fewer than two options is rejected."""
        with pytest.raises(ValidationError):
            MultipleChoiceQuestion(id="q1", number="1", content="?", options=["A"])

    @pytest.mark.unit
    def test_open_question_has_no_options(self):
        """Open questions never expose an options field."""
        question = OpenQuestion(id="q1", number="1", content="Explain", type="essay")
        assert "options" not in question.model_dump(by_alias=True)

    @pytest.mark.unit
    def test_unknown_question_type_rejected(self):
        """The discriminator rejects unknown tags."""
        with pytest.raises(ValidationError):
            DocumentAnalysis.model_validate(
                {
                    "extractedQuestions": [
                        {"id": "q", "number": "1", "content": "x", "type": "poem"}
                    ]
                }
            )


class TestModels:
    """Tests for field constraints and defaults."""

    @pytest.mark.unit
    def test_confidence_bounds(self):
        """Confidence outside [0, 1] is rejected."""
        with pytest.raises(ValidationError):
            Section(id="s", title="t", type="content", content="x", confidence=1.5)

    @pytest.mark.unit
    def test_position_bounds(self):
        """Percent fields are limited to [0, 100] and page to >= 1."""
        with pytest.raises(ValidationError):
            SectionPosition(x=120)
        with pytest.raises(ValidationError):
            SectionPosition(page=0)

    @pytest.mark.unit
    def test_section_content_non_empty(self):
        """Sections require content."""
        with pytest.raises(ValidationError):
            Section(id="s", title="t", type="content", content="")

    @pytest.mark.unit
    def test_analysis_defaults(self):
        """An empty analysis is still fully populated."""
        analysis = DocumentAnalysis()
        assert analysis.success is True
        assert analysis.extracted_questions == []
        assert analysis.extracted_content.title == DEFAULT_TITLE
        assert analysis.document_structure.subject == "Unknown Subject"

    @pytest.mark.unit
    def test_analysis_is_frozen(self):
        """Analyses cannot be mutated after construction."""
        analysis = DocumentAnalysis()
        with pytest.raises(ValidationError):
            analysis.success = False

    @pytest.mark.unit
    def test_to_data_uses_camel_case(self):
        """to_data produces the wire shape."""
        data = DocumentAnalysis().to_data()
        assert "documentStructure" in data
        assert "extractedQuestions" in data
        assert data["extractedContent"]["title"] == DEFAULT_TITLE
        assert "processingInfo" not in data


class TestAnalysisRequest:
    """Tests for the request model."""

    @pytest.mark.unit
    def test_payload_strips_prefix(self):
        """payload returns the base64 data only."""
        request = AnalysisRequest(pdf_base64="data:application/pdf;base64,QUJD")
        assert request.payload == "QUJD"
        assert request.estimated_size == 3

    @pytest.mark.unit
    def test_defaults(self):
        """Document type and language default to general/en."""
        request = AnalysisRequest(pdf_base64="data:application/pdf;base64,")
        assert request.document_type == "general"
        assert request.language == "en"
