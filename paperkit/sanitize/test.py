"""Tests for the response sanitizer."""

import pytest

from paperkit.core.errors import NetworkError, NoJSONFound
from paperkit.extract import parse_json
from paperkit.schema import (
    AnalysisRequest,
    DocumentAnalysis,
    MultipleChoiceQuestion,
    ProcessingInfo,
)

from .classify import classify_content
from .lib import (
    DEGRADED_CONFIDENCE,
    ResponseSanitizer,
    SanitizeContext,
    degraded_analysis,
    fallback_analysis,
    sanitize,
)


def _all_confidences(analysis: DocumentAnalysis) -> list[float]:
    structure = analysis.document_structure
    values = [structure.confidence, structure.metadata.extraction_confidence]
    values += [s.confidence for s in structure.sections]
    values += [q.confidence for q in analysis.extracted_questions]
    if analysis.processing_info:
        values.append(analysis.processing_info.confidence)
    return values


class TestConfidence:
    """Confidence fields always end up in [0, 1]."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [(1.7, 1.0), (-0.2, 0.0), (0.42, 0.42), ("0.8", 0.8), ("high", 0.5),
         (None, 0.5), (True, 0.5), (float("nan"), 0.5)],
    )
    def test_clamp_and_default(self, value, expected):
        """Out-of-range values clamp, non-numeric values default to 0.5."""
        analysis = sanitize(
            {
                "documentStructure": {"confidence": value},
                "extractedQuestions": [{"content": "Q?", "confidence": value}],
            }
        )
        assert analysis.document_structure.confidence == pytest.approx(expected)
        assert analysis.extracted_questions[0].confidence == pytest.approx(expected)

    @pytest.mark.unit
    def test_clamping_is_reported(self):
        """Clamped values produce warnings."""
        analysis = sanitize({"documentStructure": {"confidence": 3}})
        assert any("clamped" in w for w in analysis.warnings)

    @pytest.mark.unit
    def test_all_confidences_bounded(self, raw_analysis_data):
        """Every confidence in a real-looking payload is within bounds."""
        raw_analysis_data["documentStructure"]["sections"][0]["confidence"] = 9
        raw_analysis_data["extractedQuestions"][1]["confidence"] = -4
        raw_analysis_data["processingInfo"] = {"confidence": 12}

        analysis = sanitize(raw_analysis_data)

        assert all(0.0 <= c <= 1.0 for c in _all_confidences(analysis))


class TestSections:
    """Section normalization."""

    @pytest.mark.unit
    def test_drops_empty_content(self):
        """Empty and whitespace-only sections are dropped with warnings."""
        analysis = sanitize(
            {
                "documentStructure": {
                    "sections": [
                        {"content": "   "},
                        {"content": ""},
                        {"content": "Real text here."},
                        "not an object",
                    ]
                }
            }
        )
        sections = analysis.document_structure.sections
        assert [s.content for s in sections] == ["Real text here."]
        assert len(analysis.warnings) == 3

    @pytest.mark.unit
    def test_synthesizes_id_and_title(self):
        """Missing ids and titles are generated from position."""
        analysis = sanitize(
            {"documentStructure": {"sections": [{"content": "a"}, {"content": "b"}]}}
        )
        sections = analysis.document_structure.sections
        assert [s.id for s in sections] == ["section_1", "section_2"]
        assert [s.title for s in sections] == ["Section 1", "Section 2"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "content,expected",
        [
            ("What is the capital of France?", "question"),
            ("Complete the table below.", "instruction"),
            ("Please answer in full sentences.", "instruction"),
            ("The French Revolution began in 1789.", "content"),
        ],
    )
    def test_classifies_missing_type(self, content, expected):
        """Sections without a valid type are classified by content."""
        analysis = sanitize(
            {"documentStructure": {"sections": [{"content": content, "type": "blob"}]}}
        )
        assert analysis.document_structure.sections[0].type == expected

    @pytest.mark.unit
    def test_position_clamped(self):
        """Position fields are clamped into valid ranges."""
        analysis = sanitize(
            {
                "documentStructure": {
                    "sections": [
                        {
                            "content": "x",
                            "position": {"page": 0, "x": -5, "y": 250,
                                         "width": 0, "height": "tall"},
                        }
                    ]
                }
            }
        )
        position = analysis.document_structure.sections[0].position
        assert position.page == 1
        assert position.x == 0
        assert position.y == 100
        assert position.width == 1
        assert position.height == 10

    @pytest.mark.unit
    def test_default_position(self):
        """Missing positions stack sections down the page."""
        analysis = sanitize(
            {"documentStructure": {"sections": [{"content": "a"}, {"content": "b"}]}}
        )
        positions = [s.position for s in analysis.document_structure.sections]
        assert [p.page for p in positions] == [1, 1]
        assert [p.y for p in positions] == [0, 10]


class TestQuestions:
    """Question normalization."""

    @pytest.mark.unit
    def test_single_option_demoted(self):
        """multiple_choice with one option becomes short_answer without options."""
        analysis = sanitize(
            {"extractedQuestions": [
                {"content": "Pick", "type": "multiple_choice", "options": ["A"]}
            ]}
        )
        question = analysis.extracted_questions[0]
        assert question.type == "short_answer"
        assert not hasattr(question, "options")
        assert "options" not in analysis.to_data()["extractedQuestions"][0]

    @pytest.mark.unit
    def test_empty_options_stripped(self):
        """Empty options are removed before counting."""
        analysis = sanitize(
            {"extractedQuestions": [
                {"content": "Pick", "type": "multiple_choice",
                 "options": ["A", "", "  ", None, "B"]}
            ]}
        )
        question = analysis.extracted_questions[0]
        assert isinstance(question, MultipleChoiceQuestion)
        assert question.options == ["A", "B"]

    @pytest.mark.unit
    def test_every_multiple_choice_has_two_options(self, raw_analysis_data):
        """No multiple_choice question in the output has fewer than 2 options."""
        raw_analysis_data["extractedQuestions"].append(
            {"content": "Broken", "type": "multiple_choice", "options": [""]}
        )
        analysis = sanitize(raw_analysis_data)
        for question in analysis.extracted_questions:
            if question.type == "multiple_choice":
                assert len(question.options) >= 2

    @pytest.mark.unit
    def test_unknown_type_defaults_to_short_answer(self):
        """Unrecognized types become short_answer."""
        analysis = sanitize({"extractedQuestions": [{"content": "x", "type": "poem"}]})
        assert analysis.extracted_questions[0].type == "short_answer"

    @pytest.mark.unit
    def test_drops_empty_questions(self):
        """Questions without content are dropped."""
        analysis = sanitize({"extractedQuestions": [{"content": ""}, {"content": "ok"}]})
        assert len(analysis.extracted_questions) == 1
        assert analysis.extracted_questions[0].id == "question_1"
        assert analysis.extracted_questions[0].number == "1"

    @pytest.mark.unit
    def test_correct_answer_and_points(self):
        """correctAnswer must be a non-empty string, points a positive number."""
        analysis = sanitize(
            {"extractedQuestions": [
                {"content": "a", "correctAnswer": "B", "points": 3},
                {"content": "b", "correctAnswer": "  ", "points": 0},
                {"content": "c", "correctAnswer": 4, "points": "lots"},
            ]}
        )
        first, second, third = analysis.extracted_questions
        assert first.correct_answer == "B" and first.points == 3
        assert second.correct_answer is None and second.points is None
        assert third.correct_answer is None and third.points is None

    @pytest.mark.unit
    def test_numeric_number_is_stringified(self):
        """Numeric question numbers become strings."""
        analysis = sanitize({"extractedQuestions": [{"content": "a", "number": 7}]})
        assert analysis.extracted_questions[0].number == "7"


class TestDocument:
    """Structure, content and idempotence."""

    @pytest.mark.unit
    def test_non_object_input(self):
        """Non-object input still yields a usable analysis."""
        analysis = sanitize(["not", "an", "object"])
        assert analysis.extracted_content.title == "Untitled Document"
        assert analysis.extracted_questions == []
        assert analysis.warnings

    @pytest.mark.unit
    def test_context_defaults(self):
        """Document type and language fall back to the request."""
        request = AnalysisRequest(
            pdf_base64="data:application/pdf;base64,", document_type="worksheet",
            language="vi",
        )
        analysis = sanitize({}, SanitizeContext.from_request(request))
        structure = analysis.document_structure
        assert structure.type == "worksheet"
        assert structure.metadata.language == "vi"
        assert structure.subject == "Unknown Subject"

    @pytest.mark.unit
    def test_title_fallbacks(self):
        """extractedContent.title falls back to documentStructure.title."""
        analysis = sanitize({"documentStructure": {"title": "From structure"}})
        assert analysis.extracted_content.title == "From structure"

    @pytest.mark.unit
    def test_content_fields(self):
        """Instruction lists are joined and raw text is built from sections."""
        analysis = sanitize(
            {
                "documentStructure": {
                    "sections": [{"content": "One"}, {"content": "Two"}],
                    "estimatedTime": 29.6,
                    "difficulty": "advanced",
                },
                "extractedContent": {
                    "instructions": ["Use a pencil", "", "Show work"],
                    "keywords": "algebra",
                },
            }
        )
        content = analysis.extracted_content
        assert content.instructions == "Use a pencil\nShow work"
        assert content.keywords == ["algebra"]
        assert content.raw_text == "One\n\nTwo"
        assert analysis.document_structure.estimated_time == 30
        assert analysis.document_structure.difficulty == "advanced"

    @pytest.mark.unit
    def test_metadata_counts(self, raw_analysis_data):
        """Counts reflect the sanitized lists."""
        metadata = sanitize(raw_analysis_data).document_structure.metadata
        assert metadata.questions_count == 2
        assert metadata.sections_count == 2
        assert metadata.total_pages == 1

    @pytest.mark.unit
    def test_idempotent(self, raw_analysis_data):
        """sanitize(sanitize(x)) == sanitize(x)."""
        raw_analysis_data["extractedQuestions"].append(
            {"content": "Demote me", "type": "multiple_choice", "options": ["A"]}
        )
        once = sanitize(raw_analysis_data)
        twice = sanitize(once)
        assert twice == once

    @pytest.mark.unit
    def test_idempotent_with_processing_info(self, raw_analysis_data):
        """Processing info survives a second pass unchanged."""
        info = ProcessingInfo(model="m", tokens_used=10, attempts=2, request_id="r")
        once = sanitize(raw_analysis_data, processing_info=info)
        assert sanitize(once.to_data()) == once

    @pytest.mark.unit
    def test_class_and_function_agree(self, raw_analysis_data):
        """The module shortcut uses the same sanitizer logic."""
        assert ResponseSanitizer().sanitize(raw_analysis_data) == sanitize(
            raw_analysis_data
        )


class TestUnexpectedShapes:
    """Valid JSON of the wrong shape never raises."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [["multiple_choice"], {"a": 1}, 3])
    def test_non_string_question_type(self, value):
        analysis = sanitize(
            {"extractedQuestions": [{"content": "What?", "type": value}]}
        )
        assert analysis.extracted_questions[0].type == "short_answer"
        assert any("unknown type" in w for w in analysis.warnings)

    @pytest.mark.unit
    def test_non_string_section_type(self):
        analysis = sanitize(
            {"documentStructure": {"sections": [{"content": "Read.", "type": {"a": 1}}]}}
        )
        assert len(analysis.document_structure.sections) == 1

    @pytest.mark.unit
    def test_non_string_difficulty(self):
        analysis = sanitize(
            {
                "documentStructure": {"difficulty": ["advanced"]},
                "extractedQuestions": [{"content": "Q?", "difficulty": ["easy"]}],
            }
        )
        assert analysis.document_structure.difficulty is None
        assert analysis.extracted_questions[0].difficulty is None

    @pytest.mark.unit
    def test_huge_integers(self):
        """Integers too large for a float are treated as non-numeric."""
        huge = 10**400
        analysis = sanitize(
            {
                "documentStructure": {"confidence": huge, "estimatedTime": huge},
                "extractedQuestions": [{"content": "Q?", "points": huge}],
            }
        )
        assert analysis.document_structure.confidence == pytest.approx(0.5)
        assert analysis.document_structure.estimated_time is None
        assert analysis.extracted_questions[0].points is None

    @pytest.mark.unit
    def test_huge_integer_from_parsed_text(self):
        data, _ = parse_json('{"documentStructure": {"confidence": 1' + "0" * 400 + "}}")
        analysis = sanitize(data)
        assert 0.0 <= analysis.document_structure.confidence <= 1.0


class TestFallbacks:
    """Degraded analyses for failed requests."""

    @pytest.mark.unit
    def test_fallback_analysis(self):
        """Network failures produce a populated failure analysis."""
        error = NetworkError("Service unavailable")
        analysis = fallback_analysis(error, SanitizeContext(document_type="quiz"))

        assert analysis.success is False
        assert analysis.document_structure.subject == "Analysis Failed"
        assert analysis.document_structure.confidence == 0.0
        assert analysis.document_structure.type == "quiz"
        assert analysis.extracted_content.title == "Document Analysis Failed"
        assert analysis.error.code == "NETWORK_ERROR"
        assert analysis.suggestions == error.suggestions
        assert "Service unavailable" in analysis.warnings[0]

    @pytest.mark.unit
    def test_degraded_analysis(self):
        """Plain-text completions are salvaged into one section."""
        raw = "Unit 4 Review Sheet\nSolve each equation for x.\nok"
        analysis = degraded_analysis(raw, error=NoJSONFound("none"))

        assert analysis.success is False
        section = analysis.document_structure.sections[0]
        assert section.content == "Unit 4 Review Sheet\nSolve each equation for x."
        assert section.confidence == DEGRADED_CONFIDENCE
        assert analysis.extracted_content.title == "Content Extraction (Parsing Failed)"
        assert analysis.error.code == "NO_JSON_FOUND"

    @pytest.mark.unit
    def test_degraded_analysis_without_text(self):
        """Nothing salvageable still yields a non-null analysis."""
        analysis = degraded_analysis("")
        assert analysis.document_structure.sections == []
        assert analysis.warnings


class TestClassifyContent:
    """Tests for the content heuristic."""

    @pytest.mark.unit
    def test_question_label(self):
        assert classify_content("Question 3: Name two mammals") == "question"

    @pytest.mark.unit
    def test_step(self):
        assert classify_content("Step 2 Mix the solutions") == "instruction"

    @pytest.mark.unit
    def test_imperative_needs_word_boundary(self):
        """'Reading' is not the imperative 'Read'."""
        assert classify_content("Reading is fun for everyone") == "content"
