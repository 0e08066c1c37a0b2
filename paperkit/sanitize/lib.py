"""Normalization of extracted JSON into a canonical DocumentAnalysis.

The sanitizer never raises on bad data. Every repair it makes (dropping an
empty section, demoting a question, clamping a confidence) is recorded as a
warning on the returned analysis. Sanitizing an already canonical analysis
returns an equal analysis.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from paperkit.core.errors import AnalysisError, NoJSONFound
from paperkit.extract import clean_text, salvage_text
from paperkit.schema import (
    DEFAULT_CONFIDENCE,
    DEFAULT_TITLE,
    AnalysisRequest,
    DocumentAnalysis,
    DocumentDifficulty,
    DocumentMetadata,
    DocumentStructure,
    DocumentType,
    ErrorInfo,
    ExtractedContent,
    Language,
    MultipleChoiceQuestion,
    OpenQuestion,
    ProcessingInfo,
    QuestionDifficulty,
    QuestionType,
    Section,
    SectionPosition,
    SectionType,
)

from .classify import classify_content

logger = logging.getLogger(__name__)

DEGRADED_CONFIDENCE = 0.3
_SECTION_TYPES = {t.value for t in SectionType}
_QUESTION_TYPES = {t.value for t in QuestionType}
_QUESTION_DIFFICULTIES = {d.value for d in QuestionDifficulty}
_DOCUMENT_DIFFICULTIES = {d.value for d in DocumentDifficulty}
_CONTENT_LISTS = (
    ("keywords", "keywords"),
    ("learningOutcomes", "learning_outcomes"),
    ("prerequisites", "prerequisites"),
    ("materials", "materials"),
    ("references", "references"),
)


@dataclass
class SanitizeContext:
    """Request information the sanitizer falls back on.

    Attributes:
        document_type: Requested document type.
        language: Requested document language.
    """

    document_type: str = DocumentType.GENERAL.value
    language: str = Language.EN.value

    @classmethod
    def from_request(cls, request: AnalysisRequest | None) -> "SanitizeContext":
        if request is None:
            return cls()
        return cls(document_type=request.document_type, language=request.language)


# =============================================================================
# Value helpers
# =============================================================================


def _text(value: Any) -> str | None:
    """Return stripped text for strings and numbers, None otherwise."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _number(value: Any) -> float | None:
    """Return a finite float for numbers and numeric strings."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _choice(value: Any, allowed: set[str]) -> str | None:
    """Return ``value`` when it is one of the ``allowed`` strings."""
    if isinstance(value, str) and value in allowed:
        return value
    return None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [text for item in value if (text := _text(item))]


class ResponseSanitizer:
    """Turns loosely shaped JSON into a valid DocumentAnalysis.

    Example:
        >>> sanitizer = ResponseSanitizer()
        >>> analysis = sanitizer.sanitize({"extractedQuestions": [
        ...     {"content": "Pick", "type": "multiple_choice", "options": ["A"]}
        ... ]})
        >>> analysis.extracted_questions[0].type
        'short_answer'
    """

    def sanitize(
        self,
        parsed: Any,
        context: SanitizeContext | None = None,
        processing_info: ProcessingInfo | None = None,
    ) -> DocumentAnalysis:
        """Normalize ``parsed`` into a canonical analysis.

        Args:
            parsed: Decoded JSON object, or an existing DocumentAnalysis.
            context: Request information used for defaults.
            processing_info: Replaces any processing info found in ``parsed``.

        Returns:
            A DocumentAnalysis. Repairs are listed in ``warnings``.
        """
        context = context or SanitizeContext()
        warnings: list[str] = []

        if isinstance(parsed, DocumentAnalysis):
            parsed = parsed.to_data()
        if not isinstance(parsed, Mapping):
            warnings.append(
                f"Expected a JSON object, got {type(parsed).__name__}; using defaults"
            )
            parsed = {}

        raw_structure = parsed.get("documentStructure")
        if not isinstance(raw_structure, Mapping):
            if raw_structure is not None:
                warnings.append("documentStructure is not an object; using defaults")
            raw_structure = {}

        sections = self._sanitize_sections(raw_structure.get("sections"), warnings)
        questions = self._sanitize_questions(parsed.get("extractedQuestions"), warnings)
        structure = self._sanitize_structure(
            raw_structure, sections, questions, context, warnings
        )
        content = self._sanitize_content(
            parsed.get("extractedContent"), raw_structure, sections
        )

        if processing_info is None:
            processing_info = self._sanitize_processing_info(
                parsed.get("processingInfo"), warnings
            )

        for warning in warnings:
            logger.debug(f"Sanitizer: {warning}")

        success = parsed.get("success")
        return DocumentAnalysis(
            success=success if isinstance(success, bool) else True,
            document_structure=structure,
            extracted_questions=questions,
            extracted_content=content,
            processing_info=processing_info,
            warnings=_string_list(parsed.get("warnings")) + warnings,
            error=self._sanitize_error(parsed.get("error")),
            suggestions=_string_list(parsed.get("suggestions")),
        )

    # -------------------------------------------------------------------------
    # Confidence and position
    # -------------------------------------------------------------------------

    def _confidence(self, value: Any, where: str, warnings: list[str]) -> float:
        if value is None:
            return DEFAULT_CONFIDENCE
        number = _number(value)
        if number is None:
            warnings.append(f"{where}: non-numeric confidence replaced with 0.5")
            return DEFAULT_CONFIDENCE
        clamped = clamp(number, 0.0, 1.0)
        if clamped != number:
            warnings.append(f"{where}: confidence {number} clamped to {clamped}")
        return clamped

    def _position(self, value: Any, index: int) -> SectionPosition:
        if not isinstance(value, Mapping):
            return SectionPosition(y=clamp(index * 10.0, 0.0, 100.0))

        def field(name: str, default: float, low: float) -> float:
            number = _number(value.get(name))
            return default if number is None else clamp(number, low, 100.0)

        page = _number(value.get("page"))
        return SectionPosition(
            page=max(1, int(page)) if page is not None else 1,
            x=field("x", 0.0, 0.0),
            y=field("y", 0.0, 0.0),
            width=field("width", 100.0, 1.0),
            height=field("height", 10.0, 1.0),
        )

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _sanitize_sections(self, value: Any, warnings: list[str]) -> list[Section]:
        if value is None:
            return []
        if not isinstance(value, list):
            warnings.append("sections is not a list; ignoring")
            return []

        sections: list[Section] = []
        for index, raw in enumerate(value):
            if not isinstance(raw, Mapping):
                warnings.append(f"Section {index + 1} is not an object; dropped")
                continue
            content = _text(raw.get("content"))
            if content is None:
                warnings.append(f"Section {index + 1} has no content; dropped")
                continue

            number = len(sections) + 1
            raw_type = raw.get("type")
            if _choice(raw_type, _SECTION_TYPES):
                section_type = raw_type
            else:
                section_type = classify_content(content).value
                if raw_type is not None:
                    warnings.append(
                        f"Section {number}: unknown type {raw_type!r} "
                        f"classified as {section_type}"
                    )

            sections.append(
                Section(
                    id=_text(raw.get("id")) or f"section_{number}",
                    title=_text(raw.get("title")) or f"Section {number}",
                    type=section_type,
                    content=content,
                    position=self._position(raw.get("position"), index),
                    confidence=self._confidence(
                        raw.get("confidence"), f"Section {number}", warnings
                    ),
                )
            )
        return sections

    # -------------------------------------------------------------------------
    # Questions
    # -------------------------------------------------------------------------

    def _sanitize_questions(
        self, value: Any, warnings: list[str]
    ) -> list[MultipleChoiceQuestion | OpenQuestion]:
        if value is None:
            return []
        if not isinstance(value, list):
            warnings.append("extractedQuestions is not a list; ignoring")
            return []

        questions: list[MultipleChoiceQuestion | OpenQuestion] = []
        for index, raw in enumerate(value):
            if not isinstance(raw, Mapping):
                warnings.append(f"Question {index + 1} is not an object; dropped")
                continue
            content = _text(raw.get("content"))
            if content is None:
                warnings.append(f"Question {index + 1} has no content; dropped")
                continue

            number = len(questions) + 1
            where = f"Question {number}"
            question_type = raw.get("type")
            if not _choice(question_type, _QUESTION_TYPES):
                if question_type is not None:
                    warnings.append(
                        f"{where}: unknown type {question_type!r}; using short_answer"
                    )
                question_type = QuestionType.SHORT_ANSWER.value

            fields: dict[str, Any] = {
                "id": _text(raw.get("id")) or f"question_{number}",
                "number": _text(raw.get("number")) or str(number),
                "content": content,
                "confidence": self._confidence(raw.get("confidence"), where, warnings),
            }

            answer = raw.get("correctAnswer")
            if isinstance(answer, str) and answer.strip():
                fields["correct_answer"] = answer.strip()
            elif answer is not None:
                warnings.append(f"{where}: correctAnswer is not a non-empty string")

            points = _number(raw.get("points"))
            if points is not None and points > 0:
                fields["points"] = points
            elif raw.get("points") is not None:
                warnings.append(f"{where}: points must be a positive number")

            difficulty = _choice(raw.get("difficulty"), _QUESTION_DIFFICULTIES)
            if difficulty:
                fields["difficulty"] = difficulty

            if question_type == QuestionType.MULTIPLE_CHOICE.value:
                options = _string_list(raw.get("options"))
                if len(options) >= 2:
                    questions.append(MultipleChoiceQuestion(options=options, **fields))
                    continue
                warnings.append(
                    f"{where}: multiple_choice with {len(options)} option(s) "
                    f"demoted to short_answer"
                )
                question_type = QuestionType.SHORT_ANSWER.value

            questions.append(OpenQuestion(type=question_type, **fields))
        return questions

    # -------------------------------------------------------------------------
    # Structure, content, processing info
    # -------------------------------------------------------------------------

    def _sanitize_structure(
        self,
        raw: Mapping,
        sections: list[Section],
        questions: list,
        context: SanitizeContext,
        warnings: list[str],
    ) -> DocumentStructure:
        confidence = self._confidence(raw.get("confidence"), "Document", warnings)
        document_type = _text(raw.get("type")) or context.document_type

        estimated_time = None
        minutes = _number(raw.get("estimatedTime"))
        if minutes is not None and round(minutes) > 0:
            estimated_time = round(minutes)

        difficulty = _choice(raw.get("difficulty"), _DOCUMENT_DIFFICULTIES)

        raw_meta = raw.get("metadata")
        if not isinstance(raw_meta, Mapping):
            raw_meta = {}
        max_page = max((s.position.page for s in sections), default=1)
        total_pages = _number(raw_meta.get("totalPages"))
        extraction_confidence = raw_meta.get("extractionConfidence")

        metadata = DocumentMetadata(
            total_pages=max(max_page, int(total_pages) if total_pages else 1),
            language=_text(raw_meta.get("language")) or context.language,
            document_type=_text(raw_meta.get("documentType")) or document_type,
            extraction_confidence=(
                confidence
                if extraction_confidence is None
                else self._confidence(extraction_confidence, "Metadata", warnings)
            ),
            questions_count=len(questions),
            sections_count=len(sections),
            author=_text(raw_meta.get("author")),
            institution=_text(raw_meta.get("institution")),
            course=_text(raw_meta.get("course")),
            grade=_text(raw_meta.get("grade")),
            tags=_string_list(raw_meta.get("tags")),
        )

        return DocumentStructure(
            type=document_type,
            subject=_text(raw.get("subject")) or "Unknown Subject",
            confidence=confidence,
            difficulty=difficulty,
            estimated_time=estimated_time,
            sections=sections,
            metadata=metadata,
        )

    def _sanitize_content(
        self,
        raw: Any,
        raw_structure: Mapping,
        sections: list[Section],
    ) -> ExtractedContent:
        if not isinstance(raw, Mapping):
            raw = {}

        instructions = raw.get("instructions")
        if isinstance(instructions, list):
            instructions = "\n".join(_string_list(instructions)) or None
        else:
            instructions = _text(instructions)

        raw_text = raw.get("rawText")
        if not isinstance(raw_text, str) or not raw_text.strip():
            raw_text = "\n\n".join(s.content for s in sections)

        lists = {attr: _string_list(raw.get(key)) for key, attr in _CONTENT_LISTS}
        return ExtractedContent(
            title=(
                _text(raw.get("title"))
                or _text(raw_structure.get("title"))
                or DEFAULT_TITLE
            ),
            subtitle=_text(raw.get("subtitle")),
            author=_text(raw.get("author")),
            date=_text(raw.get("date")),
            course=_text(raw.get("course")),
            instructions=instructions,
            raw_text=raw_text,
            **lists,
        )

    def _sanitize_processing_info(
        self, raw: Any, warnings: list[str]
    ) -> ProcessingInfo | None:
        if not isinstance(raw, Mapping):
            return None

        def count(key: str) -> int:
            number = _number(raw.get(key))
            return max(0, int(number)) if number is not None else 0

        return ProcessingInfo(
            model=_text(raw.get("model")) or "unknown",
            tokens_used=count("tokensUsed"),
            processing_time_ms=count("processingTimeMs"),
            confidence=self._confidence(raw.get("confidence"), "Processing", warnings),
            attempts=count("attempts"),
            request_id=_text(raw.get("requestId")),
        )

    def _sanitize_error(self, raw: Any) -> ErrorInfo | None:
        if not isinstance(raw, Mapping):
            return None
        message = _text(raw.get("message"))
        if message is None:
            return None
        return ErrorInfo(
            code=_text(raw.get("code")) or "ANALYSIS_FAILED",
            message=message,
            recoverable=raw.get("recoverable") is True,
            suggestions=_string_list(raw.get("suggestions")),
        )


_default_sanitizer = ResponseSanitizer()


def sanitize(
    parsed: Any,
    context: SanitizeContext | None = None,
    processing_info: ProcessingInfo | None = None,
) -> DocumentAnalysis:
    """Module-level shortcut for ``ResponseSanitizer().sanitize``."""
    return _default_sanitizer.sanitize(parsed, context, processing_info)


# =============================================================================
# Fallback analyses
# =============================================================================


def fallback_analysis(
    error: AnalysisError,
    context: SanitizeContext | None = None,
    processing_info: ProcessingInfo | None = None,
) -> DocumentAnalysis:
    """Best-effort analysis returned when the network stage failed.

    Args:
        error: Final error of the request.
        context: Request information.
        processing_info: Timing and attempt information.

    Returns:
        A ``success=False`` analysis carrying the error and its suggestions.
    """
    context = context or SanitizeContext()
    return DocumentAnalysis(
        success=False,
        document_structure=DocumentStructure(
            type=context.document_type,
            subject="Analysis Failed",
            confidence=0.0,
            metadata=DocumentMetadata(
                language=context.language,
                document_type=context.document_type,
                extraction_confidence=0.0,
            ),
        ),
        extracted_content=ExtractedContent(
            title="Document Analysis Failed",
            subtitle="Unable to process the uploaded document",
        ),
        processing_info=processing_info,
        warnings=[f"Analysis failed: {error.message}"],
        error=error.to_info(),
        suggestions=list(error.suggestions),
    )


def degraded_analysis(
    raw_text: str,
    context: SanitizeContext | None = None,
    processing_info: ProcessingInfo | None = None,
    error: NoJSONFound | None = None,
) -> DocumentAnalysis:
    """Analysis built from plain text when a completion held no JSON.

    Meaningful lines of the completion become a single content section.

    Args:
        raw_text: Completion text.
        context: Request information.
        processing_info: Timing and attempt information.
        error: The extraction failure, if available.

    Returns:
        A ``success=False`` analysis with the salvaged text.
    """
    context = context or SanitizeContext()
    error = error or NoJSONFound("No JSON object found in completion")
    lines = salvage_text(raw_text)

    sections = []
    if lines:
        sections.append(
            Section(
                id="section_1",
                title="Extracted Content",
                type=SectionType.CONTENT,
                content="\n".join(lines),
                confidence=DEGRADED_CONFIDENCE,
            )
        )

    return DocumentAnalysis(
        success=False,
        document_structure=DocumentStructure(
            type=context.document_type,
            confidence=DEGRADED_CONFIDENCE,
            sections=sections,
            metadata=DocumentMetadata(
                language=context.language,
                document_type=context.document_type,
                extraction_confidence=DEGRADED_CONFIDENCE,
                sections_count=len(sections),
            ),
        ),
        extracted_content=ExtractedContent(
            title="Content Extraction (Parsing Failed)",
            raw_text=clean_text(raw_text or ""),
        ),
        processing_info=processing_info,
        warnings=[
            "Could not parse structured data from the response",
            f"Recovered {len(lines)} line(s) of plain text",
        ],
        error=error.to_info(),
        suggestions=list(error.suggestions),
    )


__all__ = [
    "DEGRADED_CONFIDENCE",
    "ResponseSanitizer",
    "SanitizeContext",
    "clamp",
    "degraded_analysis",
    "fallback_analysis",
    "sanitize",
]
