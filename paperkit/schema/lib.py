"""Canonical document analysis schema.

This module defines the typed structure produced by the sanitizer and consumed
by the layout synthesizer. Field names are snake_case in Python and camelCase
on the wire (``documentStructure``, ``extractedQuestions``...), so a dumped
analysis can be handed to the page renderer as its data object unchanged.

Questions are a tagged union on ``type``: only ``multiple_choice`` questions
carry an ``options`` field, and that field always holds at least two entries.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

DEFAULT_TITLE = "Untitled Document"
DEFAULT_CONFIDENCE = 0.5

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]
Percent = Annotated[float, Field(ge=0.0, le=100.0)]

_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
    "use_enum_values": True,
}


# =============================================================================
# Enumerations
# =============================================================================


class SectionType(str, Enum):
    """Role of a content block within the source document."""

    HEADER = "header"
    QUESTION = "question"
    ANSWER = "answer"
    INSTRUCTION = "instruction"
    CONTENT = "content"


class QuestionType(str, Enum):
    """Assessment question formats."""

    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"
    FILL_BLANK = "fill_blank"
    TRUE_FALSE = "true_false"


class DocumentType(str, Enum):
    """Document kind requested by the caller."""

    QUIZ = "quiz"
    WORKSHEET = "worksheet"
    GENERAL = "general"


class Language(str, Enum):
    """Supported document languages."""

    EN = "en"
    VI = "vi"


class QuestionDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DocumentDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# =============================================================================
# Request
# =============================================================================

PDF_DATA_URL_PREFIX = "data:application/pdf;base64,"


class AnalysisRequest(BaseModel):
    """A document submitted for analysis.

    Attributes:
        pdf_base64: PDF payload as a ``data:application/pdf;base64,`` URL.
        document_type: Expected kind of document, used as a prompt hint.
        language: Language of the document.
    """

    pdf_base64: str = Field(..., description="PDF payload as a base64 data URL")
    document_type: DocumentType = Field(
        default=DocumentType.GENERAL, description="Expected document kind"
    )
    language: Language = Field(default=Language.EN, description="Document language")

    model_config = _MODEL_CONFIG

    @property
    def payload(self) -> str:
        """Base64 data without the data-URL prefix."""
        if self.pdf_base64.startswith(PDF_DATA_URL_PREFIX):
            return self.pdf_base64[len(PDF_DATA_URL_PREFIX) :]
        return self.pdf_base64.split(",", 1)[-1]

    @property
    def estimated_size(self) -> int:
        """Decoded payload size in bytes, estimated from base64 length."""
        return len(self.payload) * 3 // 4


# =============================================================================
# Document Structure
# =============================================================================


class SectionPosition(BaseModel):
    """Location of a section on the source page, in page percentages."""

    page: Annotated[int, Field(ge=1)] = 1
    x: Percent = 0.0
    y: Percent = 0.0
    width: Percent = 100.0
    height: Percent = 10.0

    model_config = _MODEL_CONFIG


class Section(BaseModel):
    """One content block of the source document."""

    id: str = Field(..., description="Section identifier")
    title: str = Field(..., description="Section heading")
    type: SectionType = Field(..., description="Role of the block")
    content: str = Field(..., min_length=1, description="Block text")
    position: SectionPosition = Field(default_factory=SectionPosition)
    confidence: Confidence = DEFAULT_CONFIDENCE

    model_config = _MODEL_CONFIG


class DocumentMetadata(BaseModel):
    """Descriptive information about the analyzed document."""

    total_pages: Annotated[int, Field(ge=1)] = 1
    language: str = Language.EN.value
    document_type: str = DocumentType.GENERAL.value
    extraction_confidence: Confidence = DEFAULT_CONFIDENCE
    questions_count: Annotated[int, Field(ge=0)] = 0
    sections_count: Annotated[int, Field(ge=0)] = 0
    author: str | None = None
    institution: str | None = None
    course: str | None = None
    grade: str | None = None
    tags: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class DocumentStructure(BaseModel):
    """Top-level interpretation of the document."""

    type: str = Field(default=DocumentType.GENERAL.value, description="Document kind")
    subject: str = Field(default="Unknown Subject", description="Subject area")
    confidence: Confidence = DEFAULT_CONFIDENCE
    difficulty: DocumentDifficulty | None = None
    estimated_time: Annotated[int, Field(gt=0)] | None = Field(
        default=None, description="Estimated completion time in minutes"
    )
    sections: list[Section] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)

    model_config = _MODEL_CONFIG


# =============================================================================
# Questions (tagged union on ``type``)
# =============================================================================


class _QuestionBase(BaseModel):
    id: str = Field(..., description="Question identifier")
    number: str = Field(..., description="Printed question number")
    content: str = Field(..., min_length=1, description="Question stem")
    correct_answer: str | None = Field(default=None, min_length=1)
    points: Annotated[float, Field(gt=0)] | None = None
    difficulty: QuestionDifficulty | None = None
    confidence: Confidence = DEFAULT_CONFIDENCE

    model_config = _MODEL_CONFIG


class MultipleChoiceQuestion(_QuestionBase):
    """A question answered by picking one of at least two options."""

    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[Annotated[str, Field(min_length=1)]] = Field(..., min_length=2)


class OpenQuestion(_QuestionBase):
    """A question answered in free form (no option list)."""

    type: Literal["short_answer", "essay", "fill_blank", "true_false"] = "short_answer"


ExtractedQuestion = Annotated[
    Union[MultipleChoiceQuestion, OpenQuestion],
    Field(discriminator="type"),
]


# =============================================================================
# Extracted Content
# =============================================================================


class ExtractedContent(BaseModel):
    """Human-facing text extracted from the document."""

    title: str = Field(default=DEFAULT_TITLE, min_length=1)
    subtitle: str | None = None
    author: str | None = None
    date: str | None = None
    course: str | None = None
    instructions: str | None = None
    keywords: list[str] = Field(default_factory=list)
    learning_outcomes: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    raw_text: str = ""

    model_config = _MODEL_CONFIG


# =============================================================================
# Analysis Result
# =============================================================================


class ProcessingInfo(BaseModel):
    """How an analysis was produced."""

    model: str = "unknown"
    tokens_used: Annotated[int, Field(ge=0)] = 0
    processing_time_ms: Annotated[int, Field(ge=0)] = 0
    confidence: Confidence = DEFAULT_CONFIDENCE
    attempts: Annotated[int, Field(ge=0)] = 0
    request_id: str | None = None

    model_config = _MODEL_CONFIG


class ErrorInfo(BaseModel):
    """User-facing description of a failure."""

    code: str
    message: str
    recoverable: bool = False
    suggestions: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class DocumentAnalysis(BaseModel):
    """Canonical structured interpretation of a source document.

    Immutable once produced. ``success`` is False for degraded results, in
    which case ``warnings``, ``error`` and ``suggestions`` explain what went
    wrong and what the caller can do about it.
    """

    success: bool = True
    document_structure: DocumentStructure = Field(default_factory=DocumentStructure)
    extracted_questions: list[ExtractedQuestion] = Field(default_factory=list)
    extracted_content: ExtractedContent = Field(default_factory=ExtractedContent)
    processing_info: ProcessingInfo | None = None
    warnings: list[str] = Field(default_factory=list)
    error: ErrorInfo | None = None
    suggestions: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    def to_data(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape used by renderers and bindings."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
