"""Typed document analysis schema shared by every pipeline stage."""

from .lib import (
    # Constants
    DEFAULT_CONFIDENCE,
    DEFAULT_TITLE,
    PDF_DATA_URL_PREFIX,
    # Request
    AnalysisRequest,
    # Result models
    DocumentAnalysis,
    # Enums
    DocumentDifficulty,
    DocumentMetadata,
    DocumentStructure,
    DocumentType,
    ErrorInfo,
    ExtractedContent,
    ExtractedQuestion,
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

__all__ = [
    # Constants
    "DEFAULT_CONFIDENCE",
    "DEFAULT_TITLE",
    "PDF_DATA_URL_PREFIX",
    # Enums
    "DocumentDifficulty",
    "DocumentType",
    "Language",
    "QuestionDifficulty",
    "QuestionType",
    "SectionType",
    # Request
    "AnalysisRequest",
    # Result models
    "DocumentAnalysis",
    "DocumentMetadata",
    "DocumentStructure",
    "ErrorInfo",
    "ExtractedContent",
    "ExtractedQuestion",
    "MultipleChoiceQuestion",
    "OpenQuestion",
    "ProcessingInfo",
    "Section",
    "SectionPosition",
]
