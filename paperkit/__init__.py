"""paperkit: PDF document analysis to positioned page templates."""

from paperkit.client import APIClient
from paperkit.core.errors import AnalysisError, NoJSONFound, ValidationError
from paperkit.extract import extract, parse_json
from paperkit.layout import LayoutSynthesizer, PageConfig, Template, bind
from paperkit.pipeline import PipelineContext, create_context, run_pipeline
from paperkit.sanitize import ResponseSanitizer, sanitize
from paperkit.schema import AnalysisRequest, DocumentAnalysis
from paperkit.validation import LayoutValidator, ValidationReport, auto_fix

__all__ = [
    # Client
    "APIClient",
    "AnalysisRequest",
    # Errors
    "AnalysisError",
    "NoJSONFound",
    "ValidationError",
    # Extraction and sanitization
    "DocumentAnalysis",
    "ResponseSanitizer",
    "extract",
    "parse_json",
    "sanitize",
    # Layout
    "LayoutSynthesizer",
    "PageConfig",
    "Template",
    "bind",
    # Validation
    "LayoutValidator",
    "ValidationReport",
    "auto_fix",
    # Pipeline
    "PipelineContext",
    "create_context",
    "run_pipeline",
]
