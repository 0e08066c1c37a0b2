"""Error taxonomy shared by the client, extractor and pipeline."""

from .lib import (
    # Base
    AnalysisError,
    # Non-retryable
    AuthError,
    FileTooLarge,
    InvalidRequest,
    # Retryable
    NetworkError,
    # Extraction
    NoJSONFound,
    QuotaExceeded,
    Timeout,
    UnsupportedFormat,
    ValidationError,
    # Classification
    classify_error,
    is_retryable,
)

__all__ = [
    # Base
    "AnalysisError",
    # Non-retryable
    "ValidationError",
    "InvalidRequest",
    "FileTooLarge",
    "UnsupportedFormat",
    "AuthError",
    "QuotaExceeded",
    # Retryable
    "NetworkError",
    "Timeout",
    # Extraction
    "NoJSONFound",
    # Classification
    "classify_error",
    "is_retryable",
]
