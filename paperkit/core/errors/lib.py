"""Error taxonomy for document analysis.

Every failure surfaced by the API client is an ``AnalysisError``. Each class
carries a stable ``code``, whether it may be retried, and remediation
suggestions suitable for showing to an end user.
"""

from typing import Any

from paperkit.schema import ErrorInfo


class AnalysisError(Exception):
    """Base exception for document analysis errors.

    Attributes:
        code: Machine-readable error code.
        retryable: Whether another attempt may succeed.
        suggestions: Actions the caller can take.
        details: Extra context (status codes, sizes...).
    """

    code = "ANALYSIS_FAILED"
    retryable = True
    default_suggestions: tuple[str, ...] = (
        "Try again in a few moments",
        "Check that the document is a readable PDF",
    )

    def __init__(
        self,
        message: str,
        *,
        suggestions: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestions = (
            list(suggestions) if suggestions is not None else list(self.default_suggestions)
        )
        self.details = details or {}

    def to_info(self) -> ErrorInfo:
        """Convert to the ErrorInfo model embedded in degraded analyses."""
        return ErrorInfo(
            code=self.code,
            message=self.message,
            recoverable=self.retryable,
            suggestions=self.suggestions,
        )


# =============================================================================
# Non-retryable
# =============================================================================


class ValidationError(AnalysisError):
    """Raised when a request is malformed. Never retried."""

    code = "VALIDATION_ERROR"
    retryable = False
    default_suggestions = ("Upload a valid PDF document",)


class InvalidRequest(ValidationError):
    """Raised when the inference service rejects the request shape."""

    code = "INVALID_REQUEST"
    default_suggestions = (
        "Check that the document is a valid PDF",
        "Verify the model and generation settings",
    )


class FileTooLarge(ValidationError):
    """Raised when the payload exceeds the configured maximum size."""

    code = "FILE_TOO_LARGE"
    default_suggestions = (
        "Reduce PDF file size to under 20MB",
        "Split large documents into smaller parts",
    )


class UnsupportedFormat(ValidationError):
    """Raised when the payload is not a base64 encoded PDF."""

    code = "UNSUPPORTED_FORMAT"
    default_suggestions = (
        "Upload a PDF document",
        "Convert the file to PDF before uploading",
    )


class AuthError(AnalysisError):
    """Raised when the API key is missing, invalid or lacks permission."""

    code = "INVALID_API_KEY"
    retryable = False
    default_suggestions = (
        "Check your GEMINI_API_KEY environment variable",
        "Verify the API key has access to the selected model",
    )


class QuotaExceeded(AnalysisError):
    """Raised when the service quota is exhausted."""

    code = "QUOTA_EXCEEDED"
    retryable = False
    default_suggestions = (
        "Wait before making more requests",
        "Check your API quota limits",
    )


# =============================================================================
# Retryable
# =============================================================================


class NetworkError(AnalysisError):
    """Raised for transport failures and server-side errors."""

    code = "NETWORK_ERROR"
    default_suggestions = (
        "Check your network connection",
        "Try again in a few moments",
    )


class Timeout(NetworkError):
    """Raised when an inference call exceeds the configured timeout."""

    code = "TIMEOUT"
    default_suggestions = (
        "Try with a smaller document",
        "Check your internet connection",
    )


# =============================================================================
# Extraction
# =============================================================================


class NoJSONFound(AnalysisError):
    """Raised when no JSON object can be located in a completion."""

    code = "NO_JSON_FOUND"
    retryable = False
    default_suggestions = (
        "Review the extracted content manually",
        "Try analyzing the document again",
    )


# =============================================================================
# Classification
# =============================================================================

# Message markers for errors that did not arrive as AnalysisError
_NON_RETRYABLE_MARKERS: list[tuple[str, type[AnalysisError]]] = [
    ("API_KEY", AuthError),
    ("PERMISSION", AuthError),
    ("QUOTA_EXCEEDED", QuotaExceeded),
    ("INVALID_REQUEST", InvalidRequest),
    ("FILE_TOO_LARGE", FileTooLarge),
    ("UNSUPPORTED_FORMAT", UnsupportedFormat),
]


def classify_error(error: Exception) -> AnalysisError:
    """Map an arbitrary exception onto the analysis error taxonomy.

    AnalysisError instances are returned unchanged. Other exceptions are
    matched on well-known markers in their message; anything unrecognized is
    treated as a retryable NetworkError.

    Args:
        error: The exception raised by the transport.

    Returns:
        An AnalysisError describing the failure.
    """
    if isinstance(error, AnalysisError):
        return error

    message = str(error) or type(error).__name__
    upper = message.upper()
    for marker, error_class in _NON_RETRYABLE_MARKERS:
        if marker in upper:
            return error_class(message)
    if isinstance(error, TimeoutError):
        return Timeout(message)
    return NetworkError(message, details={"exception": type(error).__name__})


def is_retryable(error: Exception) -> bool:
    """Return True if another attempt may succeed after this error."""
    return classify_error(error).retryable


__all__ = [
    "AnalysisError",
    "ValidationError",
    "InvalidRequest",
    "FileTooLarge",
    "UnsupportedFormat",
    "AuthError",
    "QuotaExceeded",
    "NetworkError",
    "Timeout",
    "NoJSONFound",
    "classify_error",
    "is_retryable",
]
