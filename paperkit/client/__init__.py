"""Resilient inference client for document analysis.

Example:
    >>> from paperkit.client import APIClient
    >>> from paperkit.schema import AnalysisRequest
    >>>
    >>> async with APIClient() as client:
    ...     analysis = await client.analyze(AnalysisRequest(pdf_base64=data_url))
"""

from .backoff import MAX_BACKOFF_MS, MAX_JITTER_MS, RetryConfig, RetryStrategy
from .health import (
    ClientHealth,
    ClientStatistics,
    HealthStatus,
    assess_health,
    format_health_line,
)
from .lib import APIClient, new_request_id
from .progress import ProgressEvent, ProgressReporter, ProgressSink, ProgressStage
from .transport import (
    Completion,
    GeminiTransport,
    GenerationConfig,
    InferenceTransport,
    build_request_body,
    error_from_response,
    parse_completion,
)

__all__ = [
    # Client
    "APIClient",
    "new_request_id",
    # Transport
    "Completion",
    "GeminiTransport",
    "GenerationConfig",
    "InferenceTransport",
    "build_request_body",
    "error_from_response",
    "parse_completion",
    # Retry
    "MAX_BACKOFF_MS",
    "MAX_JITTER_MS",
    "RetryConfig",
    "RetryStrategy",
    # Progress
    "ProgressEvent",
    "ProgressReporter",
    "ProgressSink",
    "ProgressStage",
    # Health
    "ClientHealth",
    "ClientStatistics",
    "HealthStatus",
    "assess_health",
    "format_health_line",
]
