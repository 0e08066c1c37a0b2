"""Resilient API client for document analysis.

``APIClient.analyze`` turns one AnalysisRequest into a DocumentAnalysis:

1. Validate the request locally (no network call on failure)
2. Wait out the minimum delay since the previous request
3. Call the inference transport with a timeout, retrying transient errors
   with exponential backoff and jitter
4. Extract and sanitize the completion

Only the network stage can fail a request, and only after retries are
exhausted. With fallback enabled the failure becomes a degraded analysis.
"""

import asyncio
import dataclasses
import logging
import re
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from paperkit.config import ClientConfig
from paperkit.core.errors import (
    AnalysisError,
    FileTooLarge,
    NoJSONFound,
    Timeout,
    UnsupportedFormat,
    ValidationError,
    classify_error,
)
from paperkit.extract import parse_json
from paperkit.prompt import CONNECTION_TEST_PROMPT, PromptBuilder
from paperkit.sanitize import (
    ResponseSanitizer,
    SanitizeContext,
    degraded_analysis,
    fallback_analysis,
)
from paperkit.schema import (
    PDF_DATA_URL_PREFIX,
    AnalysisRequest,
    DocumentAnalysis,
    ProcessingInfo,
)

from .backoff import RetryConfig, RetryStrategy
from .health import ClientHealth, ClientStatistics, assess_health
from .progress import ProgressReporter, ProgressSink, ProgressStage
from .transport import Completion, GeminiTransport, GenerationConfig, InferenceTransport

logger = logging.getLogger(__name__)

_BASE64 = re.compile(r"[A-Za-z0-9+/]*={0,2}")


def new_request_id() -> str:
    """Generate a request id of the form ``req_<epoch ms>_<9 chars>``."""
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class APIClient:
    """Analyzes PDF documents through an inference service.

    One client is shared by all callers; concurrent ``analyze`` calls only
    share the rate-limit timestamp, which is guarded by a lock.

    Example:
        >>> async with APIClient(ClientConfig.from_environment()) as client:
        ...     analysis = await client.analyze(
        ...         AnalysisRequest(pdf_base64=data_url, document_type="quiz")
        ...     )
        >>> analysis.success
        True
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: InferenceTransport | None = None,
        prompt_builder: PromptBuilder | None = None,
        sanitizer: ResponseSanitizer | None = None,
        retry: RetryStrategy | None = None,
    ):
        """Initialize the client.

        Args:
            config: Client settings. Read from the environment when None.
            transport: Inference transport. A GeminiTransport is created on
                first use when None.
            prompt_builder: Builds analysis prompts.
            sanitizer: Normalizes extracted JSON.
            retry: Backoff policy. Derived from ``config`` when None.
        """
        self.config = config or ClientConfig.from_environment()
        self._transport = transport
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._sanitizer = sanitizer or ResponseSanitizer()
        self._retry = retry or RetryStrategy(
            RetryConfig(
                max_attempts=self.config.max_retries,
                base_delay_ms=self.config.retry_delay_ms,
            )
        )
        self._rate_lock = asyncio.Lock()
        self._last_request_at: float | None = None
        self._stats = ClientStatistics()
        self._pending_progress: set[asyncio.Task] = set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def initialized(self) -> bool:
        return self._transport is not None

    @property
    def model_name(self) -> str | None:
        return self._transport.model_name if self._transport else None

    def initialize(self) -> InferenceTransport:
        """Create the default transport if none was supplied.

        Raises:
            AuthError: If no API key is configured.
        """
        if self._transport is None:
            self._transport = GeminiTransport(
                self.config.api_key,
                model=self.config.model,
                base_url=self.config.base_url,
                generation=GenerationConfig(
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_tokens,
                ),
            )
            logger.info(f"Initialized inference transport for {self.config.model}")
        return self._transport

    async def flush_progress(self) -> None:
        """Wait until queued progress events have been delivered."""
        if self._pending_progress:
            await asyncio.gather(*list(self._pending_progress))

    async def aclose(self) -> None:
        await self.flush_progress()
        if self._transport is not None:
            await self._transport.aclose()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # Request validation
    # =========================================================================

    def validate_request(self, request: AnalysisRequest) -> None:
        """Check a request before any network activity.

        Raises:
            ValidationError: If the payload is missing or empty.
            UnsupportedFormat: If the payload is not a base64 PDF data URL.
            FileTooLarge: If the decoded payload exceeds the size limit.
        """
        if request is None or not request.pdf_base64:
            raise ValidationError("PDF data is required")

        if not request.pdf_base64.startswith(PDF_DATA_URL_PREFIX):
            raise UnsupportedFormat(
                "Invalid PDF format. Expected a base64 encoded PDF data URL"
            )

        payload = request.payload
        if not payload:
            raise ValidationError("PDF payload is empty")

        size = request.estimated_size
        limit = self.config.max_upload_bytes
        if size > limit:
            raise FileTooLarge(
                f"File too large ({size / 1024 / 1024:.1f}MB). "
                f"Maximum size is {limit / 1024 / 1024:.0f}MB",
                suggestions=[
                    f"Reduce PDF file size to under {limit / 1024 / 1024:.0f}MB",
                    "Split large documents into smaller parts",
                ],
                details={"size_bytes": size, "limit_bytes": limit},
            )

        if not _BASE64.fullmatch(payload):
            raise UnsupportedFormat("PDF payload is not valid base64")

    # =========================================================================
    # Analysis
    # =========================================================================

    async def analyze(
        self,
        request: AnalysisRequest,
        *,
        on_progress: ProgressSink | None = None,
    ) -> DocumentAnalysis:
        """Analyze one document.

        Args:
            request: Document and analysis hints.
            on_progress: Optional sink receiving ProgressEvents in order.

        Returns:
            The sanitized analysis. ``success`` is False for degraded results.

        Raises:
            ValidationError: If the request is malformed (never retried).
            AnalysisError: If the network stage fails and fallback is disabled.
            asyncio.CancelledError: If the caller cancels the request.
        """
        request_id = new_request_id()
        reporter = ProgressReporter(request_id, on_progress)
        started = time.monotonic()
        self._stats.total_requests += 1
        self._stats.in_flight += 1
        self._stats.last_request_at = datetime.now(UTC)

        try:
            try:
                self.validate_request(request)
            except ValidationError as error:
                self._stats.failed_requests += 1
                self._stats.last_error = error.message
                reporter.emit(ProgressStage.FAILED, 100, error.message)
                raise

            logger.info(f"Analyzing {request.document_type} document ({request_id})")
            reporter.emit(ProgressStage.VALIDATED, 10, "Request validated")
            await self._wait_for_rate_limit()
            reporter.emit(ProgressStage.RATE_LIMITED, 20, "Sending document")

            context = SanitizeContext.from_request(request)
            try:
                completion, attempts = await self._generate_with_retries(
                    request, request_id, reporter
                )
            except AnalysisError as error:
                return self._handle_failure(error, context, request_id, started, reporter)

            analysis = self._build_analysis(
                completion, context, request_id, attempts, started
            )
            self._stats.consecutive_errors = 0
            if analysis.success:
                self._stats.successful_requests += 1
            else:
                self._stats.failed_requests += 1
            reporter.emit(ProgressStage.SUCCEEDED, 100, "Analysis complete")
            logger.info(
                f"Analysis {request_id} finished in {attempts} attempt(s), "
                f"{len(analysis.extracted_questions)} question(s)"
            )
            return analysis
        finally:
            self._stats.in_flight -= 1
            self._stats.total_processing_ms += _elapsed_ms(started)
            task = reporter.close()
            if task is not None:
                self._pending_progress.add(task)
                task.add_done_callback(self._pending_progress.discard)

    async def _wait_for_rate_limit(self) -> None:
        """Block until the minimum inter-request delay has passed."""
        delay = self.config.rate_limit_delay_ms / 1000
        async with self._rate_lock:
            if self._last_request_at is not None:
                while (
                    remaining := delay - (time.monotonic() - self._last_request_at)
                ) > 0:
                    logger.debug(f"Rate limiting: waiting {remaining * 1000:.0f}ms")
                    await asyncio.sleep(remaining)
            self._last_request_at = time.monotonic()

    async def _generate_with_retries(
        self,
        request: AnalysisRequest,
        request_id: str,
        reporter: ProgressReporter,
    ) -> tuple[Completion, int]:
        """Call the transport until success or a terminal error.

        Raises:
            AnalysisError: The last error, with ``details["attempts"]`` set.
        """
        max_attempts = self._retry.config.max_attempts
        prompt = self._prompt_builder.build(request.document_type, request.language)
        timeout = self.config.timeout_ms / 1000
        jitter = self._retry.draw_jitter()

        for attempt in range(1, max_attempts + 1):
            reporter.emit(
                ProgressStage.ATTEMPT_STARTED,
                min(20 + (attempt - 1) * 20, 90),
                f"Analyzing document (attempt {attempt}/{max_attempts})",
                attempt=attempt,
                max_attempts=max_attempts,
            )
            try:
                transport = self.initialize()
                completion = await asyncio.wait_for(
                    transport.generate(prompt, request.payload, "application/pdf"),
                    timeout=timeout,
                )
                return completion, attempt
            except asyncio.TimeoutError:
                error = Timeout(f"Request timed out after {self.config.timeout_ms}ms")
            except Exception as e:
                error = classify_error(e)

            error.details["attempts"] = attempt
            if not self._retry.should_retry(error, attempt):
                raise error

            delay_ms = self._retry.get_backoff_ms(attempt, jitter=jitter)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} for {request_id} failed: "
                f"{error.message}. Retrying in {delay_ms:.0f}ms"
            )
            reporter.emit(
                ProgressStage.WAITING_RETRY,
                min(20 + attempt * 20, 90),
                f"Retrying in {delay_ms / 1000:.1f}s",
                attempt=attempt,
                max_attempts=max_attempts,
                delay_ms=delay_ms,
            )
            await asyncio.sleep(delay_ms / 1000)

        raise AssertionError("retry loop exited without result")  # pragma: no cover

    def _build_analysis(
        self,
        completion: Completion,
        context: SanitizeContext,
        request_id: str,
        attempts: int,
        started: float,
    ) -> DocumentAnalysis:
        info = ProcessingInfo(
            model=completion.model or self.model_name or self.config.model,
            tokens_used=completion.total_tokens,
            processing_time_ms=_elapsed_ms(started),
            attempts=attempts,
            request_id=request_id,
        )
        try:
            parsed, _ = parse_json(completion.text)
        except NoJSONFound as error:
            logger.warning(f"No JSON in completion for {request_id}; salvaging text")
            return degraded_analysis(completion.text, context, info, error)

        analysis = self._sanitizer.sanitize(parsed, context)
        confidence = analysis.document_structure.confidence
        return analysis.model_copy(
            update={"processing_info": info.model_copy(update={"confidence": confidence})}
        )

    def _handle_failure(
        self,
        error: AnalysisError,
        context: SanitizeContext,
        request_id: str,
        started: float,
        reporter: ProgressReporter,
    ) -> DocumentAnalysis:
        self._stats.failed_requests += 1
        self._stats.consecutive_errors += 1
        self._stats.last_error = error.message
        reporter.emit(ProgressStage.FAILED, 100, error.message)

        if not self.config.enable_fallback:
            logger.error(f"Analysis {request_id} failed: {error.code} {error.message}")
            raise error

        logger.warning(
            f"Analysis {request_id} failed ({error.code}); returning fallback result"
        )
        info = ProcessingInfo(
            model=self.model_name or self.config.model,
            processing_time_ms=_elapsed_ms(started),
            confidence=0.0,
            attempts=error.details.get("attempts", 0),
            request_id=request_id,
        )
        return fallback_analysis(error, context, info)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def health(self) -> ClientHealth:
        """Current health derived from initialization, errors and backlog."""
        return ClientHealth(
            status=assess_health(
                self.initialized, self._stats.consecutive_errors, self._stats.in_flight
            ),
            initialized=self.initialized,
            consecutive_errors=self._stats.consecutive_errors,
            in_flight=self._stats.in_flight,
            checked_at=datetime.now(UTC),
            model=self.model_name,
            details={"last_error": self._stats.last_error},
        )

    def statistics(self) -> ClientStatistics:
        """Snapshot of request counters."""
        return dataclasses.replace(self._stats)

    def reset(self) -> None:
        """Clear counters and the rate-limit timestamp."""
        self._stats = ClientStatistics(in_flight=self._stats.in_flight)
        self._last_request_at = None
        logger.info("API client statistics reset")

    async def test_connection(self) -> dict[str, Any]:
        """Send a minimal text-only request and report the outcome.

        Returns:
            Dict with ``success``, ``model``, ``response_time_ms``, ``error``
            and the current ``health``.
        """
        started = time.monotonic()
        result: dict[str, Any] = {"success": False, "model": self.config.model}
        try:
            transport = self.initialize()
            result["model"] = transport.model_name
            completion = await asyncio.wait_for(
                transport.generate(CONNECTION_TEST_PROMPT, None),
                timeout=self.config.timeout_ms / 1000,
            )
            result["success"] = bool(completion.text)
            result["tokens_used"] = completion.total_tokens
        except asyncio.TimeoutError:
            result["error"] = f"Connection test timed out after {self.config.timeout_ms}ms"
        except Exception as e:
            error = classify_error(e)
            result["error"] = error.message
            result["code"] = error.code
            result["suggestions"] = error.suggestions
        result["response_time_ms"] = _elapsed_ms(started)
        result["health"] = self.health().to_dict()
        if not result["success"]:
            logger.warning(f"Connection test failed: {result.get('error')}")
        return result


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


__all__ = ["APIClient", "new_request_id"]
