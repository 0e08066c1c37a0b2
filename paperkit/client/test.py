"""Tests for the API client."""

import asyncio
import dataclasses
import random
import time

import pytest

from paperkit.core.errors import (
    AuthError,
    FileTooLarge,
    NetworkError,
    QuotaExceeded,
    Timeout,
    UnsupportedFormat,
    ValidationError,
)
from paperkit.schema import AnalysisRequest

from .backoff import RetryConfig, RetryStrategy
from .conftest import ScriptedTransport
from .health import HealthStatus
from .lib import APIClient, new_request_id
from .progress import ProgressStage


def _client(config, transport=None, **overrides) -> APIClient:
    return APIClient(dataclasses.replace(config, **overrides), transport=transport)


# =============================================================================
# Request validation
# =============================================================================


class TestRequestValidation:
    """Requests are rejected before any network call."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_payload(self, fast_config, scripted_transport):
        """A missing payload raises ValidationError."""
        client = _client(fast_config, scripted_transport)

        with pytest.raises(ValidationError):
            await client.analyze(AnalysisRequest(pdf_base64=""))

        assert scripted_transport.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wrong_data_url(self, fast_config, scripted_transport):
        """Non-PDF data URLs raise UnsupportedFormat."""
        client = _client(fast_config, scripted_transport)

        with pytest.raises(UnsupportedFormat):
            await client.analyze(AnalysisRequest(pdf_base64="data:image/png;base64,AA=="))

        assert scripted_transport.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_base64(self, fast_config, scripted_transport):
        """Payloads with non-base64 characters are rejected."""
        client = _client(fast_config, scripted_transport)

        with pytest.raises(UnsupportedFormat):
            await client.analyze(
                AnalysisRequest(pdf_base64="data:application/pdf;base64,not base64!")
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_too_large_makes_no_attempt(self, fast_config, scripted_transport):
        """Oversized payloads fail with FileTooLarge and zero network attempts."""
        client = _client(fast_config, scripted_transport, enable_fallback=True)
        payload = "A" * 4000  # ~3000 bytes decoded, limit is 1024

        with pytest.raises(FileTooLarge) as exc_info:
            await client.analyze(
                AnalysisRequest(pdf_base64=f"data:application/pdf;base64,{payload}")
            )

        assert scripted_transport.calls == []
        assert exc_info.value.retryable is False
        assert any("Split" in s for s in exc_info.value.suggestions)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_validation_failure_does_not_degrade_health(
        self, fast_config, scripted_transport
    ):
        """Caller mistakes do not count as consecutive service errors."""
        client = _client(fast_config, scripted_transport)

        with pytest.raises(ValidationError):
            await client.analyze(AnalysisRequest(pdf_base64=""))

        assert client.statistics().consecutive_errors == 0
        assert client.statistics().failed_requests == 1


# =============================================================================
# Analysis and retries
# =============================================================================


class TestAnalyze:
    """Tests for the analyze happy path and retry behaviour."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, fast_config, scripted_transport, analysis_request):
        """A fenced JSON completion becomes a successful analysis."""
        client = _client(fast_config, scripted_transport)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is True
        assert analysis.extracted_content.title == "Math Quiz"
        assert analysis.extracted_questions[0].options == ["3", "4"]
        assert analysis.processing_info.attempts == 1
        assert analysis.processing_info.tokens_used == 42
        assert analysis.processing_info.model == "mock-gemini"
        assert analysis.processing_info.confidence == pytest.approx(0.9)
        assert analysis.processing_info.request_id.startswith("req_")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sends_payload_without_prefix(
        self, fast_config, scripted_transport, analysis_request
    ):
        """The transport receives raw base64 and a quiz prompt."""
        client = _client(fast_config, scripted_transport)

        await client.analyze(analysis_request)

        call = scripted_transport.calls[0]
        assert call["data"] == analysis_request.payload
        assert call["mime_type"] == "application/pdf"
        assert "QUIZ:" in call["prompt"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, fast_config, analysis_request):
        """Transient errors are retried until success."""
        transport = ScriptedTransport(
            [NetworkError("boom"), NetworkError("boom"), ScriptedTransport.DEFAULT_COMPLETION]
        )
        client = _client(fast_config, transport)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is True
        assert len(transport.calls) == 3
        assert analysis.processing_info.attempts == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exactly_max_retries_attempts(self, fast_config, analysis_request):
        """Three transient failures with max_retries=3 fail after 3 attempts."""
        transport = ScriptedTransport([NetworkError("unavailable")])
        client = _client(fast_config, transport, enable_fallback=False)

        with pytest.raises(NetworkError):
            await client.analyze(analysis_request)

        assert len(transport.calls) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_attempt_falls_back(self, fast_config, analysis_request):
        """max_retries=1 makes one attempt and still uses the fallback."""
        transport = ScriptedTransport([NetworkError("unavailable")])
        client = _client(fast_config, transport, max_retries=1)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is False
        assert len(transport.calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retry_delays_share_one_jitter(self, fast_config, analysis_request):
        """Backoff delays within one request never decrease."""
        transport = ScriptedTransport([NetworkError("flaky")])
        retry = RetryStrategy(
            RetryConfig(max_attempts=4, base_delay_ms=1, jitter_ms=20),
            rng=random.Random(11),
        )
        client = APIClient(fast_config, transport=transport, retry=retry)
        events = []

        await client.analyze(analysis_request, on_progress=events.append)
        await client.flush_progress()

        delays = [e.delay_ms for e in events if e.stage == ProgressStage.WAITING_RETRY]
        assert len(delays) == 3
        assert delays == sorted(delays)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_exceptions_are_retried(self, fast_config, analysis_request):
        """Arbitrary exceptions are classified as retryable network errors."""
        transport = ScriptedTransport(
            [ConnectionResetError("reset"), ScriptedTransport.DEFAULT_COMPLETION]
        )
        client = _client(fast_config, transport)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is True
        assert len(transport.calls) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AuthError("bad key"), QuotaExceeded("quota"), FileTooLarge("413")],
    )
    async def test_non_retryable_aborts(self, fast_config, analysis_request, error):
        """Non-retryable errors stop after one attempt."""
        transport = ScriptedTransport([error])
        client = _client(fast_config, transport, enable_fallback=False)

        with pytest.raises(type(error)):
            await client.analyze(analysis_request)

        assert len(transport.calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_marker_in_message_is_non_retryable(self, fast_config, analysis_request):
        """Plain exceptions mentioning QUOTA_EXCEEDED are not retried."""
        transport = ScriptedTransport([RuntimeError("QUOTA_EXCEEDED for project")])
        client = _client(fast_config, transport, enable_fallback=False)

        with pytest.raises(QuotaExceeded):
            await client.analyze(analysis_request)

        assert len(transport.calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self, fast_config, analysis_request):
        """Slow attempts time out and are retried."""
        transport = ScriptedTransport([0.5])
        client = _client(
            fast_config, transport, timeout_ms=20, max_retries=2, enable_fallback=False
        )

        with pytest.raises(Timeout):
            await client.analyze(analysis_request)

        assert len(transport.calls) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_after_exhaustion(self, fast_config, analysis_request):
        """With fallback enabled a degraded analysis is returned."""
        transport = ScriptedTransport([NetworkError("down")])
        client = _client(fast_config, transport)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is False
        assert analysis.error.code == "NETWORK_ERROR"
        assert analysis.warnings
        assert analysis.suggestions
        assert analysis.processing_info.attempts == 3
        assert analysis.extracted_content.title == "Document Analysis Failed"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_completion_without_json(self, fast_config, analysis_request):
        """A completion without JSON yields a degraded text-only analysis."""
        transport = ScriptedTransport(
            ["I could not produce JSON.\nThe document covers linear equations."]
        )
        client = _client(fast_config, transport)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is False
        assert analysis.error.code == "NO_JSON_FOUND"
        assert "linear equations" in analysis.document_structure.sections[0].content
        assert client.statistics().consecutive_errors == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_api_key_falls_back(self, fast_config, analysis_request):
        """Without a transport or key, the request fails with AuthError."""
        client = _client(fast_config, None, api_key=None)

        analysis = await client.analyze(analysis_request)

        assert analysis.success is False
        assert analysis.error.code == "INVALID_API_KEY"
        assert not client.initialized


# =============================================================================
# Rate limiting
# =============================================================================


class TestRateLimit:
    """Consecutive requests are spaced by the configured delay."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_back_to_back_calls(self, fast_config, analysis_request):
        """Two sequential calls observe a gap of at least the delay."""
        transport = ScriptedTransport()
        client = _client(fast_config, transport, rate_limit_delay_ms=100)

        started = time.monotonic()
        await client.analyze(analysis_request)
        await client.analyze(analysis_request)

        assert transport.calls[1]["at"] - started >= 0.1
        assert transport.calls[1]["at"] - transport.calls[0]["at"] >= 0.09

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_calls(self, fast_config, analysis_request):
        """Concurrent calls are serialized on the shared timestamp."""
        transport = ScriptedTransport()
        client = _client(fast_config, transport, rate_limit_delay_ms=80)

        started = time.monotonic()
        await asyncio.gather(
            client.analyze(analysis_request),
            client.analyze(analysis_request),
            client.analyze(analysis_request),
        )

        times = sorted(call["at"] for call in transport.calls)
        assert times[-1] - started >= 0.16

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_clears_timestamp(self, fast_config, analysis_request):
        """After reset the next call does not wait."""
        transport = ScriptedTransport()
        client = _client(fast_config, transport, rate_limit_delay_ms=5000)

        await client.analyze(analysis_request)
        client.reset()
        await asyncio.wait_for(client.analyze(analysis_request), timeout=1.0)


# =============================================================================
# Progress notifications
# =============================================================================


class TestProgress:
    """Progress events are delivered in stage order."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stage_order_with_retry(self, fast_config, analysis_request):
        """A retried request reports every checkpoint in order."""
        transport = ScriptedTransport(
            [NetworkError("flaky"), ScriptedTransport.DEFAULT_COMPLETION]
        )
        client = _client(fast_config, transport)
        events = []

        await client.analyze(analysis_request, on_progress=events.append)
        await client.flush_progress()

        assert [e.stage for e in events] == [
            ProgressStage.VALIDATED,
            ProgressStage.RATE_LIMITED,
            ProgressStage.ATTEMPT_STARTED,
            ProgressStage.WAITING_RETRY,
            ProgressStage.ATTEMPT_STARTED,
            ProgressStage.SUCCEEDED,
        ]
        assert [e.progress for e in events] == [10, 20, 20, 40, 40, 100]
        assert events[2].attempt == 1 and events[2].max_attempts == 3
        assert events[3].delay_ms is not None
        assert len({e.request_id for e in events}) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_stage(self, fast_config, analysis_request):
        """Exhausted requests end with a FAILED event."""
        transport = ScriptedTransport([AuthError("denied")])
        client = _client(fast_config, transport)
        events = []

        await client.analyze(analysis_request, on_progress=events.append)
        await client.flush_progress()

        assert events[-1].stage == ProgressStage.FAILED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_sink(self, fast_config, scripted_transport, analysis_request):
        """Coroutine sinks are awaited in order."""
        client = _client(fast_config, scripted_transport)
        stages = []

        async def sink(event):
            await asyncio.sleep(0)
            stages.append(event.stage)

        await client.analyze(analysis_request, on_progress=sink)
        await client.flush_progress()

        assert stages[0] == ProgressStage.VALIDATED
        assert stages[-1] == ProgressStage.SUCCEEDED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_sink_does_not_break_request(
        self, fast_config, scripted_transport, analysis_request
    ):
        """Sink exceptions never reach the caller."""
        client = _client(fast_config, scripted_transport)

        def sink(event):
            raise RuntimeError("sink down")

        analysis = await client.analyze(analysis_request, on_progress=sink)
        await client.flush_progress()

        assert analysis.success is True


# =============================================================================
# Cancellation
# =============================================================================


class TestCancellation:
    """Cancelling a request abandons waits and further attempts."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancel_during_call(self, fast_config, analysis_request):
        """Cancelling an in-flight call propagates CancelledError."""
        transport = ScriptedTransport([5.0])
        client = _client(fast_config, transport, timeout_ms=10000)

        task = asyncio.create_task(client.analyze(analysis_request))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(transport.calls) == 1
        assert client.statistics().in_flight == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self, fast_config, analysis_request):
        """Cancelling during a backoff wait makes no further attempts."""
        transport = ScriptedTransport([NetworkError("down")])
        client = _client(fast_config, transport, retry_delay_ms=10000)

        task = asyncio.create_task(client.analyze(analysis_request))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(transport.calls) == 1


# =============================================================================
# Health and diagnostics
# =============================================================================


class TestHealth:
    """Tests for health, statistics and connection checks."""

    @pytest.mark.unit
    def test_uninitialized_is_unhealthy(self, fast_config):
        """No transport means unhealthy."""
        client = _client(fast_config, None)
        assert client.health().status == HealthStatus.UNHEALTHY

    @pytest.mark.unit
    def test_initialized_is_healthy(self, fast_config, scripted_transport):
        """A fresh client with a transport is healthy."""
        client = _client(fast_config, scripted_transport)
        health = client.health()
        assert health.status == HealthStatus.HEALTHY
        assert health.model == "mock-gemini"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_errors_degrade_then_fail_health(self, fast_config, analysis_request):
        """One failure degrades health, three make it unhealthy."""
        transport = ScriptedTransport([AuthError("denied")])
        client = _client(fast_config, transport)

        await client.analyze(analysis_request)
        assert client.health().status == HealthStatus.DEGRADED

        await client.analyze(analysis_request)
        await client.analyze(analysis_request)
        assert client.health().status == HealthStatus.UNHEALTHY

        client.reset()
        assert client.health().status == HealthStatus.HEALTHY

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_statistics(self, fast_config, scripted_transport, analysis_request):
        """Counters track requests and successes."""
        client = _client(fast_config, scripted_transport)

        await client.analyze(analysis_request)
        stats = client.statistics()

        assert stats.total_requests == 1
        assert stats.successful_requests == 1
        assert stats.in_flight == 0
        assert stats.to_dict()["success_rate"] == 1.0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_success(self, fast_config, scripted_transport):
        """test_connection sends a text-only request."""
        client = _client(fast_config, scripted_transport)

        result = await client.test_connection()

        assert result["success"] is True
        assert result["model"] == "mock-gemini"
        assert scripted_transport.calls[0]["data"] is None
        assert result["health"]["status"] == "healthy"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_failure(self, fast_config):
        """Failures are reported with code and suggestions."""
        client = _client(fast_config, ScriptedTransport([AuthError("bad key")]))

        result = await client.test_connection()

        assert result["success"] is False
        assert result["code"] == "INVALID_API_KEY"
        assert result["suggestions"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, fast_config, scripted_transport):
        """Leaving the context closes the transport."""
        async with _client(fast_config, scripted_transport):
            pass
        assert scripted_transport.closed is True


@pytest.mark.unit
def test_request_id_format():
    """Request ids carry a millisecond timestamp and a random suffix."""
    request_id = new_request_id()
    prefix, millis, suffix = request_id.split("_")
    assert prefix == "req"
    assert millis.isdigit()
    assert len(suffix) == 9
