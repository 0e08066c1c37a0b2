"""Tests for the end-to-end pipeline."""

import asyncio
import base64
import dataclasses

import pytest

from paperkit.client.conftest import ScriptedTransport
from paperkit.config import ClientConfig
from paperkit.core.errors import FileTooLarge, NetworkError
from paperkit.layout import FontSizes, PageConfig, PageSize
from paperkit.schema import AnalysisRequest

from .lib import create_context, run_pipeline


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        api_key="AIza-test",
        retry_delay_ms=1,
        timeout_ms=1000,
        rate_limit_delay_ms=0,
        max_upload_bytes=1024,
    )


def _context(client_config, transport, **overrides):
    return create_context(
        client_config=dataclasses.replace(client_config, **overrides),
        page_config=PageConfig(),
        transport=transport,
        load_env=False,
    )


class TestRunPipeline:
    """Tests for run_pipeline."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, client_config, analysis_request):
        """A successful analysis yields a valid, bound template."""
        transport = ScriptedTransport()
        async with _context(client_config, transport) as context:
            result = await run_pipeline(context, analysis_request)

        assert result.success
        assert result.template.find("documentTitle").content == "Math Quiz"
        assert result.template.find("question_0_mc").options == ["3", "4"]
        assert result.report.valid
        assert result.report.by_rule("overlap") == []
        assert result.layout.total_fields == len(result.bindings)
        assert transport.closed

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_still_produces_template(
        self, client_config, analysis_request
    ):
        """Exhausted retries produce a degraded analysis and its template."""
        transport = ScriptedTransport([NetworkError("Service unavailable")])
        context = _context(client_config, transport)

        result = await run_pipeline(context, analysis_request)

        assert not result.success
        assert len(transport.calls) == 3
        assert result.analysis.error.code == "NETWORK_ERROR"
        title = result.template.find("documentTitle")
        assert title.content == "Document Analysis Failed"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_disabled_raises(self, client_config, analysis_request):
        transport = ScriptedTransport([NetworkError("Service unavailable")])
        context = _context(client_config, transport, enable_fallback=False)

        with pytest.raises(NetworkError):
            await run_pipeline(context, analysis_request)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_request_raises(self, client_config):
        """Local validation errors are never turned into fallbacks."""
        transport = ScriptedTransport()
        context = _context(client_config, transport)
        payload = base64.b64encode(b"%PDF" + b"0" * 4096).decode()
        request = AnalysisRequest(pdf_base64=f"data:application/pdf;base64,{payload}")

        with pytest.raises(FileTooLarge):
            await run_pipeline(context, request)
        assert transport.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_auto_fix(self, client_config, analysis_request):
        """Fixable issues are repaired and the template re-validated."""
        context = create_context(
            client_config=client_config,
            page_config=PageConfig(fonts=FontSizes(body=8, question=8)),
            transport=ScriptedTransport(),
            load_env=False,
        )

        plain = await run_pipeline(context, analysis_request)
        fixed = await run_pipeline(context, analysis_request, auto_fix=True)

        assert plain.report.by_rule("small_font")
        assert plain.fixed == []
        assert fixed.fixed
        assert fixed.report.by_rule("small_font") == []
        assert fixed.report.score > plain.report.score

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_progress_is_forwarded(self, client_config, analysis_request):
        events = []
        context = _context(client_config, ScriptedTransport())

        await run_pipeline(context, analysis_request, on_progress=events.append)
        await context.client.flush_progress()

        assert events[0].stage == "validated"
        assert events[-1].stage == "succeeded"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancellation_returns_nothing(self, client_config, analysis_request):
        transport = ScriptedTransport([5.0])
        context = _context(client_config, transport, timeout_ms=10000)

        task = asyncio.create_task(run_pipeline(context, analysis_request))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_to_dict(self, client_config, analysis_request):
        context = _context(client_config, ScriptedTransport())
        data = (await run_pipeline(context, analysis_request)).to_dict()

        assert data["success"] is True
        assert data["template"]["pages"][0]["elements"][0]["id"] == "documentTitle"
        assert data["data"]["extractedContent"]["title"] == "Math Quiz"
        assert data["bindings"][0]["targetElementId"] == "documentTitle"


class TestCreateContext:
    """Tests for create_context."""

    @pytest.mark.unit
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-env")
        monkeypatch.setenv("PAPERKIT_MAX_RETRIES", "5")
        monkeypatch.setenv("PAPERKIT_PAGE_SIZE", "LETTER")

        context = create_context(load_env=False)

        assert context.client.config.api_key == "AIza-env"
        assert context.client.config.max_retries == 5
        assert context.page_config.size == PageSize.LETTER
        assert context.synthesizer.page_config is context.page_config
        assert not context.client.initialized


@pytest.mark.integration
@pytest.mark.asyncio
async def test_real_service(pdf_data_url):
    """Round trip against the live inference service."""
    async with create_context() as context:
        result = await run_pipeline(
            context, AnalysisRequest(pdf_base64=pdf_data_url), auto_fix=True
        )
    assert result.template.find("documentTitle") is not None
    assert 0 <= result.report.score <= 100
