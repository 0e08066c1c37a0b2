"""Unit tests for the Gemini HTTP transport."""

import json

import httpx
import pytest

from paperkit.core.errors import (
    AuthError,
    FileTooLarge,
    InvalidRequest,
    NetworkError,
    QuotaExceeded,
    Timeout,
    UnsupportedFormat,
)

from .transport import (
    GeminiTransport,
    GenerationConfig,
    build_request_body,
    parse_completion,
)

SUCCESS_BODY = {
    "candidates": [
        {
            "content": {"parts": [{"text": "```json\n"}, {"text": '{"a": 1}\n```'}]},
            "finishReason": "STOP",
        },
        {"content": {"parts": [{"text": "second"}]}},
    ],
    "usageMetadata": {"totalTokenCount": 321},
}


def _transport(handler) -> GeminiTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiTransport(
        "AIza-test",
        model="gemini-1.5-pro",
        base_url="https://example.test/v1beta",
        client=client,
    )


class TestEnvelope:
    """Tests for request and response envelope helpers."""

    @pytest.mark.unit
    def test_request_body_shape(self):
        """Body matches the generateContent envelope."""
        body = build_request_body(
            "Analyze", "QUJD", "application/pdf", GenerationConfig(0.2, 1024)
        )
        assert body == {
            "contents": [
                {
                    "parts": [
                        {"text": "Analyze"},
                        {"inlineData": {"mimeType": "application/pdf", "data": "QUJD"}},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": 0.2,
                "maxOutputTokens": 1024,
                "responseMimeType": "text/plain",
            },
        }

    @pytest.mark.unit
    def test_text_only_body(self):
        """Without data only the text part is sent."""
        body = build_request_body("ping", None, "application/pdf", GenerationConfig())
        assert body["contents"][0]["parts"] == [{"text": "ping"}]

    @pytest.mark.unit
    def test_parse_completion(self):
        """Parts are concatenated and token usage is read."""
        completion = parse_completion(SUCCESS_BODY, "gemini-2.0-flash")
        assert completion.text == '```json\n{"a": 1}\n```'
        assert completion.candidates[1] == "second"
        assert completion.total_tokens == 321
        assert completion.finish_reason == "STOP"

    @pytest.mark.unit
    def test_parse_empty_completion(self):
        """A body without candidates is a retryable error."""
        with pytest.raises(NetworkError):
            parse_completion({"candidates": []}, "m")


class TestGeminiTransport:
    """Tests for GeminiTransport over httpx.MockTransport."""

    @pytest.mark.unit
    def test_requires_api_key(self):
        """Missing keys are rejected at construction."""
        with pytest.raises(AuthError):
            GeminiTransport(None)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_posts_to_model_endpoint(self):
        """Requests go to models/{model}:generateContent with the key."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=SUCCESS_BODY)

        transport = _transport(handler)
        completion = await transport.generate("prompt", "QUJD")
        await transport.aclose()

        assert seen["url"].path == "/v1beta/models/gemini-1.5-pro:generateContent"
        assert seen["url"].params["key"] == "AIza-test"
        assert seen["body"]["contents"][0]["parts"][1]["inlineData"]["data"] == "QUJD"
        assert completion.model == "gemini-1.5-pro"
        assert completion.total_tokens == 321

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_class",
        [
            (400, InvalidRequest),
            (401, AuthError),
            (403, AuthError),
            (413, FileTooLarge),
            (415, UnsupportedFormat),
            (429, QuotaExceeded),
            (500, NetworkError),
            (503, NetworkError),
        ],
    )
    async def test_status_mapping(self, status, error_class):
        """HTTP errors map onto the error taxonomy."""

        def handler(request):
            return httpx.Response(status, json={"error": {"message": "nope"}})

        with pytest.raises(error_class) as exc_info:
            await _transport(handler).generate("prompt", "QUJD")
        assert exc_info.value.details["status_code"] == status

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_key_on_400(self):
        """A 400 that mentions the API key is an auth error."""

        def handler(request):
            return httpx.Response(
                400, json={"error": {"message": "API key not valid. API_KEY_INVALID"}}
            )

        with pytest.raises(AuthError):
            await _transport(handler).generate("prompt", "QUJD")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_mapping(self):
        """httpx timeouts become Timeout."""

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(Timeout):
            await _transport(handler).generate("prompt", "QUJD")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_error_mapping(self):
        """Connection failures become NetworkError."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await _transport(handler).generate("prompt", "QUJD")
        assert exc_info.value.retryable is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """A 200 with a non-JSON body is a retryable error."""

        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(NetworkError):
            await _transport(handler).generate("prompt", "QUJD")
