"""Inference transport beneath the API client.

The transport performs exactly one HTTP exchange with the inference service
and maps protocol failures onto the analysis error taxonomy. Retries,
timeouts and rate limiting are the API client's job.

Request envelope (preserved as sent by the service's REST API)::

    POST {base_url}/models/{model}:generateContent?key={api_key}
    {
      "contents": [{"parts": [
        {"text": "<prompt>"},
        {"inlineData": {"mimeType": "application/pdf", "data": "<base64>"}}
      ]}],
      "generationConfig": {
        "temperature": 0.1, "maxOutputTokens": 8192,
        "responseMimeType": "text/plain"
      }
    }

Response fields read: ``candidates[].content.parts[].text``,
``candidates[].finishReason`` and ``usageMetadata.totalTokenCount``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from paperkit.core.errors import (
    AnalysisError,
    AuthError,
    FileTooLarge,
    InvalidRequest,
    NetworkError,
    QuotaExceeded,
    Timeout,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)


@dataclass
class GenerationConfig:
    """Generation settings sent with each request.

    Attributes:
        temperature: Sampling temperature (0.0-2.0).
        max_output_tokens: Maximum tokens to generate.
        response_mime_type: Requested completion MIME type.
    """

    temperature: float = 0.1
    max_output_tokens: int = 8192
    response_mime_type: str = "text/plain"

    def to_payload(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
            "responseMimeType": self.response_mime_type,
        }


@dataclass
class Completion:
    """Result of one inference call.

    Attributes:
        text: Text of the first candidate (all parts concatenated).
        candidates: Text of every candidate, in service order.
        total_tokens: Total token usage reported by the service.
        finish_reason: Why generation stopped, if reported.
        model: Model that produced the completion.
        raw_response: Decoded response body.
    """

    text: str
    candidates: list[str] = field(default_factory=list)
    total_tokens: int = 0
    finish_reason: str | None = None
    model: str = ""
    raw_response: dict[str, Any] | None = None


class InferenceTransport(ABC):
    """Abstract single-shot inference call.

    Implementations send a prompt plus one inline binary attachment and
    return the completion text. They raise AnalysisError subclasses.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        data: str | None,
        mime_type: str = "application/pdf",
    ) -> Completion:
        """Send one request.

        Args:
            prompt: Prompt text.
            data: Base64 attachment without data-URL prefix, or None for a
                text-only request.
            mime_type: Attachment MIME type.

        Returns:
            Completion with candidate text and token usage.

        Raises:
            AnalysisError: On any transport or service failure.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier used for requests."""

    async def aclose(self) -> None:
        """Release network resources."""


# =============================================================================
# Envelope helpers
# =============================================================================


def build_request_body(
    prompt: str,
    data: str | None,
    mime_type: str,
    config: GenerationConfig,
) -> dict[str, Any]:
    """Build the generateContent request body."""
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if data is not None:
        parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
    return {
        "contents": [{"parts": parts}],
        "generationConfig": config.to_payload(),
    }


def parse_completion(body: dict[str, Any], model: str) -> Completion:
    """Read candidate texts and token usage from a response body.

    Raises:
        NetworkError: If the body has no candidate text.
    """
    candidates: list[str] = []
    finish_reason = None
    for candidate in body.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        candidates.append(text)
        if finish_reason is None:
            finish_reason = candidate.get("finishReason")

    if not candidates or not candidates[0]:
        raise NetworkError(
            "No response from inference service",
            details={"finish_reason": finish_reason},
        )

    usage = body.get("usageMetadata") or {}
    return Completion(
        text=candidates[0],
        candidates=candidates,
        total_tokens=int(usage.get("totalTokenCount") or 0),
        finish_reason=finish_reason,
        model=model,
        raw_response=body,
    )


def error_from_response(response: httpx.Response) -> AnalysisError:
    """Map an error response onto the analysis error taxonomy."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = None
    message = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
    message = message or response.text or f"HTTP {status}"
    details = {"status_code": status}

    if status in (401, 403):
        return AuthError(f"Authentication failed: {message}", details=details)
    if status == 413:
        return FileTooLarge(f"Payload rejected as too large: {message}", details=details)
    if status == 415:
        return UnsupportedFormat(f"Unsupported format: {message}", details=details)
    if status == 429:
        return QuotaExceeded(f"Quota exceeded: {message}", details=details)
    if status == 400:
        if "API_KEY" in message.upper() or "API KEY" in message.upper():
            return AuthError(f"Authentication failed: {message}", details=details)
        return InvalidRequest(f"Invalid request: {message}", details=details)
    return NetworkError(f"Inference service error {status}: {message}", details=details)


# =============================================================================
# Gemini HTTP transport
# =============================================================================


class GeminiTransport(InferenceTransport):
    """Google Gemini generateContent transport over httpx.

    Example:
        >>> transport = GeminiTransport(api_key="AIza...")
        >>> completion = await transport.generate(prompt, pdf_base64)
        >>> completion.text
        '```json\\n{...}\\n```'
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        generation: GenerationConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            api_key: Gemini API key.
            model: Model name.
            base_url: Service root URL.
            generation: Generation settings.
            client: Optional pre-configured httpx client (for tests).

        Raises:
            AuthError: If no API key is provided.
        """
        if not api_key:
            raise AuthError("GEMINI_API_KEY is not configured")
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self.generation = generation or GenerationConfig()
        # Timeouts are enforced by the API client
        self._client = client or httpx.AsyncClient(timeout=None)

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def generate(
        self,
        prompt: str,
        data: str | None,
        mime_type: str = "application/pdf",
    ) -> Completion:
        body = build_request_body(prompt, data, mime_type, self.generation)
        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": self._api_key},
                json=body,
            )
        except httpx.TimeoutException as e:
            raise Timeout(f"Inference request timed out: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Cannot reach inference service: {e}") from e

        if response.status_code != 200:
            error = error_from_response(response)
            logger.debug(f"Inference service returned {response.status_code}: {error}")
            raise error

        try:
            payload = response.json()
        except ValueError as e:
            raise NetworkError("Inference service returned invalid JSON") from e

        return parse_completion(payload, self._model)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "Completion",
    "GenerationConfig",
    "GeminiTransport",
    "InferenceTransport",
    "build_request_body",
    "error_from_response",
    "parse_completion",
]
