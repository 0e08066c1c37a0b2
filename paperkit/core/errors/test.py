"""Tests for the analysis error taxonomy."""

import pytest

from .lib import (
    AnalysisError,
    AuthError,
    FileTooLarge,
    InvalidRequest,
    NetworkError,
    NoJSONFound,
    QuotaExceeded,
    Timeout,
    UnsupportedFormat,
    ValidationError,
    classify_error,
    is_retryable,
)


class TestTaxonomy:
    """Tests for error classes."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error_class,retryable",
        [
            (ValidationError, False),
            (InvalidRequest, False),
            (FileTooLarge, False),
            (UnsupportedFormat, False),
            (AuthError, False),
            (QuotaExceeded, False),
            (NetworkError, True),
            (Timeout, True),
            (NoJSONFound, False),
        ],
    )
    def test_retryable_flags(self, error_class, retryable):
        """Each class declares whether it may be retried."""
        assert error_class("x").retryable is retryable
        assert issubclass(error_class, AnalysisError)

    @pytest.mark.unit
    def test_validation_family(self):
        """Request-shape errors are ValidationErrors."""
        for error_class in (InvalidRequest, FileTooLarge, UnsupportedFormat):
            assert issubclass(error_class, ValidationError)
        assert issubclass(Timeout, NetworkError)

    @pytest.mark.unit
    def test_default_suggestions(self):
        """Errors carry remediation suggestions."""
        error = FileTooLarge("too big")
        assert "Reduce PDF file size to under 20MB" in error.suggestions

    @pytest.mark.unit
    def test_custom_suggestions_and_info(self):
        """to_info converts to the ErrorInfo model."""
        error = QuotaExceeded("quota", suggestions=["Upgrade plan"])
        info = error.to_info()
        assert info.code == "QUOTA_EXCEEDED"
        assert info.message == "quota"
        assert info.recoverable is False
        assert info.suggestions == ["Upgrade plan"]


class TestClassifyError:
    """Tests for classify_error."""

    @pytest.mark.unit
    def test_analysis_error_unchanged(self):
        """AnalysisErrors are returned as-is."""
        error = AuthError("x")
        assert classify_error(error) is error

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("API_KEY_INVALID", AuthError),
            ("PERMISSION_DENIED on resource", AuthError),
            ("quota_exceeded", QuotaExceeded),
            ("INVALID_REQUEST: bad field", InvalidRequest),
            ("FILE_TOO_LARGE", FileTooLarge),
            ("UNSUPPORTED_FORMAT", UnsupportedFormat),
        ],
    )
    def test_markers(self, message, expected):
        """Message markers select non-retryable classes."""
        error = classify_error(RuntimeError(message))
        assert isinstance(error, expected)
        assert error.retryable is False

    @pytest.mark.unit
    def test_unknown_is_network_error(self):
        """Unrecognized errors are retryable network errors."""
        error = classify_error(ConnectionResetError("reset by peer"))
        assert isinstance(error, NetworkError)
        assert is_retryable(ConnectionResetError("reset")) is True

    @pytest.mark.unit
    def test_builtin_timeout(self):
        """Builtin TimeoutError maps to Timeout."""
        assert isinstance(classify_error(TimeoutError("slow")), Timeout)
