"""Unit tests for client health and statistics."""

from datetime import UTC, datetime

import pytest

from .health import (
    ClientHealth,
    ClientStatistics,
    HealthStatus,
    assess_health,
    format_health_line,
)


class TestHealthStatus:
    """Tests for HealthStatus enum."""

    @pytest.mark.unit
    def test_status_values(self):
        """Health status has expected values."""
        assert HealthStatus.HEALTHY.value == "healthy"
        assert HealthStatus.DEGRADED.value == "degraded"
        assert HealthStatus.UNHEALTHY.value == "unhealthy"

    @pytest.mark.unit
    def test_status_is_string_enum(self):
        """HealthStatus inherits from str for JSON serialization."""
        assert isinstance(HealthStatus.HEALTHY, str)
        assert HealthStatus.HEALTHY == "healthy"


class TestAssessHealth:
    """Tests for the health classification rules."""

    @pytest.mark.unit
    def test_healthy(self):
        assert assess_health(True, 0, 0) == HealthStatus.HEALTHY

    @pytest.mark.unit
    def test_uninitialized(self):
        assert assess_health(False, 0, 0) == HealthStatus.UNHEALTHY

    @pytest.mark.unit
    def test_consecutive_errors(self):
        """One or two errors degrade, three are unhealthy."""
        assert assess_health(True, 1) == HealthStatus.DEGRADED
        assert assess_health(True, 2) == HealthStatus.DEGRADED
        assert assess_health(True, 3) == HealthStatus.UNHEALTHY

    @pytest.mark.unit
    def test_backlog(self):
        """More than five requests in flight degrade health."""
        assert assess_health(True, 0, 5) == HealthStatus.HEALTHY
        assert assess_health(True, 0, 6) == HealthStatus.DEGRADED


class TestStatistics:
    """Tests for ClientStatistics."""

    @pytest.mark.unit
    def test_empty_averages(self):
        """No finished requests means zero averages."""
        stats = ClientStatistics()
        assert stats.average_processing_ms == 0.0
        assert stats.success_rate == 0.0

    @pytest.mark.unit
    def test_to_dict(self):
        """Derived values are included in the dict."""
        stats = ClientStatistics(
            total_requests=4,
            successful_requests=3,
            failed_requests=1,
            total_processing_ms=400,
        )
        data = stats.to_dict()
        assert data["average_processing_ms"] == 100.0
        assert data["success_rate"] == 0.75
        assert data["last_request_at"] is None


class TestClientHealth:
    """Tests for the ClientHealth report."""

    @pytest.mark.unit
    def test_to_dict_and_format(self):
        """Serialization and log formatting include status and model."""
        health = ClientHealth(
            status=HealthStatus.DEGRADED,
            initialized=True,
            consecutive_errors=1,
            in_flight=0,
            checked_at=datetime(2025, 1, 1, tzinfo=UTC),
            model="gemini-2.0-flash",
            details={"last_error": "timeout"},
        )
        data = health.to_dict()
        assert data["status"] == "degraded"
        assert data["last_error"] == "timeout"
        assert data["checked_at"].startswith("2025-01-01")

        line = format_health_line(health)
        assert line.startswith("[!!] DEGRADED")
        assert "model=gemini-2.0-flash" in line
