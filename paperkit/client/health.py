"""Health and usage statistics for the API client.

Health is derived from three signals:
- whether the client has been initialized (transport available)
- the number of consecutive failed requests
- the number of requests currently in flight (backlog)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

UNHEALTHY_ERROR_THRESHOLD = 3
BACKLOG_THRESHOLD = 5


class HealthStatus(str, Enum):
    """Overall client health."""

    HEALTHY = "healthy"  # Initialized, no recent errors
    DEGRADED = "degraded"  # Recent errors or a request backlog
    UNHEALTHY = "unhealthy"  # Uninitialized or repeatedly failing


@dataclass
class ClientStatistics:
    """Counters accumulated across requests.

    Attributes:
        total_requests: Requests accepted by analyze().
        successful_requests: Requests that produced a successful analysis.
        failed_requests: Requests that failed or fell back.
        consecutive_errors: Failures since the last success.
        in_flight: Requests currently being processed.
        total_processing_ms: Sum of processing times of finished requests.
        last_request_at: Wall-clock time of the most recent request.
        last_error: Message of the most recent failure.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    consecutive_errors: int = 0
    in_flight: int = 0
    total_processing_ms: int = 0
    last_request_at: datetime | None = None
    last_error: str | None = None

    @property
    def average_processing_ms(self) -> float:
        finished = self.successful_requests + self.failed_requests
        if finished == 0:
            return 0.0
        return self.total_processing_ms / finished

    @property
    def success_rate(self) -> float:
        finished = self.successful_requests + self.failed_requests
        if finished == 0:
            return 0.0
        return self.successful_requests / finished

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "consecutive_errors": self.consecutive_errors,
            "in_flight": self.in_flight,
            "average_processing_ms": round(self.average_processing_ms, 1),
            "success_rate": round(self.success_rate, 3),
            "last_request_at": (
                self.last_request_at.isoformat() if self.last_request_at else None
            ),
            "last_error": self.last_error,
        }


@dataclass
class ClientHealth:
    """Health report for the API client."""

    status: HealthStatus
    initialized: bool
    consecutive_errors: int
    in_flight: int
    checked_at: datetime
    model: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "status": self.status.value,
            "initialized": self.initialized,
            "consecutive_errors": self.consecutive_errors,
            "in_flight": self.in_flight,
            "checked_at": self.checked_at.isoformat(),
            "model": self.model,
            **self.details,
        }


def assess_health(
    initialized: bool,
    consecutive_errors: int,
    in_flight: int = 0,
) -> HealthStatus:
    """Classify client health.

    Args:
        initialized: Whether a transport is available.
        consecutive_errors: Failures since the last success.
        in_flight: Requests currently being processed.

    Returns:
        UNHEALTHY if uninitialized or at least 3 consecutive errors,
        DEGRADED if any consecutive error or a backlog above 5,
        HEALTHY otherwise.
    """
    if not initialized or consecutive_errors >= UNHEALTHY_ERROR_THRESHOLD:
        return HealthStatus.UNHEALTHY
    if consecutive_errors > 0 or in_flight > BACKLOG_THRESHOLD:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def format_health_line(health: ClientHealth) -> str:
    """Format a one-line status summary for logging."""
    status_icon = {
        HealthStatus.HEALTHY: "[OK]",
        HealthStatus.DEGRADED: "[!!]",
        HealthStatus.UNHEALTHY: "[XX]",
    }
    model = health.model or "no transport"
    return (
        f"{status_icon[health.status]} {health.status.value.upper()} "
        f"model={model} errors={health.consecutive_errors} "
        f"in_flight={health.in_flight}"
    )


__all__ = [
    "BACKLOG_THRESHOLD",
    "UNHEALTHY_ERROR_THRESHOLD",
    "ClientHealth",
    "ClientStatistics",
    "HealthStatus",
    "assess_health",
    "format_health_line",
]
