"""Metrics tracking for outbound audit requests."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Request kinds
PAGE = "page"
VALIDATION = "validation"
AVAILABILITY = "availability"


@dataclass
class RequestMetrics:
    """Metrics for a single request."""

    url: str
    kind: str
    timestamp: datetime
    success: bool
    status_code: int | None = None
    elapsed_ms: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "status_code": self.status_code,
            "elapsed_ms": self.elapsed_ms,
            "error": self.error,
        }


@dataclass
class ServerMetrics:
    """Global server metrics."""

    start_time: datetime = field(default_factory=datetime.now)
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    requests_by_kind: Counter[str] = field(default_factory=Counter)
    failures_by_kind: Counter[str] = field(default_factory=Counter)
    recent_requests: deque[RequestMetrics] = field(default_factory=lambda: deque(maxlen=50))
    recent_errors: deque[RequestMetrics] = field(default_factory=lambda: deque(maxlen=20))

    def record_request(
        self,
        url: str,
        kind: str,
        success: bool,
        status_code: int | None = None,
        elapsed_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Record a request in the metrics.

        Args:
            url: The URL that was requested
            kind: "page", "validation" or "availability"
            success: Whether the request produced a usable answer
            status_code: HTTP status code if available
            elapsed_ms: Time taken in milliseconds
            error: Error message if failed
        """
        self.total_requests += 1
        self.requests_by_kind[kind] += 1

        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1
            self.failures_by_kind[kind] += 1

        metrics = RequestMetrics(
            url=url,
            kind=kind,
            timestamp=datetime.now(),
            success=success,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
            error=error,
        )

        self.recent_requests.append(metrics)

        if not success:
            self.recent_errors.append(metrics)

    def get_uptime_seconds(self) -> float:
        """Get server uptime in seconds."""
        return (datetime.now() - self.start_time).total_seconds()

    def get_success_rate(self) -> float:
        """Get success rate as percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.successful_requests / self.total_requests) * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for JSON serialization."""
        uptime_seconds = self.get_uptime_seconds()

        return {
            "status": "healthy",
            "uptime": {
                "seconds": uptime_seconds,
                "formatted": self._format_uptime(uptime_seconds),
            },
            "start_time": self.start_time.isoformat(),
            "requests": {
                "total": self.total_requests,
                "successful": self.successful_requests,
                "failed": self.failed_requests,
                "success_rate": round(self.get_success_rate(), 2),
                "by_kind": {
                    kind: {
                        "total": count,
                        "failed": self.failures_by_kind[kind],
                    }
                    for kind, count in self.requests_by_kind.items()
                },
            },
            # Last 10, newest first
            "recent_requests": [r.to_dict() for r in list(self.recent_requests)[-10:][::-1]],
            "recent_errors": [r.to_dict() for r in list(self.recent_errors)[-10:][::-1]],
        }

    @staticmethod
    def _format_uptime(seconds: float) -> str:
        """Format uptime in human-readable format."""
        if seconds < 60:
            return f"{int(seconds)}s"
        elif seconds < 3600:
            minutes = int(seconds / 60)
            secs = int(seconds % 60)
            return f"{minutes}m {secs}s"
        elif seconds < 86400:
            hours = int(seconds / 3600)
            minutes = int((seconds % 3600) / 60)
            return f"{hours}h {minutes}m"
        else:
            days = int(seconds / 86400)
            hours = int((seconds % 86400) / 3600)
            return f"{days}d {hours}h"


# Global metrics instance
_metrics = ServerMetrics()


def get_metrics() -> ServerMetrics:
    """Get the global metrics instance."""
    return _metrics


def reset_metrics() -> None:
    """Replace the global metrics with a fresh instance."""
    global _metrics
    _metrics = ServerMetrics()


def record_request(
    url: str,
    kind: str,
    success: bool,
    status_code: int | None = None,
    elapsed_ms: float | None = None,
    error: str | None = None,
) -> None:
    """Record a request in the global metrics.

    Args:
        url: The URL that was requested
        kind: "page", "validation" or "availability"
        success: Whether the request produced a usable answer
        status_code: HTTP status code if available
        elapsed_ms: Time taken in milliseconds
        error: Error message if failed
    """
    _metrics.record_request(url, kind, success, status_code, elapsed_ms, error)
