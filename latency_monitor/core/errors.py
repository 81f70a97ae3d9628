"""Error Hierarchy — typed, categorized exceptions for all latency monitor failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Probe and feed errors never reach an HTTP caller; they degrade into Sample statuses
    - BadRequestError is the only error that maps to a 4xx at the HTTP boundary
    - to_response() produces the REST error envelope

Design Decisions:
    - Single hierarchy with LatencyMonitorError base: FastAPI global handler catches all
    - ErrorContext as dataclass: carries endpoint/round identity for structured logs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    endpoint_id: str | None = None
    round_number: int | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class LatencyMonitorError(Exception):
    """Base exception for all latency monitor errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "endpoint_id": self.context.endpoint_id,
                    "round_number": self.context.round_number,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class BadRequestError(LatencyMonitorError):
    """Required request parameter missing or malformed."""
    def __init__(self, message: str, param: str, context: ErrorContext | None = None):
        super().__init__(
            message, "BAD_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.param = param


class UnknownEndpointError(LatencyMonitorError):
    """Sample references an endpoint id missing from the roster."""
    def __init__(self, endpoint_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.endpoint_id = endpoint_id
        super().__init__(
            f"Endpoint '{endpoint_id}' not in roster",
            "UNKNOWN_ENDPOINT", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.endpoint_id = endpoint_id


# ─── Measurement Errors (never surfaced to callers) ─────────────

class ProbeError(LatencyMonitorError):
    """A single TCP probe failed. Converted to a Sample status by the poller."""


class ProbeTimeout(ProbeError):
    """No handshake completed before the probe deadline."""
    def __init__(
        self, host: str, port: int, timeout_ms: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"timeout after {timeout_ms}ms connecting to {host}:{port}",
            "PROBE_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.WARNING, context, 504,
        )
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms


class ProbeConnectError(ProbeError):
    """Transport reported an error (refused, unreachable, DNS) before the deadline."""
    def __init__(
        self, host: str, port: int, reason: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            reason, "PROBE_CONNECT_ERROR", ErrorCategory.NETWORK,
            ErrorSeverity.WARNING, context, 502,
        )
        self.host = host
        self.port = port
        self.reason = reason


class ResolutionMiss(LatencyMonitorError):
    """Foreign feed payload did not match any roster endpoint."""
    def __init__(self, target: str | None, context: ErrorContext | None = None):
        super().__init__(
            f"No roster endpoint matches feed target '{target}'",
            "RESOLUTION_MISS", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, context, 404,
        )
        self.target = target


# ─── Infrastructure Errors (500-level) ──────────────────────────

class FeedConnectionError(LatencyMonitorError):
    """External measurement feed or its REST API failed."""
    def __init__(
        self,
        message: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Atlas feed error: {message}",
            "FEED_CONNECTION_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx, 503,
        )


class RosterLoadError(LatencyMonitorError):
    """Endpoint roster could not be read or validated."""
    def __init__(self, message: str, source: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to load roster from {source}: {message}",
            "ROSTER_LOAD_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.source = source
