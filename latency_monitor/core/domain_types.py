"""Domain Types — endpoints, samples and the value types shared by every component.

Invariants:
    - Endpoint and Sample are frozen and never mutated after construction
    - Sample.rtt_ms is None unless status is OK
    - Sample timestamps are timezone-aware UTC, truncated to whole milliseconds
    - Wire keys are camelCase (endpointId, rttMs, regionCode) to match the JSON contract

Design Decisions:
    - NewType for EndpointId: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - Millisecond truncation at creation: the ISO wire form round-trips exactly,
      so a history query bounded by a serialized timestamp matches its sample
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

EndpointId = NewType("EndpointId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SampleStatus(str, Enum):
    """Outcome of one measurement."""
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"


class LatencyTier(str, Enum):
    """Coarse latency class used by metrics and clients for coloring."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class HealthStatus(str, Enum):
    """Overall fleet health derived from the latest samples."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


# ─── Timestamps ──────────────────────────────────────────────────

def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    text = ts.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def ensure_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


# ─── Entities ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Endpoint:
    """One monitored exchange server."""
    id: EndpointId
    host: str
    port: int
    exchange: str
    provider: str
    region_code: str
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "exchange": self.exchange,
            "provider": self.provider,
            "regionCode": self.region_code,
            "lat": self.lat,
            "lng": self.lng,
        }


@dataclass(frozen=True)
class Sample:
    """One latency measurement for one endpoint at one point in time."""
    endpoint_id: EndpointId
    host: str
    port: int
    timestamp: datetime
    rtt_ms: int | None
    status: SampleStatus

    def __post_init__(self):
        if self.status is SampleStatus.OK and self.rtt_ms is None:
            raise ValueError("ok samples require rtt_ms")
        if self.status is not SampleStatus.OK and self.rtt_ms is not None:
            raise ValueError(f"{self.status.value} samples must not carry rtt_ms")

    @classmethod
    def ok(cls, endpoint: Endpoint, timestamp: datetime, rtt_ms: int) -> "Sample":
        return cls(
            endpoint.id, endpoint.host, endpoint.port,
            timestamp, rtt_ms, SampleStatus.OK,
        )

    @classmethod
    def failed(
        cls, endpoint: Endpoint, timestamp: datetime, status: SampleStatus,
    ) -> "Sample":
        return cls(
            endpoint.id, endpoint.host, endpoint.port,
            timestamp, None, status,
        )

    def to_dict(self) -> dict:
        return {
            "endpointId": self.endpoint_id,
            "host": self.host,
            "port": self.port,
            "timestamp": format_timestamp(self.timestamp),
            "rttMs": self.rtt_ms,
            "status": self.status.value,
        }
