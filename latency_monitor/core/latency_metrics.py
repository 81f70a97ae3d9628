"""Latency Metrics — fleet summary and per-endpoint statistics, pure functions.

Invariants:
    - No IO; inputs are plain roster/sample collections
    - Tier thresholds: < 50ms low, < 150ms medium, otherwise high; no RTT is unknown
    - failureRate is a percentage of the roster, rounded to one decimal
"""

import statistics
from typing import Iterable, Mapping

from latency_monitor.core.domain_types import (
    Endpoint, HealthStatus, LatencyTier, Sample, SampleStatus,
)

LOW_LATENCY_MS = 50
MEDIUM_LATENCY_MS = 150
DEGRADED_FAILURE_RATE = 10.0


def latency_tier(rtt_ms: int | None) -> LatencyTier:
    if rtt_ms is None:
        return LatencyTier.UNKNOWN
    if rtt_ms < LOW_LATENCY_MS:
        return LatencyTier.LOW
    if rtt_ms < MEDIUM_LATENCY_MS:
        return LatencyTier.MEDIUM
    return LatencyTier.HIGH


def classify_health(active: int, failure_rate: float) -> HealthStatus:
    if active > 0 and failure_rate < DEGRADED_FAILURE_RATE:
        return HealthStatus.HEALTHY
    if active > 0:
        return HealthStatus.DEGRADED
    return HealthStatus.CRITICAL


def summarize(
    endpoints: Iterable[Endpoint], latest: Mapping[str, Sample],
) -> dict:
    """Fleet-wide summary over the latest sample of every endpoint."""
    total = len(list(endpoints))
    samples = list(latest.values())
    rtts = [s.rtt_ms for s in samples if s.rtt_ms is not None]
    failed = sum(
        1 for s in samples
        if s.status in (SampleStatus.TIMEOUT, SampleStatus.ERROR)
    )
    avg = round(sum(rtts) / len(rtts)) if rtts else 0
    failure_rate = round(100.0 * failed / total, 1) if total else 0.0

    tiers = {tier.value: 0 for tier in LatencyTier}
    for s in samples:
        tiers[latency_tier(s.rtt_ms).value] += 1

    return {
        "totalServers": total,
        "activeConnections": len(rtts),
        "failedServers": failed,
        "avgLatencyMs": avg,
        "failureRate": failure_rate,
        "health": classify_health(len(rtts), failure_rate).value,
        "tiers": tiers,
    }


def endpoint_stats(history: Iterable[Sample]) -> dict:
    """Min/max/avg/jitter and loss over one endpoint's history window."""
    samples = list(history)
    rtts = [s.rtt_ms for s in samples if s.rtt_ms is not None]
    count = len(samples)
    if not rtts:
        return {
            "count": count,
            "okCount": 0,
            "minMs": None,
            "maxMs": None,
            "avgMs": None,
            "jitterMs": None,
            "lossPercent": 100.0 if count else 0.0,
        }
    return {
        "count": count,
        "okCount": len(rtts),
        "minMs": min(rtts),
        "maxMs": max(rtts),
        "avgMs": round(statistics.fmean(rtts), 2),
        "jitterMs": round(statistics.pstdev(rtts), 2),
        "lossPercent": round(100.0 * (count - len(rtts)) / count, 1),
    }
