"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 until the poller has committed its first round
    - The Atlas feed is reported but never gates readiness (optional producer)
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from latency_monitor.api.deps import get_feed, get_poller
from latency_monitor.infrastructure.atlas_feed import AtlasFeedAdapter
from latency_monitor.services.latency_poller import LatencyPoller

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "latency-monitor"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


def _feed_status(feed: AtlasFeedAdapter | None) -> str:
    if feed is None:
        return "disabled"
    return "connected" if feed.connected else "disconnected"


@router.get("/ready")
async def readiness_check(
    poller: LatencyPoller = Depends(get_poller),
    feed: AtlasFeedAdapter | None = Depends(get_feed),
):
    """Ready once at least one round is in the store."""
    if not poller.running or poller.rounds_completed == 0:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "poller_not_started",
            },
        )
    return {
        "status": "ready",
        "checks": {
            "poller": {
                "rounds_completed": poller.rounds_completed,
                "interval_ms": poller.store.interval_ms,
            },
            "feed": _feed_status(feed),
        },
    }
