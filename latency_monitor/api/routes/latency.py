"""Latency Routes — current samples, snapshots, history slices and metrics.

Invariants:
    - GET /latency/history without serverId → 400 before the store is read
    - Unknown serverId → 200 with an empty history
    - from/to are inclusive ISO-8601 bounds; malformed values → 400 (validation handler)
    - All handlers are read-only on the store
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from latency_monitor.api.deps import get_store
from latency_monitor.core.domain_types import format_timestamp, utc_now
from latency_monitor.core.history_query import query_history
from latency_monitor.core.latency_metrics import endpoint_stats, summarize
from latency_monitor.core.sample_store import SampleStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/latency", tags=["latency"])


@router.get("")
async def get_latency(store: SampleStore = Depends(get_store)):
    """Roster plus the latest sample per endpoint."""
    snapshot = store.snapshot()
    return {
        "servers": [e.to_dict() for e in snapshot.endpoints],
        "latest": {eid: s.to_dict() for eid, s in snapshot.latest.items()},
    }


@router.get("/snapshot")
async def get_snapshot(store: SampleStore = Depends(get_store)):
    return store.snapshot().to_dict(include_servers=True)


@router.get("/history")
async def get_history(
    server_id: str | None = Query(None, alias="serverId"),
    start: datetime | None = Query(None, alias="from"),
    end: datetime | None = Query(None, alias="to"),
    store: SampleStore = Depends(get_store),
):
    samples = query_history(store, server_id, start, end)
    return {
        "serverId": server_id,
        "history": [s.to_dict() for s in samples],
    }


@router.get("/metrics")
async def get_metrics(store: SampleStore = Depends(get_store)):
    """Fleet summary plus per-endpoint stats over the retained history."""
    latest = store.latest()
    return {
        "timestamp": format_timestamp(utc_now()),
        "summary": summarize(store.endpoints, latest),
        "endpoints": {
            e.id: endpoint_stats(store.history(e.id)) for e in store.endpoints
        },
    }
