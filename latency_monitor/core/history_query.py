"""History Query — time-bounded slices of one endpoint's history.

Invariants:
    - Bounds are inclusive on both sides; None means unbounded on that side
    - Missing endpoint id raises BadRequestError before the store is read
    - Unknown endpoint id yields an empty list, not an error
    - Result preserves append order and never mutates the store
"""

from datetime import datetime
from typing import Protocol

from latency_monitor.core.domain_types import Sample, ensure_utc
from latency_monitor.core.errors import BadRequestError


class HistorySource(Protocol):
    def history(self, endpoint_id: str) -> list[Sample]: ...


def filter_window(
    samples: list[Sample],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sample]:
    """Keep samples with start <= timestamp <= end."""
    lo = ensure_utc(start) if start is not None else None
    hi = ensure_utc(end) if end is not None else None
    return [
        s for s in samples
        if (lo is None or s.timestamp >= lo) and (hi is None or s.timestamp <= hi)
    ]


def query_history(
    source: HistorySource,
    endpoint_id: str | None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sample]:
    if not endpoint_id:
        raise BadRequestError("serverId required", "serverId")
    return filter_window(source.history(endpoint_id), start, end)
