"""Sample Store — roster, latest sample per endpoint, and a bounded history ring.

Invariants:
    - Roster is fixed at construction; commit() rejects ids outside it
    - latest[id] and the history append for the same sample are applied under one lock
    - history[id] holds at most `capacity` samples; the oldest is evicted first (FIFO)
    - Reads return copies taken under the lock, never a partially applied commit
    - `running` is only flipped through try_start()/mark_stopped() (at most one poll loop)

Design Decisions:
    - threading.Lock over asyncio.Lock: commit is synchronous and never awaits inside
      the critical section, and the lock also holds if a producer runs in a worker thread
    - deque(maxlen=capacity): eviction happens in the same append call, no separate trim step
    - One store per process, constructed by the application lifespan and passed explicitly
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from latency_monitor.core.domain_types import (
    Endpoint, EndpointId, Sample, format_timestamp, utc_now,
)
from latency_monitor.core.errors import UnknownEndpointError

DEFAULT_INTERVAL_MS = 5000
DEFAULT_HISTORY_CAPACITY = 2000


@dataclass(frozen=True)
class StoreSnapshot:
    """Point-in-time copy of the roster and the latest-sample map."""
    timestamp: datetime
    endpoints: tuple[Endpoint, ...]
    latest: dict[EndpointId, Sample] = field(default_factory=dict)

    def to_dict(self, include_servers: bool = True) -> dict:
        payload = {
            "timestamp": format_timestamp(self.timestamp),
            "latest": {eid: s.to_dict() for eid, s in self.latest.items()},
        }
        if include_servers:
            payload["servers"] = [e.to_dict() for e in self.endpoints]
        return payload


class SampleStore:
    """Shared mutable state written by producers and read by publishers/queries."""

    def __init__(
        self,
        endpoints: Iterable[Endpoint],
        interval_ms: int = DEFAULT_INTERVAL_MS,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
    ):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._endpoints = tuple(endpoints)
        self._by_id = {e.id: e for e in self._endpoints}
        if len(self._by_id) != len(self._endpoints):
            raise ValueError("endpoint ids must be unique")
        self._interval_ms = interval_ms
        self._capacity = capacity
        self._lock = threading.Lock()
        self._latest: dict[EndpointId, Sample] = {}
        self._history: dict[EndpointId, deque[Sample]] = {
            e.id: deque(maxlen=capacity) for e in self._endpoints
        }
        self._running = False

    # ─── Roster ─────────────────────────────────────────────────

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def capacity(self) -> int:
        return self._capacity

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        return self._by_id.get(endpoint_id)

    # ─── Poll loop guard ────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    def try_start(self) -> bool:
        """Claim the single poll-loop slot. False if a loop already holds it."""
        with self._lock:
            if self._running:
                return False
            self._running = True
            return True

    def mark_stopped(self) -> None:
        with self._lock:
            self._running = False

    # ─── Writes ─────────────────────────────────────────────────

    def commit(self, sample: Sample) -> None:
        """Set latest and append to history as one atomic unit."""
        ring = self._history.get(sample.endpoint_id)
        if ring is None:
            raise UnknownEndpointError(sample.endpoint_id)
        with self._lock:
            self._latest[sample.endpoint_id] = sample
            ring.append(sample)

    def commit_many(self, samples: Iterable[Sample]) -> int:
        """Commit a batch under a single lock acquisition. Returns the count."""
        batch = list(samples)
        for sample in batch:
            if sample.endpoint_id not in self._history:
                raise UnknownEndpointError(sample.endpoint_id)
        with self._lock:
            for sample in batch:
                self._latest[sample.endpoint_id] = sample
                self._history[sample.endpoint_id].append(sample)
        return len(batch)

    # ─── Reads ──────────────────────────────────────────────────

    def latest(self) -> dict[EndpointId, Sample]:
        with self._lock:
            return dict(self._latest)

    def latest_for(self, endpoint_id: str) -> Sample | None:
        with self._lock:
            return self._latest.get(endpoint_id)

    def history(self, endpoint_id: str) -> list[Sample]:
        """Copy of the endpoint's history in append order. Empty for unknown ids."""
        ring = self._history.get(endpoint_id)
        if ring is None:
            return []
        with self._lock:
            return list(ring)

    def history_length(self, endpoint_id: str) -> int:
        ring = self._history.get(endpoint_id)
        if ring is None:
            return 0
        with self._lock:
            return len(ring)

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            latest = dict(self._latest)
        return StoreSnapshot(utc_now(), self._endpoints, latest)
