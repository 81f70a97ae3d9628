"""Route Dependencies — hand the lifespan-owned objects to route handlers.

Invariants:
    - Store, poller, publisher and feed live on app.state, set once by the lifespan
    - Routes never construct these objects; tests swap them via dependency_overrides
"""

from pathlib import Path

from fastapi import Request

from latency_monitor.config import get_settings
from latency_monitor.core.domain_types import Endpoint
from latency_monitor.core.sample_store import SampleStore
from latency_monitor.infrastructure.atlas_feed import AtlasFeedAdapter
from latency_monitor.infrastructure.roster import load_endpoints
from latency_monitor.services.latency_poller import LatencyPoller
from latency_monitor.services.stream_publisher import StreamPublisher


def get_store(request: Request) -> SampleStore:
    return request.app.state.store


def get_poller(request: Request) -> LatencyPoller:
    return request.app.state.poller


def get_publisher(request: Request) -> StreamPublisher:
    return request.app.state.publisher


def get_feed(request: Request) -> AtlasFeedAdapter | None:
    return getattr(request.app.state, "feed", None)


def get_roster_path() -> Path:
    return get_settings().servers_file


def get_roster() -> tuple[Endpoint, ...]:
    """Static roster read straight from configuration, not from the store."""
    return load_endpoints(get_roster_path())
