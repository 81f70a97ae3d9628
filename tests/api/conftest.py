"""API test fixtures — in-process FastAPI client over lifespan-free app state.

Design Decisions:
    - ASGITransport does not run the lifespan, so store/poller/publisher are built
      here and injected through dependency_overrides
    - The poller uses a scripted prober; no sockets are opened by route tests
"""

import pytest
from httpx import ASGITransport, AsyncClient

from latency_monitor.api.deps import (
    get_feed, get_poller, get_publisher, get_roster, get_store,
)
from latency_monitor.main import app
from latency_monitor.services.latency_poller import LatencyPoller
from latency_monitor.services.stream_publisher import StreamPublisher


async def fixed_prober(host, port, timeout_ms):
    return 42


@pytest.fixture
def poller(store):
    return LatencyPoller(store, prober=fixed_prober)


@pytest.fixture
def publisher(store):
    return StreamPublisher(store)


@pytest.fixture
async def client(store, poller, publisher):
    """Test client with the app's dependencies pointed at the fixture store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_poller] = lambda: poller
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_feed] = lambda: None
    app.dependency_overrides[get_roster] = lambda: store.endpoints

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    await poller.stop()
