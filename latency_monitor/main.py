"""Latency Monitor API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Exactly one SampleStore per process, built in the lifespan and shared via app.state
    - The first poll round completes before the app accepts requests
    - Atlas feed started only when RIPE_ATLAS_KEY is set; its failures never stop startup
    - Shutdown closes stream channels, then the feed, then the poller; the poller
      is stopped even when an earlier step fails
    - Each Atlas (re)connect requests a full snapshot on every open stream channel

Design Decisions:
    - Lifespan over @app.on_event: owns every long-lived task and its cleanup
    - Error handlers registered from api/error_handlers.py
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from latency_monitor.api.error_handlers import register_error_handlers
from latency_monitor.api.routes import health, latency, latency_stream, servers
from latency_monitor.config import Settings, get_settings
from latency_monitor.core.domain_types import Endpoint
from latency_monitor.core.errors import FeedConnectionError
from latency_monitor.core.sample_store import SampleStore
from latency_monitor.infrastructure.atlas_client import AtlasMeasurementClient
from latency_monitor.infrastructure.atlas_feed import AtlasFeedAdapter
from latency_monitor.infrastructure.observability import setup_logging
from latency_monitor.infrastructure.roster import load_endpoints
from latency_monitor.services.latency_poller import LatencyPoller
from latency_monitor.services.stream_publisher import StreamPublisher

logger = logging.getLogger(__name__)


async def _create_measurements(
    settings: Settings, endpoints: tuple[Endpoint, ...],
) -> None:
    """Best-effort: one recurring Atlas ping measurement per endpoint host."""
    client = AtlasMeasurementClient(
        api_key=settings.ripe_atlas_key,
        base_url=settings.atlas_api_url,
        max_retries=settings.atlas_max_retries,
    )
    try:
        for endpoint in endpoints:
            try:
                await client.create_ping_measurement(endpoint.host)
            except FeedConnectionError as e:
                logger.warning(
                    e.message,
                    extra={"endpoint_id": endpoint.id, "error_code": e.code},
                )
            except Exception as e:
                logger.error(
                    f"Atlas measurement for {endpoint.host} failed: {e}",
                    extra={"endpoint_id": endpoint.id},
                    exc_info=True,
                )
    finally:
        await client.aclose()


def _build_feed(
    settings: Settings, store: SampleStore, publisher: StreamPublisher,
) -> AtlasFeedAdapter:
    return AtlasFeedAdapter(
        sink=store,
        roster=store,
        url=settings.atlas_stream_url,
        reconnect=settings.atlas_reconnect,
        backoff_base_ms=settings.atlas_backoff_base_ms,
        backoff_max_ms=settings.atlas_backoff_max_ms,
        on_connect=publisher.request_snapshot,
    )


async def _shutdown(app: FastAPI, measurement_task: asyncio.Task | None) -> None:
    """Stop every component; one failing step never skips the next."""
    app.state.publisher.close_all()
    if measurement_task is not None:
        measurement_task.cancel()
        try:
            await measurement_task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Atlas measurement task failed: {e}", exc_info=True)
    try:
        if app.state.feed is not None:
            await app.state.feed.stop()
    finally:
        await app.state.poller.stop()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    store = SampleStore(
        load_endpoints(settings.servers_file),
        interval_ms=settings.poll_interval_ms,
        capacity=settings.history_capacity,
    )
    poller = LatencyPoller(store, probe_timeout_ms=settings.probe_timeout_ms)
    publisher = StreamPublisher(store)
    app.state.store = store
    app.state.poller = poller
    app.state.publisher = publisher
    app.state.feed = None

    await poller.start()

    measurement_task = None
    if settings.atlas_enabled:
        app.state.feed = _build_feed(settings, store, publisher)
        app.state.feed.start()
        logger.info("RIPE Atlas stream started (best-effort)")
        if settings.atlas_create_measurements:
            measurement_task = asyncio.create_task(
                _create_measurements(settings, store.endpoints),
                name="atlas-measurements",
            )

    logger.info("Latency Monitor API started")
    try:
        yield
    finally:
        logger.info("Latency Monitor API shutting down")
        await _shutdown(app, measurement_task)


app = FastAPI(
    title="Latency Monitor API", version="1.0.0", lifespan=lifespan,
)

# CORS from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router)
app.include_router(servers.router)
app.include_router(latency.router)
app.include_router(latency_stream.router)

register_error_handlers(app)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "latency_monitor.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
