"""Latency Stream — Server-Sent Events channel over the sample store.

Invariants:
    - One publisher channel per request; first frame is a snapshot, then deltas
    - Client disconnect (detected or via cancellation) closes the channel and its timer
    - Response declares text/event-stream and disables caching/proxy buffering

Design Decisions:
    - StreamingResponse for SSE: event_generator forwards pre-formatted frames
    - Disconnect checked before every frame as well as via task cancellation,
      so a channel stops within one tick either way
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from latency_monitor.api.deps import get_publisher
from latency_monitor.services.stream_publisher import StreamPublisher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/latency", tags=["latency"])

# SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


async def event_generator(request: Request, publisher: StreamPublisher):
    channel = publisher.open_channel()
    try:
        async for frame in channel:
            if await request.is_disconnected():
                logger.info("Client disconnected from latency stream")
                return
            yield frame
    except asyncio.CancelledError:
        logger.info("Latency stream cancelled (client gone)")
        return
    finally:
        await channel.aclose()


@router.get("/stream")
async def stream_latency(
    request: Request, publisher: StreamPublisher = Depends(get_publisher),
):
    return StreamingResponse(
        event_generator(request, publisher),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )
