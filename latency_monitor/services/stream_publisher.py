"""Stream Publisher — per-subscriber SSE channels over the sample store.

Invariants:
    - First frame on every channel is a full snapshot {timestamp, latest, servers}
    - Then one delta {timestamp, latest} per interval_ms, on the channel's own timer
    - request_snapshot() wakes every open channel early with a full snapshot
    - Closing a channel (aclose, cancellation, close_all) deregisters it and ends its
      timer in the same step
    - Channels share nothing but the store; one slow subscriber never delays another

Design Decisions:
    - Each channel is an async generator driven by the subscriber's own response task:
      its timer is the asyncio.wait_for inside that task, so cancellation tears it down
    - Frames are pre-encoded SSE text (`data: <json>\\n\\n`); the route only forwards them
"""

import asyncio
import itertools
import json
import logging
from typing import AsyncIterator

from latency_monitor.core.sample_store import SampleStore

logger = logging.getLogger(__name__)


def sse_frame(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


class StreamChannel:
    """Wake-up state for one subscriber."""

    def __init__(self, channel_id: int):
        self.id = channel_id
        self._wake = asyncio.Event()
        self._snapshot_requested = False
        self.closed = False
        self.frames_sent = 0

    def request_snapshot(self) -> None:
        self._snapshot_requested = True
        self._wake.set()

    def close(self) -> None:
        self.closed = True
        self._wake.set()

    async def wait(self, interval_s: float) -> bool:
        """Sleep one tick or until woken. Returns True if a snapshot was requested."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=interval_s)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()
        requested = self._snapshot_requested
        self._snapshot_requested = False
        return requested


class StreamPublisher:
    """Fans the store out to any number of independent SSE channels."""

    def __init__(self, store: SampleStore):
        self.store = store
        self._channels: dict[int, StreamChannel] = {}
        self._ids = itertools.count(1)

    @property
    def open_channels(self) -> int:
        return len(self._channels)

    def request_snapshot(self) -> None:
        for channel in list(self._channels.values()):
            channel.request_snapshot()

    def close_all(self) -> None:
        """Ask every channel to finish after its current frame (shutdown path)."""
        for channel in list(self._channels.values()):
            channel.close()

    async def open_channel(self) -> AsyncIterator[str]:
        """Yield SSE frames until the consumer stops iterating or is cancelled."""
        channel = StreamChannel(next(self._ids))
        self._channels[channel.id] = channel
        logger.info(
            f"Stream channel opened ({self.open_channels} open)",
            extra={"channel_id": channel.id},
        )
        interval_s = self.store.interval_ms / 1000
        try:
            yield self._frame(channel, include_servers=True)
            while True:
                snapshot = await channel.wait(interval_s)
                if channel.closed:
                    return
                yield self._frame(channel, include_servers=snapshot)
        finally:
            self._channels.pop(channel.id, None)
            logger.info(
                f"Stream channel closed after {channel.frames_sent} frames",
                extra={"channel_id": channel.id},
            )

    def _frame(self, channel: StreamChannel, include_servers: bool) -> str:
        channel.frames_sent += 1
        return sse_frame(self.store.snapshot().to_dict(include_servers))
