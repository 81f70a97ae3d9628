"""Stream Publisher — snapshot-then-delta channels and their teardown.

Tests cover:
    - First frame: full snapshot with servers and current latest map
    - Following frames: deltas without servers, one per interval
    - request_snapshot() wakes open channels early with servers included
    - aclose() deregisters the channel; close_all() ends every channel
    - Channels are independent of each other
"""

import asyncio
import json

from latency_monitor.core.sample_store import SampleStore
from latency_monitor.services.stream_publisher import StreamPublisher, sse_frame
from tests.factories import make_sample


def decode(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


def test_sse_frame_format():
    assert sse_frame({"a": 1}) == 'data: {"a": 1}\n\n'


async def test_first_frame_is_full_snapshot(store, endpoint_a):
    store.commit(make_sample(endpoint_a, rtt_ms=33))
    publisher = StreamPublisher(store)
    channel = publisher.open_channel()
    try:
        first = decode(await anext(channel))
    finally:
        await channel.aclose()

    assert [s["id"] for s in first["servers"]] == ["a", "b"]
    assert first["latest"]["a"]["rttMs"] == 33
    assert first["timestamp"].endswith("Z")


async def test_subsequent_frames_are_deltas(store):
    publisher = StreamPublisher(store)
    channel = publisher.open_channel()
    try:
        await anext(channel)
        second = decode(await asyncio.wait_for(anext(channel), timeout=1))
    finally:
        await channel.aclose()

    assert "servers" not in second
    assert "latest" in second


async def test_request_snapshot_wakes_channel_early(endpoint_a, endpoint_b):
    slow = SampleStore([endpoint_a, endpoint_b], interval_ms=60_000)
    slow.commit(make_sample(endpoint_b, rtt_ms=5))
    publisher = StreamPublisher(slow)
    channel = publisher.open_channel()
    try:
        await anext(channel)
        pending = asyncio.ensure_future(anext(channel))
        await asyncio.sleep(0.01)
        assert not pending.done()
        publisher.request_snapshot()
        frame = decode(await asyncio.wait_for(pending, timeout=1))
    finally:
        await channel.aclose()

    assert "servers" in frame
    assert frame["latest"]["b"]["rttMs"] == 5


async def test_aclose_deregisters_channel(store):
    publisher = StreamPublisher(store)
    channel = publisher.open_channel()
    await anext(channel)
    assert publisher.open_channels == 1
    await channel.aclose()
    assert publisher.open_channels == 0


async def test_close_all_ends_channels(store):
    publisher = StreamPublisher(store)
    channel = publisher.open_channel()
    await anext(channel)
    publisher.close_all()
    frames = [frame async for frame in channel]
    assert frames == []
    assert publisher.open_channels == 0


async def test_channels_are_independent(store):
    publisher = StreamPublisher(store)
    first = publisher.open_channel()
    second = publisher.open_channel()
    try:
        await anext(first)
        await anext(second)
        assert publisher.open_channels == 2
        await first.aclose()
        assert publisher.open_channels == 1
        frame = decode(await asyncio.wait_for(anext(second), timeout=1))
        assert "latest" in frame
    finally:
        await second.aclose()
