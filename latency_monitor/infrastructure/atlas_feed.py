"""Atlas Feed Adapter — RIPE Atlas result stream as a second sample producer.

Invariants:
    - Only started when a RIPE Atlas key is configured; otherwise never constructed
    - Foreign target resolved by host substring against the roster; misses are dropped
      silently (ResolutionMiss, debug log only, nothing stored)
    - Finite, non-negative RTT → status=ok with rounded integer rttMs; anything else
      (missing, NaN, Infinity, negative) → status=error, rttMs=None
    - A frame that fails translation or commit is dropped and the read loop continues
    - Sample timestamp = receipt time, not the payload's own timestamp
    - Connection failures are logged and never propagate out of subscribe()
    - Commits go through SampleSink.commit(), the same path the poller uses

Design Decisions:
    - Reconnect with exponential backoff and ±25% jitter, capped at backoff_max_ms;
      reconnect=False gives the single-attempt behaviour (log and stop)
    - websockets.connect injected as `connect` so tests can drive the loop with fakes
    - Translation (parse_frame/translate_result) is pure and tested without a socket
    - on_connect fires after each (re)subscription; the app uses it to push a fresh
      snapshot to stream subscribers
"""

import asyncio
import json
import logging
import math
import random
from datetime import datetime
from typing import Any, Callable, Sequence

import websockets
from websockets.exceptions import WebSocketException

from latency_monitor.core.domain_types import (
    Endpoint, Sample, SampleStatus, utc_now,
)
from latency_monitor.core.errors import ResolutionMiss
from latency_monitor.core.repository_protocols import RosterView, SampleSink

logger = logging.getLogger(__name__)

SUBSCRIBE_MESSAGE = ["atlas_subscribe", {"streamType": "result"}]
RESULT_EVENTS = frozenset({"atlas_result", "result"})


# ─── Pure translation ──────────────────────────────────────────

def parse_frame(raw: str | bytes) -> dict | None:
    """Return the payload of a result frame, or None for anything else."""
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(parsed, list) or len(parsed) < 2:
        return None
    event, payload = parsed[0], parsed[1]
    if event not in RESULT_EVENTS or not isinstance(payload, dict):
        return None
    return payload


def extract_target(payload: dict) -> str | None:
    for key in ("dst_name", "dst_addr", "target"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _as_number(value: Any) -> float | None:
    """Finite non-negative number, else None (bools, NaN and Infinity excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number) or number < 0:
        return None
    return number


def extract_rtt(payload: dict) -> float | None:
    """RTT from `result.rtt`, `avg`, or the first numeric rtt in a result list."""
    result = payload.get("result")
    if isinstance(result, dict):
        rtt = _as_number(result.get("rtt"))
        if rtt is not None:
            return rtt
    avg = _as_number(payload.get("avg"))
    if avg is not None:
        return avg
    if isinstance(result, list):
        for item in result:
            if isinstance(item, dict):
                rtt = _as_number(item.get("rtt"))
                if rtt is not None:
                    return rtt
    return None


def resolve_endpoint(
    target: str | None, endpoints: Sequence[Endpoint],
) -> Endpoint | None:
    if not target:
        return None
    needle = target.lower()
    for endpoint in endpoints:
        if endpoint.host.lower() in needle:
            return endpoint
    return None


def translate_result(
    payload: dict,
    endpoints: Sequence[Endpoint],
    received_at: datetime | None = None,
) -> Sample:
    """Build a Sample from a foreign result, or raise ResolutionMiss."""
    target = extract_target(payload)
    endpoint = resolve_endpoint(target, endpoints)
    if endpoint is None:
        raise ResolutionMiss(target)
    ts = received_at or utc_now()
    rtt = extract_rtt(payload)
    if rtt is None:
        return Sample.failed(endpoint, ts, SampleStatus.ERROR)
    return Sample.ok(endpoint, ts, int(round(rtt)))


# ─── Subscription ──────────────────────────────────────────────

class AtlasFeedAdapter:
    """Long-lived websocket subscription committing translated samples."""

    def __init__(
        self,
        sink: SampleSink,
        roster: RosterView,
        url: str,
        reconnect: bool = True,
        backoff_base_ms: int = 1000,
        backoff_max_ms: int = 60_000,
        connect: Callable[..., Any] = websockets.connect,
        on_connect: Callable[[], None] | None = None,
    ):
        self.sink = sink
        self.roster = roster
        self.url = url
        self.reconnect = reconnect
        self.backoff_base_ms = backoff_base_ms
        self.backoff_max_ms = backoff_max_ms
        self._connect = connect
        self.on_connect = on_connect
        self._task: asyncio.Task | None = None
        self.connected = False
        self.stats = {
            "received": 0, "committed": 0, "dropped": 0,
            "connects": 0, "failures": 0,
        }

    def handle_message(self, raw: str | bytes) -> Sample | None:
        """Translate and commit one frame. Returns the committed sample, if any."""
        payload = parse_frame(raw)
        if payload is None:
            return None
        self.stats["received"] += 1
        try:
            sample = translate_result(payload, self.roster.endpoints)
        except ResolutionMiss as e:
            self.stats["dropped"] += 1
            logger.debug(e.message)
            return None
        self.sink.commit(sample)
        self.stats["committed"] += 1
        return sample

    def _consume(self, raw: str | bytes) -> None:
        """handle_message for the read loop: one bad frame never ends the feed."""
        try:
            self.handle_message(raw)
        except Exception as e:
            self.stats["dropped"] += 1
            logger.debug(f"Atlas frame dropped: {e}", exc_info=True)

    async def subscribe(self) -> None:
        """Connect, subscribe and consume until cancelled (or first failure
        when reconnect is disabled)."""
        attempt = 0
        while True:
            try:
                async with self._connect(self.url) as ws:
                    self.connected = True
                    self.stats["connects"] += 1
                    attempt = 0
                    logger.info(f"Atlas stream connected: {self.url}")
                    await ws.send(json.dumps(SUBSCRIBE_MESSAGE))
                    if self.on_connect is not None:
                        self.on_connect()
                    async for raw in ws:
                        self._consume(raw)
                logger.warning("Atlas stream closed by server")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                self.stats["failures"] += 1
                logger.error(
                    f"Atlas stream error: {e}",
                    extra={"error_code": "FEED_CONNECTION_ERROR", "attempt": attempt + 1},
                )
            finally:
                self.connected = False

            if not self.reconnect:
                logger.warning("Atlas stream reconnect disabled, feed stopped")
                return
            delay = self._backoff(attempt)
            attempt += 1
            logger.info(
                f"Reconnecting to Atlas stream in {delay}ms",
                extra={"attempt": attempt},
            )
            await asyncio.sleep(delay / 1000)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(
                self.subscribe(), name="atlas-feed",
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Atlas feed task had failed: {e}", exc_info=True)
        finally:
            self._task = None

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter, in ms."""
        delay = min(self.backoff_max_ms, (2 ** attempt) * self.backoff_base_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
