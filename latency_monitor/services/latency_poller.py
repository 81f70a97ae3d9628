"""Latency Poller — periodic measurement rounds across the whole roster.

Invariants:
    - start() is idempotent: a second call while the store is running is a no-op
    - The first round completes before start() returns (store never empty after start)
    - One round = every endpoint probed concurrently, one shared round timestamp,
      all samples committed together once every probe has resolved
    - A probe failure becomes a timeout/error Sample; it never aborts the round
    - Rounds never overlap: an overrunning round delays the next one, missed ticks
      are dropped rather than queued
    - Cadence is fixed from the start time (t0, t0+interval, t0+2*interval, ...)

Design Decisions:
    - Prober injected as a callable (default infrastructure.prober.measure) so rounds
      are testable without sockets
    - commit_many per round: readers see either the whole round or none of it
"""

import asyncio
import logging
import time
from contextlib import suppress

from latency_monitor.core.domain_types import (
    Endpoint, Sample, SampleStatus, utc_now,
)
from latency_monitor.core.errors import ProbeConnectError, ProbeTimeout
from latency_monitor.core.repository_protocols import Prober
from latency_monitor.core.sample_store import SampleStore
from latency_monitor.infrastructure.prober import measure

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_MS = 4000


class LatencyPoller:
    """Drives measurement rounds and commits them into the store."""

    def __init__(
        self,
        store: SampleStore,
        prober: Prober = measure,
        probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
    ):
        self.store = store
        self.prober = prober
        self.probe_timeout_ms = probe_timeout_ms
        self.rounds_completed = 0
        self.last_round_at = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self.store.running

    async def start(self) -> bool:
        """Run the first round, then schedule the rest. False if already running."""
        if not self.store.try_start():
            logger.debug("Poller already running, start ignored")
            return False
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        try:
            await self.run_round()
        except BaseException:
            self.store.mark_stopped()
            raise
        self._task = asyncio.create_task(
            self._loop(started_at), name="latency-poller",
        )
        logger.info(
            f"Poller started: {len(self.store.endpoints)} endpoints "
            f"every {self.store.interval_ms}ms",
        )
        return True

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self.store.mark_stopped()
        logger.info("Poller stopped")

    async def run_round(self) -> list[Sample]:
        """Probe every endpoint once and commit the results as one round."""
        round_number = self.rounds_completed + 1
        round_ts = utc_now()
        started = time.perf_counter()
        samples = await asyncio.gather(*[
            self._probe(endpoint, round_ts, round_number)
            for endpoint in self.store.endpoints
        ])
        self.store.commit_many(samples)
        self.rounds_completed = round_number
        self.last_round_at = round_ts
        failures = sum(1 for s in samples if s.status is not SampleStatus.OK)
        logger.debug(
            f"Round {round_number} committed ({len(samples)} samples)",
            extra={
                "round_number": round_number,
                "failures": failures,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return samples

    async def _probe(
        self, endpoint: Endpoint, round_ts, round_number: int,
    ) -> Sample:
        try:
            rtt = await self.prober(
                endpoint.host, endpoint.port, self.probe_timeout_ms,
            )
        except ProbeTimeout:
            return Sample.failed(endpoint, round_ts, SampleStatus.TIMEOUT)
        except ProbeConnectError as e:
            logger.debug(
                f"Probe {endpoint.host}:{endpoint.port} failed: {e.reason}",
                extra={"endpoint_id": endpoint.id, "round_number": round_number},
            )
            return Sample.failed(endpoint, round_ts, SampleStatus.ERROR)
        except Exception as e:
            logger.error(
                f"Unexpected probe failure for {endpoint.id}: {e}",
                extra={"endpoint_id": endpoint.id, "round_number": round_number},
                exc_info=True,
            )
            return Sample.failed(endpoint, round_ts, SampleStatus.ERROR)
        return Sample.ok(endpoint, round_ts, max(0, int(rtt)))

    async def _loop(self, started_at: float) -> None:
        loop = asyncio.get_running_loop()
        interval = self.store.interval_ms / 1000
        next_tick = started_at + interval
        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                await self.run_round()
            except Exception as e:
                logger.error(f"Poll round failed: {e}", exc_info=True)
            next_tick += interval
            now = loop.time()
            if next_tick < now:
                logger.warning(
                    "Poll round overran the interval, next round starts now",
                    extra={"round_number": self.rounds_completed},
                )
                next_tick = now
