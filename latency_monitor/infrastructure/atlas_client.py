"""Atlas Measurement Client — creates RIPE Atlas ping measurements over REST.

Invariants:
    - Rate limits (429): backoff respects Retry-After header when present
    - Transient errors (5xx, connection, timeout): max_retries retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to FeedConnectionError (core/errors.py)

Design Decisions:
    - Wrapper over raw httpx.AsyncClient: isolates retry logic from app startup
    - ±25% jitter on backoff: spreads retries when several targets are created at once
"""

import asyncio
import logging
import random

import httpx

from latency_monitor.core.errors import ErrorContext, FeedConnectionError

logger = logging.getLogger(__name__)


def build_ping_definition(target: str, client_name: str = "latency-monitor") -> dict:
    """Recurring IPv4 ping from two worldwide probes every 60s."""
    return {
        "definitions": [
            {
                "target": target,
                "description": f"ping to {target} (created by {client_name})",
                "type": "ping",
                "af": 4,
            },
        ],
        "probes": [
            {"requested": 2, "type": "area", "value": "WW"},
        ],
        "is_oneoff": False,
        "interval": 60,
    }


class AtlasMeasurementClient:
    """RIPE Atlas REST client with retry, backoff, and error mapping."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://atlas.ripe.net/api/v2/",
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Authorization": f"Key {api_key}"},
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_ping_measurement(self, target: str) -> list[int]:
        """Create a recurring ping measurement; returns the new measurement ids."""
        context = ErrorContext(debug_info={"target": target})
        body = build_ping_definition(target)
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post("measurements/", json=body)
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, context)
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt, context)
                continue
            if response.status_code >= 500:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt, context,
                )
                continue
            if response.is_error:
                raise FeedConnectionError(
                    f"Failed to create measurement for {target}: {response.text}",
                    context=context,
                )
            ids = response.json().get("measurements", [])
            logger.info(
                f"Created Atlas measurement for {target}: {ids}",
                extra={"attempt": attempt + 1},
            )
            return ids
        raise FeedConnectionError(
            f"Measurement creation for {target} exhausted retries", context=context,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext,
    ) -> None:
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise FeedConnectionError(
                "Rate limit exceeded after retries",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Atlas rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: object, attempt: int, context: ErrorContext,
    ) -> None:
        if attempt >= self.max_retries:
            raise FeedConnectionError(
                f"Transient failure after {self.max_retries} retries: {e}",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Atlas transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    @staticmethod
    def _extract_retry_after(response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds (seconds form only)."""
        val = response.headers.get("retry-after")
        if val and val.strip().isdigit():
            return int(val) * 1000
        return None
