"""TCP Prober — one handshake-timed round trip against one host:port.

Invariants:
    - RTT = wall-clock time from connect start to completed handshake, whole milliseconds
    - No handshake within timeout_ms → ProbeTimeout
    - Transport error before the deadline → ProbeConnectError with the OS message
    - Connection closed right after measuring, success or failure; never reused
    - No retries here; the next poll round probes again
"""

import asyncio
import logging
import time

from latency_monitor.core.errors import ProbeConnectError, ProbeTimeout

logger = logging.getLogger(__name__)


async def measure(host: str, port: int, timeout_ms: int) -> int:
    """Return handshake RTT in ms, or raise ProbeTimeout / ProbeConnectError."""
    started = time.perf_counter()
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=timeout_ms / 1000,
        )
    except asyncio.TimeoutError:
        raise ProbeTimeout(host, port, timeout_ms)
    except OSError as e:
        raise ProbeConnectError(host, port, str(e) or e.__class__.__name__)
    rtt_ms = int((time.perf_counter() - started) * 1000)
    await _close(writer)
    return rtt_ms


async def _close(writer: asyncio.StreamWriter) -> None:
    """Tear down the probe connection; close errors do not affect the RTT."""
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug(f"Probe socket close failed: {e}")
