"""Boundary Protocols — contracts between sample producers and the store.

Invariants:
    - The atlas feed only sees SampleSink and RosterView, never the store class
    - commit() is synchronous: a single critical section, no awaits inside

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy between producers
"""

from typing import Awaitable, Protocol, Sequence

from latency_monitor.core.domain_types import Endpoint, Sample


class SampleSink(Protocol):
    """The one capability every sample producer needs."""
    def commit(self, sample: Sample) -> None: ...


class RosterView(Protocol):
    """Read-only roster access for producers that resolve foreign targets."""
    @property
    def endpoints(self) -> Sequence[Endpoint]: ...


class Prober(Protocol):
    """Measures one TCP round trip in whole milliseconds."""
    def __call__(self, host: str, port: int, timeout_ms: int) -> Awaitable[int]: ...
