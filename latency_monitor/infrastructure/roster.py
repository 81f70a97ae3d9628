"""Roster Loader — reads the monitored endpoint list from a JSON file.

Invariants:
    - File must hold a JSON array; each element validated by EndpointConfig
    - Endpoint ids are unique; order of the file is the roster order
    - Every failure (missing file, bad JSON, invalid entry) raises RosterLoadError
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from latency_monitor.core.domain_types import Endpoint
from latency_monitor.core.errors import RosterLoadError
from latency_monitor.schemas.roster import EndpointConfig

logger = logging.getLogger(__name__)

_roster_adapter = TypeAdapter(list[EndpointConfig])


def parse_endpoints(raw: str, source: str = "<string>") -> tuple[Endpoint, ...]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RosterLoadError(f"invalid JSON ({e})", source)
    if not isinstance(data, list):
        raise RosterLoadError("roster must be a JSON array", source)
    try:
        entries = _roster_adapter.validate_python(data)
    except ValidationError as e:
        raise RosterLoadError(f"invalid entry: {e.errors()[0]['msg']}", source)

    seen: set[str] = set()
    for entry in entries:
        if entry.id in seen:
            raise RosterLoadError(f"duplicate endpoint id '{entry.id}'", source)
        seen.add(entry.id)
    return tuple(entry.to_endpoint() for entry in entries)


def load_endpoints(path: Path | str) -> tuple[Endpoint, ...]:
    """Read and validate the roster file."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RosterLoadError(str(e), str(path))
    endpoints = parse_endpoints(raw, str(path))
    logger.info(f"Loaded {len(endpoints)} endpoints from {path}")
    return endpoints
