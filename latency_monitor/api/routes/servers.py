"""Servers Route — the configured roster, read from the roster loader."""

from fastapi import APIRouter, Depends

from latency_monitor.api.deps import get_roster
from latency_monitor.core.domain_types import Endpoint

router = APIRouter(prefix="/servers", tags=["servers"])


@router.get("")
async def list_servers(roster: tuple[Endpoint, ...] = Depends(get_roster)):
    return {"servers": [e.to_dict() for e in roster]}
