"""
Liveness endpoints for the CareAlert relay.

``GET /`` and ``GET /ping`` are plain probes for load balancers;
``GET /health`` also reports hub counters.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from relay.dependencies import get_hub
from relay.hub import RelayHub

router = APIRouter(tags=["health"])


@router.get("/")
async def root() -> dict[str, str]:
    """Return a static status banner."""
    return {"status": "ok", "message": "CareAlert relay is running"}


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"


@router.get("/health")
async def health(hub: RelayHub = Depends(get_hub)) -> dict[str, Any]:
    """Return ``{"status": "ok"}`` with live connection and stored alert counts."""
    return {
        "status": "ok",
        "connections": hub.connection_count,
        "stored": hub.stored,
    }
