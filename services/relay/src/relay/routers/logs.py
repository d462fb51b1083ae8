"""
Alert log inspection router for the CareAlert relay.

Out-of-band view of the history ring.  ``DELETE /logs`` is destructive
and visible to every observer, so it is only mounted outside production
mode, or in production when an admin token is configured.
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException

from ca_common.config import Settings

from relay.dependencies import get_app_settings, get_hub
from relay.hub import RelayHub

router = APIRouter(tags=["logs"])


@router.get("/logs")
async def list_logs(hub: RelayHub = Depends(get_hub)) -> dict[str, Any]:
    """Return ``{"count", "logs"}`` with the newest stored alerts first."""
    return hub.snapshot()


async def _require_admin(
    settings: Settings = Depends(get_app_settings),
    x_admin_token: str | None = Header(default=None),
) -> None:
    if not settings.production:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=403, detail="Forbidden")


clear_router = APIRouter(tags=["logs"])


@clear_router.delete("/logs", dependencies=[Depends(_require_admin)])
async def clear_logs(hub: RelayHub = Depends(get_hub)) -> dict[str, bool]:
    """Empty the alert history."""
    hub.clear()
    return {"ok": True}


def clear_enabled(settings: Settings) -> bool:
    """Whether ``DELETE /logs`` should be mounted for *settings*."""
    return not settings.production or bool(settings.admin_token)
