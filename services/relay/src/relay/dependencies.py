"""
FastAPI dependency injection providers for the CareAlert relay.

The :class:`~relay.hub.RelayHub` is created once in the application
lifespan and stored on ``app.state``; handlers receive it through these
providers instead of importing a module-level instance.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, WebSocket

from ca_common.config import Settings, get_settings

from relay.hub import RelayHub


def get_hub(request: Request) -> RelayHub:
    """Return the shared relay hub from app state."""
    hub = getattr(request.app.state, "hub", None)
    if hub is None:
        raise HTTPException(status_code=503, detail="Relay hub not initialised")
    return hub


def get_ws_hub(ws: WebSocket) -> RelayHub | None:
    """Return the shared relay hub for a WebSocket handler, if started."""
    return getattr(ws.app.state, "hub", None)


def get_app_settings(request: Request) -> Settings:
    """Return the settings the app was built with (falls back to env)."""
    return getattr(request.app.state, "settings", None) or get_settings()
