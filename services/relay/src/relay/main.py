"""
CareAlert relay entry point.

Creates the FastAPI application that hosts the relay hub:

* ``/ws``: the realtime alert channel.
* ``/logs``: out-of-band view (and, outside production, reset) of the
  alert history.
* ``/``, ``/ping``, ``/health`` and ``/metrics``.

The hub is built in the lifespan from :class:`~ca_common.config.Settings`
and torn down on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from starlette.exceptions import HTTPException as StarletteHTTPException

from ca_common.config import Settings, get_settings
from ca_common.logging import configure_logging

from relay.health import router as health_router
from relay.hub import RelayHub
from relay.middleware.cors import add_cors
from relay.middleware.logging import LoggingMiddleware
from relay.routers import logs, ws

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle: own exactly one hub per process."""
    settings: Settings = app.state.settings
    hub = RelayHub(
        capacity=settings.ring_capacity,
        init_replay=settings.init_replay,
        snapshot_size=settings.snapshot_size,
        send_timeout_s=settings.send_timeout_ms / 1000,
    )
    app.state.hub = hub
    logger.info(
        "relay_starting",
        port=settings.port,
        ring_capacity=settings.ring_capacity,
        production=settings.production,
    )
    yield
    logger.info("relay_stopping")
    await hub.close()
    app.state.hub = None


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse({"error": "Not Found", "url": request.url.path}, status_code=404)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _server_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("server_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse({"error": str(exc) or "Server error"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the relay FastAPI application.

    Args:
        settings: Configuration to use; read from the environment when omitted.
    """
    settings = settings or get_settings()
    app = FastAPI(title="CareAlert Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.include_router(health_router)
    app.include_router(logs.router)
    if logs.clear_enabled(settings):
        app.include_router(logs.clear_router)
    app.include_router(ws.router)

    app.mount("/metrics", make_asgi_app())

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _server_error)

    # ── Middleware (applied outermost-first) ──
    app.add_middleware(LoggingMiddleware)
    add_cors(app, settings.allowed_origins)

    return app


def main() -> None:
    """Run the relay with Uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
