"""
Caregiver dashboard entry point for CareAlert.

Connects to the relay as an observer and logs every alert the relay
broadcasts, together with the caregiver toast.

Usage:
    carealert-watch --url ws://localhost:4000/ws
    carealert-watch --test
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
from typing import Any

import structlog

from ca_common.config import Settings, get_settings
from ca_common.logging import configure_logging
from ca_common.messaging.connection import ConnectionManager

from dashboard.feed import AlertFeed
from dashboard.ws_client import ObserverClient

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the dashboard."""
    parser = argparse.ArgumentParser(description="CareAlert caregiver dashboard")
    parser.add_argument("--url", type=str, default=None, help="Relay WebSocket URL")
    parser.add_argument(
        "--test",
        action="store_true",
        help="Raise a local test alert on startup",
    )
    return parser.parse_args(argv)


def _log_toast(value: str | None) -> None:
    if value is not None:
        logger.info("toast", text=value)


def _log_status(value: str | None) -> None:
    if value is not None:
        logger.info("relay_status", status=value)


async def run(settings: Settings, args: argparse.Namespace) -> int:
    """Observe the relay until SIGINT/SIGTERM or until reconnecting gives up."""
    feed = AlertFeed(on_toast=_log_toast)
    conn = ConnectionManager(
        settings.relay_url,
        max_attempts=settings.reconnect_attempts,
        delay_s=settings.reconnect_delay_ms / 1000,
        on_status=_log_status,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with ObserverClient(conn, feed) as client:
        if args.test:
            feed.test_alert()
        logger.info("dashboard_ready", relay_url=settings.relay_url)
        waiters = [asyncio.create_task(stop.wait()), asyncio.create_task(conn.wait_closed())]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        gave_up = conn.gave_up
        logger.info("dashboard_stopped", alerts=len(feed), connected=client.connected)
    if gave_up:
        logger.error("dashboard_disconnected", error=conn.error)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Console-script entry point."""
    args = parse_args(argv)
    overrides: dict[str, Any] = {}
    if args.url:
        overrides["relay_url"] = args.url
    settings = get_settings().model_copy(update=overrides)
    configure_logging(settings.log_level, json=settings.log_json)
    return asyncio.run(run(settings, args))


if __name__ == "__main__":
    raise SystemExit(main())
