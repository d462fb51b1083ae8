"""
Listener entry point for CareAlert.

Wires a capture source, the command matcher, a relay connection and the
listening session together, then runs until interrupted or until the
capture input is exhausted.

Usage:
    carealert-listen --url ws://localhost:4000/ws
    carealert-listen --triggers triggers.json

With the ``stdin`` backend every line typed is treated as a recognized
utterance; ``/keyword`` sends that command directly.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
from typing import Any

import structlog

from ca_common.config import Settings, get_settings
from ca_common.errors import UnsupportedEnvironment
from ca_common.logging import configure_logging
from ca_common.messaging.connection import ConnectionManager
from ca_common.models.envelope import EventName
from ca_common.models.trigger import DEFAULT_TRIGGERS, load_triggers

from listener.capture import LineCaptureSource, resolve_capture_source
from listener.matcher import CommandMatcher
from listener.session import ListeningSession

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the listener."""
    parser = argparse.ArgumentParser(description="CareAlert voice listener")
    parser.add_argument("--url", type=str, default=None, help="Relay WebSocket URL")
    parser.add_argument("--triggers", type=str, default=None, help="JSON trigger table")
    parser.add_argument("--backend", type=str, default=None, help="Capture backend")
    parser.add_argument(
        "--idle-timeout",
        type=float,
        default=60.0,
        help="Seconds of silence after which a capture run ends",
    )
    return parser.parse_args(argv)


def _on_alert(data: Any) -> None:
    if isinstance(data, dict):
        logger.info("alert_relayed", message=data.get("message"), received_at=data.get("receivedAt"))


def _on_error(data: Any) -> None:
    error = data.get("error") if isinstance(data, dict) else data
    logger.warning("relay_rejected_alert", error=error)


async def run(settings: Settings, args: argparse.Namespace) -> int:
    """Run one listening session until SIGINT/SIGTERM or end of input.

    Returns:
        Process exit code.
    """
    triggers = load_triggers(args.triggers) if args.triggers else DEFAULT_TRIGGERS
    matcher = CommandMatcher(triggers)

    try:
        source = resolve_capture_source(settings, idle_timeout_s=args.idle_timeout)
        await source.prepare()
    except UnsupportedEnvironment as exc:
        logger.error("listener_unsupported_environment", error=str(exc))
        return 2

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with ConnectionManager(
        settings.relay_url,
        max_attempts=settings.reconnect_attempts,
        delay_s=settings.reconnect_delay_ms / 1000,
    ) as conn:
        conn.on(EventName.ALERT, _on_alert)
        conn.on(EventName.ERROR, _on_error)

        session = ListeningSession(source, conn, matcher)
        if isinstance(source, LineCaptureSource):
            source.on_command = session.trigger
        session.mount()
        logger.info(
            "listener_ready",
            relay_url=settings.relay_url,
            language=settings.language,
            keywords=[t.keyword for t in matcher.triggers],
        )

        waiters = [asyncio.create_task(stop.wait()), asyncio.create_task(source.eof.wait())]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            session.teardown()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Console-script entry point."""
    args = parse_args(argv)
    overrides: dict[str, Any] = {}
    if args.url:
        overrides["relay_url"] = args.url
    if args.backend:
        overrides["capture_backend"] = args.backend
    settings = get_settings().model_copy(update=overrides)
    configure_logging(settings.log_level, json=settings.log_json)
    return asyncio.run(run(settings, args))


if __name__ == "__main__":
    raise SystemExit(main())
