"""
Relay connection manager for CareAlert clients.

Keeps one logical WebSocket connection to the relay.  Connecting is
retried with a fixed attempt cap and a fixed delay (tenacity).  When an
established connection drops, the same policy runs again.  Once the cap
is exhausted the manager stays in a persistent disconnected state with the
last error displayed; it never raises into the owning session.

Sends are fire-and-forget: with no live connection a submission is
dropped, never queued.

Usage::

    async with ConnectionManager(url) as conn:
        conn.on(EventName.ALERT, handle_alert)
        conn.submit(AlertSubmission(...))
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
import websockets
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ca_common.errors import TransportError
from ca_common.models.alert import AlertSubmission
from ca_common.models.envelope import EventName, decode, encode
from ca_common.timers import TimedIndicator

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS: int = 5
DEFAULT_DELAY_S: float = 1.0
CONNECTED_BANNER_S: float = 2.0
CONNECTED_BANNER = "connected"

EventHandler = Callable[[Any], None]
Connector = Callable[[str], Awaitable[Any]]

_RETRYABLE = (OSError, asyncio.TimeoutError, websockets.WebSocketException, TransportError)


class ConnectionManager:
    """Own one auto-reconnecting WebSocket connection to the relay.

    Args:
        url: Relay WebSocket URL (``ws://host:port/ws``).
        max_attempts: Connection attempts per reconnect cycle.
        delay_s: Fixed delay between attempts.
        connector: Coroutine factory opening a connection; defaults to
            :func:`websockets.connect`.
        on_status: Called when the "connected" banner is shown or cleared.

    Attributes:
        connected: ``True`` while a connection is established.
        error: Last connection error message shown to the user.
        gave_up: ``True`` once a reconnect cycle exhausted its attempts.
        status: Transient "connected" banner, cleared after 2 s.
    """

    def __init__(
        self,
        url: str,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay_s: float = DEFAULT_DELAY_S,
        connector: Connector | None = None,
        on_status: Callable[[str | None], None] | None = None,
    ) -> None:
        self.url = url
        self.max_attempts = max_attempts
        self.delay_s = delay_s
        self._connector: Connector = connector or websockets.connect
        self._ws: Any | None = None
        self._task: asyncio.Task[None] | None = None
        self._sends: set[asyncio.Task[bool]] = set()
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._closed = False

        self.connected = False
        self.error: str | None = None
        self.gave_up = False
        self.status: TimedIndicator[str] = TimedIndicator(
            CONNECTED_BANNER_S, on_change=on_status
        )

    # ── lifecycle ──

    async def __aenter__(self) -> ConnectionManager:
        self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def open(self) -> None:
        """Start the connect/read loop (idempotent)."""
        if self._closed:
            raise RuntimeError("ConnectionManager is closed.")
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="relay-connection")

    async def close(self) -> None:
        """Cancel reconnect attempts and close the socket unconditionally."""
        self._closed = True
        self.status.clear()
        # Read before cancelling; the loop drops its reference on the way out.
        ws, self._ws = self._ws, None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if ws is not None:
            try:
                await ws.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug("relay_close_failed", error=str(exc))
        for send in list(self._sends):
            send.cancel()
        self.connected = False
        logger.info("relay_connection_closed", url=self.url)

    async def wait_closed(self) -> None:
        """Wait until the connection loop stops (give-up or close)."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    # ── events ──

    def on(self, event: EventName | str, handler: EventHandler) -> None:
        """Register *handler* for inbound *event* frames."""
        name = event.value if isinstance(event, EventName) else event
        self._handlers[name].append(handler)

    # ── sending ──

    def submit(self, submission: AlertSubmission) -> bool:
        """Fire-and-forget an ``alert`` frame.

        Returns:
            ``True`` if a send was dispatched, ``False`` if it was dropped
            because no connection is established.
        """
        return self._dispatch(encode(EventName.ALERT, submission.to_wire()))

    def ping(self) -> bool:
        """Fire-and-forget a ``ping`` frame."""
        return self._dispatch(encode(EventName.PING))

    def _dispatch(self, frame: str) -> bool:
        ws = self._ws
        if ws is None or not self.connected:
            logger.debug("relay_send_dropped", reason="not_connected")
            return False
        task = asyncio.create_task(self._send(ws, frame))
        self._sends.add(task)
        task.add_done_callback(self._sends.discard)
        return True

    async def _send(self, ws: Any, frame: str) -> bool:
        try:
            await ws.send(frame)
            return True
        except (websockets.ConnectionClosed, OSError) as exc:
            logger.warning("relay_send_failed", error=str(exc))
            return False

    # ── connection loop ──

    async def _run(self) -> None:
        while not self._closed:
            try:
                ws = await self._connect_with_retry()
            except RetryError:
                self.gave_up = True
                logger.error(
                    "relay_reconnect_exhausted",
                    url=self.url,
                    attempts=self.max_attempts,
                    last_error=self.error,
                )
                return

            self._on_connected(ws)
            try:
                await self._read_loop(ws)
            finally:
                self._ws = None
                self.connected = False
            if not self._closed:
                logger.warning("relay_connection_lost", url=self.url)

    async def _connect_with_retry(self) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay_s),
            retry=retry_if_exception_type(_RETRYABLE),
            before_sleep=self._log_retry,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    return await self._connector(self.url)
                except _RETRYABLE as exc:
                    self._on_connect_error(exc)
                    raise
        raise TransportError("unreachable")  # pragma: no cover

    def _log_retry(self, state: RetryCallState) -> None:
        logger.info(
            "relay_reconnect_attempt",
            url=self.url,
            attempt=state.attempt_number,
            max_attempts=self.max_attempts,
            delay_s=self.delay_s,
        )

    def _on_connected(self, ws: Any) -> None:
        self._ws = ws
        self.connected = True
        self.gave_up = False
        self.error = None
        self.status.show(CONNECTED_BANNER)
        logger.info("relay_connected", url=self.url)

    def _on_connect_error(self, exc: BaseException) -> None:
        self.connected = False
        self.error = f"Unable to connect to relay: {exc}"
        logger.warning("relay_connect_error", url=self.url, error=str(exc))

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                try:
                    envelope = decode(raw)
                except ValueError:
                    logger.warning("relay_frame_malformed")
                    continue
                for handler in self._handlers.get(envelope.event, ()):
                    try:
                        handler(envelope.data)
                    except Exception:  # noqa: BLE001
                        logger.exception("relay_handler_failed", frame_event=envelope.event)
        except websockets.ConnectionClosed as exc:
            logger.info("relay_connection_closed_by_peer", code=getattr(exc, "code", None))
