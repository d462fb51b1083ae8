"""
Relay hub for CareAlert.

The single shared broadcast point.  Owns the live-connection registry and
the :class:`~relay.history.HistoryRing`; nothing else may read or write
either structure.

Flow
----
1. ``connect``: assign an opaque id, register, replay the newest
   ``init_replay`` records as an ``init`` frame.
2. ``submit``: validate; on failure reply ``error`` to the originator
   only.  On success stamp ``receivedAt``/``from``, push to the ring and
   broadcast ``alert`` to every live connection, originator included.
3. ``disconnect``: unregister; nothing else.

Submit and broadcast run under one ``asyncio.Lock`` so broadcasts never
interleave and broadcast order equals acceptance order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from prometheus_client import Counter, Gauge
from starlette.websockets import WebSocketDisconnect

from ca_common.errors import InvalidAlert
from ca_common.models.alert import AlertRecord, AlertSubmission
from ca_common.models.envelope import EventName, decode, encode
from ca_common.utils import new_connection_id, utc_now

from relay.history import DEFAULT_CAPACITY, HistoryRing

logger = structlog.get_logger()

# ── Prometheus metrics ──
ALERTS_ACCEPTED = Counter(
    "relay_alerts_accepted_total",
    "Total alerts accepted and broadcast by the relay.",
    ["keyword"],
)
ALERTS_REJECTED = Counter(
    "relay_alerts_rejected_total",
    "Total alert submissions rejected by validation.",
)
LIVE_CONNECTIONS = Gauge(
    "relay_live_connections",
    "Number of currently connected clients.",
)
SEND_FAILURES = Counter(
    "relay_send_failures_total",
    "Total frames that could not be delivered to a connection.",
)

DEFAULT_INIT_REPLAY = 10
DEFAULT_SNAPSHOT_SIZE = 50
DEFAULT_SEND_TIMEOUT_S = 5.0

_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError, asyncio.TimeoutError)


class RelayHub:
    """Single-owner alert relay.

    Created once at application startup and injected into the WebSocket
    and HTTP handlers.

    Args:
        ring: History ring to own.  A new ring of ``capacity`` is created
              when omitted.
        capacity: Ring capacity used when *ring* is omitted.
        init_replay: Records replayed to each new connection.
        snapshot_size: Records returned by :meth:`snapshot`.
        clock: Returns the current UTC time (injectable for tests).
        send_timeout_s: Per-frame send deadline; a connection that misses it
            is dropped so it cannot stall the broadcast.
    """

    def __init__(
        self,
        ring: HistoryRing | None = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        init_replay: int = DEFAULT_INIT_REPLAY,
        snapshot_size: int = DEFAULT_SNAPSHOT_SIZE,
        clock: Callable[[], datetime] = utc_now,
        send_timeout_s: float = DEFAULT_SEND_TIMEOUT_S,
    ) -> None:
        self._ring = ring if ring is not None else HistoryRing(capacity)
        self._connections: dict[str, Any] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._last_received_at: datetime | None = None
        self.init_replay = init_replay
        self.snapshot_size = snapshot_size
        self.send_timeout_s = send_timeout_s

    # ── introspection ──

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def stored(self) -> int:
        return len(self._ring)

    # ── connection lifecycle ──

    async def connect(self, ws: Any) -> str:
        """Register *ws* and replay recent history to it.

        Args:
            ws: An accepted connection exposing ``async send_text(str)``.

        Returns:
            The opaque connection id assigned to *ws*.
        """
        connection_id = new_connection_id()
        async with self._lock:
            self._connections[connection_id] = ws
            LIVE_CONNECTIONS.set(len(self._connections))
            recent = self._ring.peek(self.init_replay)
            logger.info(
                "client_connected",
                connection_id=connection_id,
                replayed=len(recent),
                total=len(self._connections),
            )
            await self._send(
                connection_id,
                ws,
                encode(EventName.INIT, [r.to_wire() for r in recent]),
            )
        return connection_id

    def disconnect(self, connection_id: str, reason: str = "") -> None:
        """Remove *connection_id* from the live set (unknown ids are ignored)."""
        if self._connections.pop(connection_id, None) is not None:
            LIVE_CONNECTIONS.set(len(self._connections))
            logger.info(
                "client_disconnected",
                connection_id=connection_id,
                reason=reason,
                total=len(self._connections),
            )

    async def close(self) -> None:
        """Drop every live connection (sockets are closed by their handlers)."""
        self._connections.clear()
        LIVE_CONNECTIONS.set(0)
        logger.info("relay_hub_closed")

    # ── inbound ──

    async def handle_frame(self, connection_id: str, raw: str | bytes) -> None:
        """Decode one inbound text frame and route it."""
        try:
            envelope = decode(raw)
        except ValueError:
            logger.warning("frame_malformed", connection_id=connection_id)
            await self._reply_error(connection_id, "Malformed frame")
            return

        if envelope.event == EventName.ALERT.value:
            await self.submit(connection_id, envelope.data)
        elif envelope.event == EventName.PING.value:
            await self.ping(connection_id)
        else:
            logger.warning(
                "frame_unknown_event",
                connection_id=connection_id,
                frame_event=envelope.event,
            )
            await self._reply_error(connection_id, "Unknown event")

    async def submit(self, connection_id: str, payload: Any) -> AlertRecord | None:
        """Validate, store and broadcast an alert submission.

        Args:
            connection_id: Id of the submitting connection.
            payload: Decoded ``data`` of the ``alert`` frame.

        Returns:
            The stored :class:`AlertRecord`, or ``None`` if rejected.
        """
        try:
            submission = AlertSubmission.parse_payload(payload)
        except InvalidAlert as exc:
            ALERTS_REJECTED.inc()
            logger.warning("alert_rejected", connection_id=connection_id, payload=repr(payload))
            await self._reply_error(connection_id, exc.reason)
            return None

        async with self._lock:
            received_at = self._clock()
            if self._last_received_at is not None and received_at < self._last_received_at:
                received_at = self._last_received_at
            self._last_received_at = received_at

            record = AlertRecord.stamp(
                submission,
                connection_id=connection_id,
                received_at=received_at,
            )
            self._ring.push(record)
            ALERTS_ACCEPTED.labels(keyword=record.keyword).inc()
            wire = record.to_wire()
            logger.info(
                "alert_received",
                message=record.message,
                keyword=record.keyword,
                time=record.time,
                received_at=wire["receivedAt"],
                connection_id=connection_id,
            )
            delivered = await self._broadcast(encode(EventName.ALERT, wire))

        logger.debug("alert_broadcast", delivered=delivered)
        return record

    async def ping(self, connection_id: str) -> None:
        """Answer a liveness probe from *connection_id*."""
        ws = self._connections.get(connection_id)
        if ws is not None:
            await self._send(connection_id, ws, encode(EventName.PONG))

    # ── out-of-band inspection ──

    def snapshot(self) -> dict[str, Any]:
        """Return ``{"count", "logs"}`` with the newest ``snapshot_size`` records."""
        return {
            "count": len(self._ring),
            "logs": [r.to_wire() for r in self._ring.peek(self.snapshot_size)],
        }

    def clear(self) -> int:
        """Empty the history ring.

        Returns:
            Number of records removed.
        """
        removed = len(self._ring)
        self._ring.clear()
        logger.warning("alert_history_cleared", removed=removed)
        return removed

    # ── outbound ──

    async def _broadcast(self, frame: str) -> int:
        delivered = 0
        for connection_id, ws in list(self._connections.items()):
            if await self._send(connection_id, ws, frame):
                delivered += 1
        return delivered

    async def _reply_error(self, connection_id: str, message: str) -> None:
        ws = self._connections.get(connection_id)
        if ws is not None:
            await self._send(connection_id, ws, encode(EventName.ERROR, {"error": message}))

    async def _send(self, connection_id: str, ws: Any, frame: str) -> bool:
        try:
            await asyncio.wait_for(ws.send_text(frame), self.send_timeout_s)
            return True
        except _SEND_ERRORS as exc:
            SEND_FAILURES.inc()
            logger.info(
                "client_send_failed",
                connection_id=connection_id,
                error=str(exc) or type(exc).__name__,
            )
            self.disconnect(connection_id, reason="send_failed")
            return False
