"""
Relay observer for the CareAlert dashboard.

Binds an :class:`AlertFeed` to a relay :class:`ConnectionManager` so the
feed tracks the shared alert stream.
"""

from __future__ import annotations

from typing import Any

import structlog

from ca_common.messaging.connection import ConnectionManager
from ca_common.models.envelope import EventName

from dashboard.feed import AlertFeed

logger = structlog.get_logger()


class ObserverClient:
    """Receive ``init`` and ``alert`` events from the relay into a feed.

    Args:
        conn: Relay connection (opened and closed by this client).
        feed: Feed the events are applied to.
    """

    def __init__(self, conn: ConnectionManager, feed: AlertFeed) -> None:
        self.conn = conn
        self.feed = feed
        conn.on(EventName.INIT, feed.handle_init)
        conn.on(EventName.ALERT, feed.handle_alert)
        conn.on(EventName.ERROR, self._on_error)

    @property
    def connected(self) -> bool:
        return self.conn.connected

    @property
    def error(self) -> str | None:
        return self.conn.error

    async def __aenter__(self) -> ObserverClient:
        self.conn.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        self.feed.close()
        await self.conn.close()

    @staticmethod
    def _on_error(data: Any) -> None:
        error = data.get("error") if isinstance(data, dict) else data
        logger.warning("relay_error", error=error)
