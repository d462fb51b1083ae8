"""
Shared utility functions for CareAlert.

Timestamp formatting and connection-id generation used by the relay and
by the client services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_z(moment: datetime) -> str:
    """Format *moment* as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def local_time_str(moment: datetime | None = None) -> str:
    """Return a sender-local ``HH:MM:SS`` (24-hour) timestamp string."""
    return (moment or datetime.now()).strftime("%H:%M:%S")


def new_connection_id() -> str:
    """Return a fresh opaque connection identifier."""
    return uuid4().hex
