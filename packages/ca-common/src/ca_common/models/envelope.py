"""
Wire envelope for the CareAlert WebSocket protocol.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``.
"""

from __future__ import annotations

import enum
import json
from typing import Any

from pydantic import BaseModel, ValidationError


class EventName(str, enum.Enum):
    """Event names exchanged between clients and the relay."""

    INIT = "init"
    ALERT = "alert"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


class Envelope(BaseModel):
    """One protocol frame."""

    event: str
    data: Any = None


def encode(event: EventName | str, data: Any = None) -> str:
    """Serialise an envelope to a JSON text frame."""
    name = event.value if isinstance(event, EventName) else event
    frame: dict[str, Any] = {"event": name}
    if data is not None:
        frame["data"] = data
    return json.dumps(frame, ensure_ascii=False)


def decode(raw: str | bytes) -> Envelope:
    """Parse a JSON text frame into an :class:`Envelope`.

    Raises:
        ValueError: If *raw* is not JSON or has no ``event`` string.
    """
    try:
        return Envelope.model_validate(json.loads(raw))
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, ValidationError) as exc:
        raise ValueError(f"malformed frame: {exc}") from exc
