"""
WebSocket endpoint for the CareAlert relay.

One socket per sender or observer.  Every inbound frame, text or binary,
is handed to the hub; the hub owns all replies and broadcasts.
"""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from relay.dependencies import get_ws_hub

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def relay_socket(ws: WebSocket) -> None:
    await ws.accept()
    hub = get_ws_hub(ws)
    if hub is None:
        await ws.close(code=1011, reason="Relay unavailable")
        return

    connection_id = await hub.connect(ws)
    reason = "client_closed"
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                reason = f"code={message.get('code', 1000)}"
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await hub.handle_frame(connection_id, raw)
    except WebSocketDisconnect as exc:
        reason = f"code={exc.code}"
    finally:
        hub.disconnect(connection_id, reason=reason)
