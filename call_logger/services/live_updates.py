"""
Live Update Hub.

Keeps the set of connected viewer WebSockets and pushes every event to
all of them concurrently. Delivery is fire-and-forget: nothing is
acknowledged, and a socket that fails or stalls past ``send_timeout`` is
dropped from the set.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import WebSocket

from call_logger.logging_config import get_logger

logger = get_logger(__name__)

# Event names understood by the browser client
EVENT_VAPI = "vapi-event"
EVENT_CALL_DATA = "call-data-received"
EVENT_CONNECTED = "connected"

# Seconds a single viewer may take to accept a frame
DEFAULT_SEND_TIMEOUT = 5.0


class LiveUpdateHub:
    """Broadcasts ``{"event": ..., "data": ...}`` frames to connected viewers."""

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT) -> None:
        self.send_timeout = send_timeout
        self._connections: set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("viewer_connected", viewers=len(self._connections))
        await websocket.send_json({"event": EVENT_CONNECTED, "data": {"viewers": len(self._connections)}})

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.info("viewer_disconnected", viewers=len(self._connections))

    async def broadcast(self, event: str, data: Any) -> None:
        """Send one frame to every viewer at once; slow or broken viewers are dropped."""
        frame = {"event": event, "data": data}
        viewers = list(self._connections)
        if not viewers:
            return

        results = await asyncio.gather(
            *(asyncio.wait_for(ws.send_json(frame), self.send_timeout) for ws in viewers),
            return_exceptions=True,
        )
        for websocket, result in zip(viewers, results):
            if isinstance(result, BaseException):
                reason = "timeout" if isinstance(result, asyncio.TimeoutError) else str(result)
                logger.warning("viewer_send_failed", live_event=event, error=reason)
                self._connections.discard(websocket)
