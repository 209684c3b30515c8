"""
API Router: Live Viewer Channel.

Viewers receive ``{"event", "data"}`` frames for every Vapi message and
every derived call result. They send ``call-started`` / ``call-ended``
frames, which update the active-call registry.
"""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from call_logger.api.deps import AppServices
from call_logger.logging_config import get_logger
from call_logger.services.call_registry import apply_viewer_event

logger = get_logger(__name__)
router = APIRouter(tags=["Live"])


@router.websocket("/ws")
async def live_updates(websocket: WebSocket) -> None:
    services: AppServices = websocket.app.state.services
    await services.hub.connect(websocket)

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except (ValueError, KeyError):
                # KeyError: binary frame, receive_json reads only "text"
                logger.warning("viewer_frame_not_json")
                continue
            await apply_viewer_event(services.registry, frame)
    except WebSocketDisconnect:
        pass
    finally:
        services.hub.disconnect(websocket)
