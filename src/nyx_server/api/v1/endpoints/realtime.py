"""WebSocket endpoint for the real-time event stream."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from nyx_server.realtime.connection import WebSocketConnection

from ..dependencies import HubDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def event_stream(websocket: WebSocket, hub: HubDep) -> None:
    """Accept a client connection and feed its frames to the hub.

    Frames are processed one at a time in arrival order. Disconnecting
    tears down presence and room state; a message already being submitted
    is still persisted and broadcast.
    """
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    hub.connect(connection)
    try:
        while True:
            raw = await websocket.receive_text()
            await hub.handle(connection, raw)
    except WebSocketDisconnect as exc:
        logger.debug("Connection %s disconnected with code %s", connection.id, exc.code)
    finally:
        await hub.disconnect(connection)
