"""Live connection handles used by the messaging hub."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import WebSocket


class Connection:
    """A live client connection identified by a server-assigned id.

    ``user_id`` is set once the connection authenticates. Subclasses
    implement :meth:`send` for their transport; tests use an in-memory
    subclass that records payloads.
    """

    def __init__(self, connection_id: str | None = None) -> None:
        self.id = connection_id or uuid.uuid4().hex
        self.user_id: str | None = None

    async def send(self, payload: dict[str, Any]) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, user_id={self.user_id!r})"


class WebSocketConnection(Connection):
    """Connection backed by a FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        super().__init__(connection_id)
        self.websocket = websocket

    async def send(self, payload: dict[str, Any]) -> None:
        await self.websocket.send_json(payload)
