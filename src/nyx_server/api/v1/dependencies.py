"""Shared FastAPI dependencies for version 1 endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session

from nyx_server.db.session import SessionLocal, get_db
from nyx_server.realtime.hub import MessagingHub

SessionDep = Annotated[Session, Depends(get_db)]


def get_hub(connection: HTTPConnection) -> MessagingHub:
    """Return the process-wide messaging hub stored on the application."""
    hub: MessagingHub | None = getattr(connection.app.state, "hub", None)
    if hub is None:
        hub = MessagingHub(SessionLocal)
        connection.app.state.hub = hub
    return hub


HubDep = Annotated[MessagingHub, Depends(get_hub)]


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
