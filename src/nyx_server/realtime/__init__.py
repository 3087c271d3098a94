"""Real-time connection handling."""

from .connection import Connection, WebSocketConnection
from .hub import MessagingHub

__all__ = ["Connection", "MessagingHub", "WebSocketConnection"]
