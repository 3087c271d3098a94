# src/nyx_server/models/__init__.py
"""SQLAlchemy models for the Nyx server."""

from .chat import CHAT_TYPE_GROUP, CHAT_TYPE_PRIVATE, Chat, ChatParticipant
from .contact import Contact
from .message import MESSAGE_TYPES, Message
from .user import AuthSession, User

__all__ = [
    "AuthSession", "User",
    "Chat", "ChatParticipant", "CHAT_TYPE_PRIVATE", "CHAT_TYPE_GROUP",
    "Contact",
    "Message", "MESSAGE_TYPES",
]
