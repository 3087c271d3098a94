"""Pydantic schemas for the HTTP API and the real-time event boundary."""

from .chat import (
    ChatSummary,
    GroupChatCreate,
    GroupChatResponse,
    PrivateChatCreate,
    PrivateChatResponse,
)
from .contact import ContactCreate, ContactResponse
from .message import LastMessage, MarkReadRequest, MessageOut
from .user import (
    AuthResponse,
    LoginRequest,
    PresenceResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
    UserSearchResult,
)

__all__ = [
    "ChatSummary",
    "GroupChatCreate",
    "GroupChatResponse",
    "PrivateChatCreate",
    "PrivateChatResponse",
    "ContactCreate",
    "ContactResponse",
    "LastMessage",
    "MarkReadRequest",
    "MessageOut",
    "AuthResponse",
    "LoginRequest",
    "PresenceResponse",
    "ProfileUpdateRequest",
    "RegisterRequest",
    "UserResponse",
    "UserSearchResult",
]
