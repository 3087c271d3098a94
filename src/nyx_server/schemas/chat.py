# src/nyx_server/schemas/chat.py
"""Chat-related Pydantic schemas."""

from typing import Literal

from pydantic import Field

from nyx_server.schemas.common import CamelModel, UtcDatetime
from nyx_server.schemas.message import LastMessage


class PrivateChatCreate(CamelModel):
    """Schema for creating (or finding) the private chat of two users."""

    user_id: str = Field(..., min_length=1)
    contact_id: str = Field(..., min_length=1)


class PrivateChatResponse(CamelModel):
    """Identifier of the private chat and whether it already existed."""

    chat_id: str
    existing: bool


class GroupChatCreate(CamelModel):
    """Schema for creating a group chat; the creator is always a member."""

    name: str = Field(..., min_length=1, max_length=128)
    creator_id: str = Field(..., min_length=1)
    participants: list[str] = Field(default_factory=list)


class GroupChatResponse(CamelModel):
    """Created group chat with its resolved member list."""

    chat_id: str
    name: str
    participants: list[str]


class ChatSummary(CamelModel):
    """Chat list entry with derived unread count and last message."""

    id: str
    type: Literal["private", "group"]
    name: str | None = None
    avatar: str | None = None
    participants: list[str]
    unread_count: int = 0
    last_message: LastMessage | None = None
    created_at: UtcDatetime
