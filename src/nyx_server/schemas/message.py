# src/nyx_server/schemas/message.py
"""Message-related Pydantic schemas."""

from typing import Literal

from nyx_server.schemas.common import CamelModel, UtcDatetime

MessageType = Literal["text", "image", "audio"]


class MessageOut(CamelModel):
    """Full message as broadcast in ``message:new`` and returned by history."""

    id: str
    chat_id: str
    sender_id: str
    content: str
    nonce: str = ""
    type: MessageType = "text"
    reply_to: str | None = None
    expires_at: UtcDatetime | None = None
    timestamp: UtcDatetime


class LastMessage(CamelModel):
    """Preview of the newest message of a chat."""

    id: str
    sender_id: str
    content: str
    type: MessageType = "text"
    timestamp: UtcDatetime


class MarkReadRequest(CamelModel):
    """Advance a participant's read marker to now."""

    user_id: str
