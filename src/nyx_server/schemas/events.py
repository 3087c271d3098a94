"""Event frames exchanged over the real-time connection.

Every frame is a JSON object ``{"event": <name>, "data": {...}}``. Inbound
frames are validated against a discriminated union before they reach any
core logic; outbound frames are built from the typed variants below so
every emitted payload has a fixed shape.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from nyx_server.core.errors import ValidationError
from nyx_server.schemas.common import CamelModel
from nyx_server.schemas.message import MessageOut, MessageType

# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class AuthData(CamelModel):
    user_id: str = Field(..., min_length=1)
    token: str | None = None


class MessageSendData(CamelModel):
    """Payload of ``message:send``.

    ``encryptedContent`` is accepted as a synonym of ``content`` for clients
    that still use the older field name.
    """

    chat_id: str = Field(..., min_length=1)
    sender_id: str | None = None
    content: str | None = None
    encrypted_content: str | None = None
    nonce: str = ""
    type: MessageType = "text"
    reply_to: str | None = None

    @model_validator(mode="after")
    def _require_body(self) -> MessageSendData:
        if not (self.body or "").strip():
            raise ValueError("content is required")
        return self

    @property
    def body(self) -> str | None:
        return self.content if self.content is not None else self.encrypted_content


class ChatRef(CamelModel):
    chat_id: str = Field(..., min_length=1)


class AuthEvent(CamelModel):
    event: Literal["auth"]
    data: AuthData


class MessageSendEvent(CamelModel):
    event: Literal["message:send"]
    data: MessageSendData


class TypingEvent(CamelModel):
    event: Literal["message:typing"]
    data: ChatRef


class ChatJoinEvent(CamelModel):
    event: Literal["chat:join"]
    data: ChatRef


class ChatLeaveEvent(CamelModel):
    event: Literal["chat:leave"]
    data: ChatRef


InboundEvent = Annotated[
    Union[AuthEvent, MessageSendEvent, TypingEvent, ChatJoinEvent, ChatLeaveEvent],
    Field(discriminator="event"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundEvent)


def _describe(err: PydanticValidationError) -> str:
    first = err.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def parse_inbound(raw: str | bytes) -> AuthEvent | MessageSendEvent | TypingEvent | ChatJoinEvent | ChatLeaveEvent:
    """Validate a raw frame and return the matching inbound variant.

    Raises:
        ValidationError: If the frame is not JSON, names an unknown event or
            carries a malformed payload.
    """
    try:
        return _inbound_adapter.validate_json(raw)
    except PydanticValidationError as err:
        raise ValidationError(f"Malformed event: {_describe(err)}", code="malformed_event") from err


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class OutboundEvent(CamelModel):
    """Base class for server-to-client frames."""

    event: str
    data: Any

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserRef(CamelModel):
    user_id: str


class TypingNotice(CamelModel):
    chat_id: str
    user_id: str


class AuthOk(CamelModel):
    user_id: str
    chats: list[str]


class ErrorData(CamelModel):
    code: str
    detail: str
    event: str | None = None


class MessageNew(OutboundEvent):
    event: Literal["message:new"] = "message:new"
    data: MessageOut


class UserOnline(OutboundEvent):
    event: Literal["user:online"] = "user:online"
    data: UserRef


class UserOffline(OutboundEvent):
    event: Literal["user:offline"] = "user:offline"
    data: UserRef


class TypingNotification(OutboundEvent):
    event: Literal["message:typing"] = "message:typing"
    data: TypingNotice


class AuthAccepted(OutboundEvent):
    event: Literal["auth:ok"] = "auth:ok"
    data: AuthOk


class ChatJoined(OutboundEvent):
    event: Literal["chat:joined"] = "chat:joined"
    data: ChatRef


class ChatLeft(OutboundEvent):
    event: Literal["chat:left"] = "chat:left"
    data: ChatRef


class ErrorEvent(OutboundEvent):
    event: Literal["error"] = "error"
    data: ErrorData
