"""Chat creation, listing and history endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Response, status

from nyx_server.core.settings import settings
from nyx_server.schemas.chat import (
    ChatSummary,
    GroupChatCreate,
    GroupChatResponse,
    PrivateChatCreate,
    PrivateChatResponse,
)
from nyx_server.schemas.common import StatusResponse
from nyx_server.schemas.message import MarkReadRequest, MessageOut
from nyx_server.services.chats import (
    create_group_chat,
    create_private_chat,
    list_user_chats,
    mark_read,
)
from nyx_server.services.history import list_history

from ..dependencies import HubDep, SessionDep

router = APIRouter(prefix="/chats", tags=["chats"])


@router.post("/private", response_model=PrivateChatResponse)
async def open_private_chat(
    request: PrivateChatCreate,
    response: Response,
    db: SessionDep,
    hub: HubDep,
) -> PrivateChatResponse:
    """Return the private chat of two users, creating it on first use."""
    chat, existing = create_private_chat(db, request.user_id, request.contact_id)
    if not existing:
        response.status_code = status.HTTP_201_CREATED
        await hub.attach_chat(chat.id, [request.user_id, request.contact_id])
    return PrivateChatResponse(chat_id=chat.id, existing=existing)


@router.post("/group", response_model=GroupChatResponse, status_code=status.HTTP_201_CREATED)
async def open_group_chat(request: GroupChatCreate, db: SessionDep, hub: HubDep) -> GroupChatResponse:
    """Create a group chat; the creator is always a member."""
    chat, members = create_group_chat(db, request.name, request.creator_id, request.participants)
    await hub.attach_chat(chat.id, members)
    return GroupChatResponse(chat_id=chat.id, name=chat.name or request.name, participants=members)


@router.get("/user/{user_id}", response_model=list[ChatSummary])
async def get_user_chats(user_id: str, db: SessionDep) -> list[ChatSummary]:
    """List the user's chats with unread counts and last messages."""
    return list_user_chats(db, user_id)


@router.get("/{chat_id}/messages", response_model=list[MessageOut])
async def get_messages(
    chat_id: str,
    db: SessionDep,
    limit: int = Query(settings.history_default_limit, ge=1),
    before: datetime | None = Query(None),
) -> list[MessageOut]:
    """Return a page of history in ascending timestamp order.

    ``before`` selects messages strictly older than the given timestamp;
    ``limit`` is capped at the configured maximum.
    """
    return list_history(db, chat_id, limit, before)


@router.post("/{chat_id}/read", response_model=StatusResponse)
async def read_chat(chat_id: str, request: MarkReadRequest, db: SessionDep) -> StatusResponse:
    mark_read(db, chat_id, request.user_id)
    return StatusResponse(status="read")
