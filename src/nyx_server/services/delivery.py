"""Message ingest and fan-out pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from nyx_server.core.errors import ForbiddenError, NotFoundError, StoreError, ValidationError
from nyx_server.db.time import as_utc, utcnow
from nyx_server.models import MESSAGE_TYPES, Message
from nyx_server.repositories import ChatRepository, UserRepository
from nyx_server.schemas.events import MessageNew, OutboundEvent
from nyx_server.schemas.message import MessageOut
from nyx_server.services.history import to_message_out
from nyx_server.services.ids import generate_message_id
from nyx_server.services.rooms import RoomMembershipManager
from nyx_server.services.store import SessionFactory, run_in_store

logger = logging.getLogger(__name__)

# send(connection_ids, event) delivers to live connections and returns how many succeeded.
Send = Callable[[set[str], OutboundEvent], Awaitable[int]]


class MessagePipeline:
    """Persist a new message, then broadcast it to the chat's room.

    Submissions for the same chat are serialized by a per-chat lock held
    across persist and broadcast, so broadcast order equals commit order
    within a chat. Different chats proceed independently.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        rooms: RoomMembershipManager,
        send: Send,
        *,
        enforce_membership: bool = True,
        max_content_length: int = 8 * 1024 * 1024,
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._rooms = rooms
        self._send = send
        self._enforce_membership = enforce_membership
        self._max_content_length = max_content_length
        self._timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    async def submit(
        self,
        chat_id: str,
        sender_id: str,
        content: str,
        message_type: str = "text",
        reply_to: str | None = None,
        nonce: str = "",
    ) -> MessageOut:
        """Persist and broadcast one message.

        Returns:
            The stored message as sent in ``message:new``.

        Raises:
            ValidationError: Empty or oversized content, unknown type or a
                reply target outside the chat.
            NotFoundError: The chat does not exist.
            ForbiddenError: The sender is not a participant.
            StoreError: The write failed. Nothing is broadcast.
        """
        self._validate(content, message_type)

        async with self._chat_lock(chat_id):
            try:
                message = await run_in_store(
                    self._persist,
                    chat_id,
                    sender_id,
                    content,
                    message_type,
                    reply_to,
                    nonce,
                    timeout=self._timeout,
                )
            except SQLAlchemyError as err:
                logger.error("Failed to persist message in chat %s", chat_id, exc_info=True)
                raise StoreError("Message could not be stored") from err
            except StoreError:
                logger.error("Store timed out persisting message in chat %s", chat_id)
                raise

            recipients = self._rooms.subscribers(chat_id)
            delivered = await self._send(recipients, MessageNew(data=message))
            logger.debug(
                "Message %s delivered to %d/%d connections",
                message.id,
                delivered,
                len(recipients),
            )
            return message

    @asynccontextmanager
    async def _chat_lock(self, chat_id: str) -> AsyncIterator[None]:
        """Hold the chat's lock; it is dropped once no submission holds or awaits it."""
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._lock_holders[chat_id] = self._lock_holders.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[chat_id] -= 1
            if not self._lock_holders[chat_id]:
                del self._lock_holders[chat_id]
                del self._locks[chat_id]

    def _validate(self, content: str, message_type: str) -> None:
        if not content or not content.strip():
            raise ValidationError("Message content is required")
        if len(content) > self._max_content_length:
            raise ValidationError("Message content is too large")
        if message_type not in MESSAGE_TYPES:
            raise ValidationError(f"Unsupported message type: {message_type}")

    def _persist(
        self,
        chat_id: str,
        sender_id: str,
        content: str,
        message_type: str,
        reply_to: str | None,
        nonce: str,
    ) -> MessageOut:
        with self._session_factory() as db:
            chats = ChatRepository(db)
            if chats.get_chat(chat_id) is None:
                raise NotFoundError("Chat not found")
            if self._enforce_membership and not chats.is_participant(chat_id, sender_id):
                raise ForbiddenError("Sender is not a participant of this chat")
            if reply_to is not None:
                target = chats.get_message(reply_to)
                if target is None or target.chat_id != chat_id:
                    raise ValidationError("Reply target is not a message of this chat")

            created_at = utcnow()
            # Keep timestamps non-decreasing within a chat if the clock steps back.
            last = chats.last_message(chat_id)
            if last is not None and as_utc(last.created_at) > created_at:
                created_at = as_utc(last.created_at)

            sender = UserRepository(db).get(sender_id)
            expires_at = None
            if sender is not None and sender.auto_delete_messages:
                expires_at = created_at + timedelta(seconds=sender.auto_delete_messages)

            message = Message(
                id=generate_message_id(created_at),
                chat_id=chat_id,
                sender_id=sender_id,
                seq=chats.next_seq(chat_id),
                content=content,
                nonce=nonce,
                message_type=message_type,
                reply_to=reply_to,
                expires_at=expires_at,
                created_at=created_at,
            )
            chats.add_message(message)
            db.commit()
            return to_message_out(message)
