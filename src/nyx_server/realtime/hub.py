"""Top-level owner of live connection state and event dispatch.

The hub holds the connection table, the presence registry, the room
membership manager and the message pipeline for one server process. The
WebSocket endpoint feeds it raw frames; HTTP endpoints use it to query
presence and to attach newly created chats to live connections.
"""

from __future__ import annotations

import asyncio
import logging

import anyio
from sqlalchemy.exc import SQLAlchemyError

from nyx_server.core.errors import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    NyxError,
    StoreError,
    ValidationError,
)
from nyx_server.core.settings import settings
from nyx_server.realtime.connection import Connection
from nyx_server.repositories import ChatRepository, UserRepository
from nyx_server.schemas.events import (
    AuthAccepted,
    AuthData,
    AuthEvent,
    AuthOk,
    ChatJoined,
    ChatJoinEvent,
    ChatLeaveEvent,
    ChatLeft,
    ChatRef,
    ErrorData,
    ErrorEvent,
    MessageSendData,
    MessageSendEvent,
    OutboundEvent,
    TypingEvent,
    TypingNotice,
    TypingNotification,
    parse_inbound,
)
from nyx_server.services.delivery import MessagePipeline
from nyx_server.services.presence import PresenceRegistry
from nyx_server.services.rooms import RoomMembershipManager
from nyx_server.services.store import SessionFactory, run_in_store
from nyx_server.services.users import verify_session_token

logger = logging.getLogger(__name__)


class MessagingHub:
    """Dispatch real-time events and fan outbound events out to connections."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        enforce_membership: bool | None = None,
        socket_token_required: bool | None = None,
        store_timeout: float | None = None,
        max_content_length: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._enforce_membership = (
            settings.enforce_chat_membership if enforce_membership is None else enforce_membership
        )
        self._token_required = (
            settings.socket_token_required if socket_token_required is None else socket_token_required
        )
        self._timeout = store_timeout if store_timeout is not None else settings.store_timeout_seconds
        self._connections: dict[str, Connection] = {}

        self.presence = PresenceRegistry(self.broadcast_all)
        self.rooms = RoomMembershipManager(self._load_chat_ids, timeout=self._timeout)
        self.pipeline = MessagePipeline(
            session_factory,
            self.rooms,
            self.send_to,
            enforce_membership=self._enforce_membership,
            max_content_length=max_content_length or settings.max_content_length,
            timeout=self._timeout,
        )

    # -- connection lifecycle ----------------------------------------------

    def connect(self, connection: Connection) -> None:
        """Start tracking a newly accepted connection."""
        self._connections[connection.id] = connection
        logger.info("Connection %s opened (%d live)", connection.id, len(self._connections))

    async def disconnect(self, connection: Connection) -> None:
        """Tear down presence and room state of a closed connection.

        Safe to call more than once for the same connection. Shielded from
        cancellation: state is already removed when the offline notice is
        awaited, so it must still be sent if the caller is being cancelled.
        """
        if self._connections.pop(connection.id, None) is None:
            return
        self.rooms.drop_connection(connection.id)
        with anyio.CancelScope(shield=True):
            await self.presence.unregister(connection.id)
        logger.info("Connection %s closed (user %s)", connection.id, connection.user_id)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # -- inbound events ----------------------------------------------------

    async def handle(self, connection: Connection, raw: str | bytes) -> None:
        """Validate and dispatch one inbound frame.

        Failures are reported to ``connection`` only, as an ``error`` event;
        the connection stays open.
        """
        event_name: str | None = None
        try:
            event = parse_inbound(raw)
            event_name = event.event
            if isinstance(event, AuthEvent):
                await self._on_auth(connection, event.data)
            elif isinstance(event, MessageSendEvent):
                await self._on_send(connection, event.data)
            elif isinstance(event, TypingEvent):
                await self._on_typing(connection, event.data)
            elif isinstance(event, ChatJoinEvent):
                await self._on_join(connection, event.data)
            elif isinstance(event, ChatLeaveEvent):
                await self._on_leave(connection, event.data)
        except NyxError as err:
            await self._report(connection, err, event_name)
        except SQLAlchemyError:
            logger.error("Store failure handling %s on %s", event_name, connection.id, exc_info=True)
            await self._report(connection, StoreError(), event_name)

    async def _on_auth(self, connection: Connection, data: AuthData) -> None:
        if self._token_required and not data.token:
            raise AuthenticationError("A session token is required")
        await run_in_store(self._authenticate, data.user_id, data.token, timeout=self._timeout)

        if connection.user_id is not None and connection.user_id != data.user_id:
            self.rooms.drop_connection(connection.id)
        connection.user_id = data.user_id
        logger.info("Connection %s authenticated as %s", connection.id, data.user_id)

        await self.presence.register(connection.id, data.user_id)
        await self.rooms.subscribe_all_persisted_chats(connection.id, data.user_id)
        chats = sorted(self.rooms.rooms_of(connection.id))
        await self._reply(connection, AuthAccepted(data=AuthOk(user_id=data.user_id, chats=chats)))

    async def _on_send(self, connection: Connection, data: MessageSendData) -> None:
        user_id = self._require_user(connection)
        if data.sender_id is not None and data.sender_id != user_id:
            raise ValidationError("senderId does not match the authenticated user")
        await self.pipeline.submit(
            data.chat_id,
            user_id,
            data.body or "",
            data.type,
            data.reply_to,
            data.nonce,
        )

    async def _on_typing(self, connection: Connection, data: ChatRef) -> None:
        user_id = self._require_user(connection)
        if data.chat_id not in self.rooms.rooms_of(connection.id):
            raise ForbiddenError("Join the chat before sending typing notifications")
        recipients = self.rooms.subscribers(data.chat_id) - {connection.id}
        notice = TypingNotice(chat_id=data.chat_id, user_id=user_id)
        await self.send_to(recipients, TypingNotification(data=notice))

    async def _on_join(self, connection: Connection, data: ChatRef) -> None:
        user_id = self._require_user(connection)
        if self._enforce_membership:
            await run_in_store(self._check_membership, data.chat_id, user_id, timeout=self._timeout)
        self.rooms.join_room(connection.id, data.chat_id)
        await self._reply(connection, ChatJoined(data=ChatRef(chat_id=data.chat_id)))

    async def _on_leave(self, connection: Connection, data: ChatRef) -> None:
        self._require_user(connection)
        self.rooms.leave_room(connection.id, data.chat_id)
        await self._reply(connection, ChatLeft(data=ChatRef(chat_id=data.chat_id)))

    def _require_user(self, connection: Connection) -> str:
        if connection.user_id is None:
            raise AuthenticationError("Authenticate before sending events")
        return connection.user_id

    async def _report(self, connection: Connection, err: NyxError, event_name: str | None) -> None:
        logger.info("Rejected %s from %s: %s", event_name or "frame", connection.id, err.detail)
        error = ErrorEvent(data=ErrorData(code=err.code, detail=err.detail, event=event_name))
        await self._reply(connection, error)

    async def _reply(self, connection: Connection, event: OutboundEvent) -> None:
        await self._safe_send(connection, event.to_wire())

    # -- store access (worker threads) -------------------------------------

    def _load_chat_ids(self, user_id: str) -> list[str]:
        with self._session_factory() as db:
            return ChatRepository(db).chat_ids_for_user(user_id)

    def _authenticate(self, user_id: str, token: str | None) -> None:
        with self._session_factory() as db:
            if not UserRepository(db).exists(user_id):
                raise NotFoundError("User not found")
            if token:
                verify_session_token(db, token, user_id)

    def _check_membership(self, chat_id: str, user_id: str) -> None:
        with self._session_factory() as db:
            repo = ChatRepository(db)
            if repo.get_chat(chat_id) is None:
                raise NotFoundError("Chat not found")
            if not repo.is_participant(chat_id, user_id):
                raise ForbiddenError("Not a participant of this chat")

    # -- outbound fan-out --------------------------------------------------

    async def send_to(self, connection_ids: set[str], event: OutboundEvent) -> int:
        """Send ``event`` to the given live connections concurrently.

        Unknown ids and failed sends are skipped. Returns the number of
        connections that accepted the frame.
        """
        targets = [self._connections[cid] for cid in connection_ids if cid in self._connections]
        if not targets:
            return 0
        payload = event.to_wire()
        results = await asyncio.gather(*[self._safe_send(conn, payload) for conn in targets])
        return sum(1 for ok in results if ok)

    async def broadcast_all(self, event: OutboundEvent, exclude_connection_id: str | None = None) -> None:
        """Send ``event`` to every authenticated connection except one."""
        recipients = {
            cid
            for cid, conn in self._connections.items()
            if conn.user_id is not None and cid != exclude_connection_id
        }
        await self.send_to(recipients, event)

    async def attach_chat(self, chat_id: str, participant_ids: list[str]) -> int:
        """Join every live connection of the given users to a new chat's room.

        Each newly attached connection receives ``chat:joined``. Returns the
        number of connections attached.
        """
        attached: set[str] = set()
        for user_id in participant_ids:
            for connection_id in self.presence.connections_of(user_id):
                if self.rooms.join_room(connection_id, chat_id):
                    attached.add(connection_id)
        if attached:
            await self.send_to(attached, ChatJoined(data=ChatRef(chat_id=chat_id)))
        return len(attached)

    async def _safe_send(self, connection: Connection, payload: dict) -> bool:
        """Send to one connection; a dead connection is dropped, not raised."""
        try:
            await connection.send(payload)
            return True
        except Exception as exc:
            logger.debug("Failed to send to connection %s: %s", connection.id, exc)
            return False
