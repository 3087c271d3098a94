"""Mapping of live connections to the chat rooms they receive broadcasts for."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from nyx_server.core.errors import StoreError
from nyx_server.services.store import run_in_store

logger = logging.getLogger(__name__)

LoadChatIds = Callable[[str], list[str]]


class RoomMembershipManager:
    """Keep room subscriptions for live connections.

    Subscriptions are seeded from persisted chat membership when a
    connection authenticates and extended by explicit joins. Leaving a room
    never touches persisted membership.
    """

    def __init__(self, load_chat_ids: LoadChatIds, timeout: float | None = None) -> None:
        """Create a manager.

        Args:
            load_chat_ids: Blocking callable returning the chat ids a user
                persistently participates in. Run in a worker thread.
            timeout: Optional bound on that store read, in seconds.
        """
        self._load_chat_ids = load_chat_ids
        self._timeout = timeout
        self._rooms_by_connection: dict[str, set[str]] = {}
        self._connections_by_room: dict[str, set[str]] = {}

    def join_room(self, connection_id: str, chat_id: str) -> bool:
        """Subscribe a connection to a chat room; return False if already joined."""
        rooms = self._rooms_by_connection.setdefault(connection_id, set())
        if chat_id in rooms:
            return False
        rooms.add(chat_id)
        self._connections_by_room.setdefault(chat_id, set()).add(connection_id)
        return True

    def leave_room(self, connection_id: str, chat_id: str) -> bool:
        """Unsubscribe a connection; return False if it was not subscribed."""
        rooms = self._rooms_by_connection.get(connection_id)
        if not rooms or chat_id not in rooms:
            return False
        rooms.discard(chat_id)
        self._discard_member(chat_id, connection_id)
        return True

    async def subscribe_all_persisted_chats(self, connection_id: str, user_id: str) -> list[str]:
        """Join ``connection_id`` to every chat ``user_id`` belongs to.

        A failed store read degrades to no rooms joined; the connection stays
        usable for explicit joins.
        """
        try:
            chat_ids = await run_in_store(self._load_chat_ids, user_id, timeout=self._timeout)
        except (SQLAlchemyError, StoreError) as err:
            logger.warning(
                "Could not load chat memberships for user %s on %s: %s",
                user_id,
                connection_id,
                err,
            )
            return []

        for chat_id in chat_ids:
            self.join_room(connection_id, chat_id)
        logger.debug("Connection %s subscribed to %d rooms", connection_id, len(chat_ids))
        return list(chat_ids)

    def drop_connection(self, connection_id: str) -> None:
        """Discard every subscription held by a closing connection."""
        for chat_id in self._rooms_by_connection.pop(connection_id, set()):
            self._discard_member(chat_id, connection_id)

    def subscribers(self, chat_id: str) -> set[str]:
        """Return a snapshot of the connections subscribed to ``chat_id``."""
        return set(self._connections_by_room.get(chat_id, ()))

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._rooms_by_connection.get(connection_id, ()))

    def _discard_member(self, chat_id: str, connection_id: str) -> None:
        members = self._connections_by_room.get(chat_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._connections_by_room[chat_id]
