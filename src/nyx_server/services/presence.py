"""In-memory registry of live connections per user."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from nyx_server.schemas.events import OutboundEvent, UserOffline, UserOnline, UserRef

logger = logging.getLogger(__name__)

# notify(event, exclude_connection_id) delivers an event to every live connection.
Notify = Callable[[OutboundEvent, str | None], Awaitable[None]]


class PresenceRegistry:
    """Track which connections belong to which user.

    A user is online while it owns at least one live connection. Maps are
    updated before any notification is awaited, so handlers interleaving at
    the notification send observe a consistent registry.
    """

    def __init__(self, notify: Notify) -> None:
        self._notify = notify
        self._user_by_connection: dict[str, str] = {}
        self._connections_by_user: dict[str, set[str]] = {}

    async def register(self, connection_id: str, user_id: str) -> bool:
        """Record ``connection_id`` as a live connection of ``user_id``.

        Returns True if this is the user's first live connection, in which
        case ``user:online`` is sent to every other connection. Registering
        the same pair again is a no-op; registering an already-known
        connection under a different user moves it.
        """
        current = self._user_by_connection.get(connection_id)
        if current == user_id:
            return False
        if current is not None:
            await self.unregister(connection_id)

        self._user_by_connection[connection_id] = user_id
        connections = self._connections_by_user.setdefault(user_id, set())
        first = not connections
        connections.add(connection_id)

        if first:
            logger.info("User %s is online", user_id)
            await self._notify(UserOnline(data=UserRef(user_id=user_id)), connection_id)
        return first

    async def unregister(self, connection_id: str) -> bool:
        """Forget ``connection_id``.

        Returns True if it was the owner's last live connection, in which
        case ``user:offline`` is sent exactly once. Unknown ids are ignored.
        """
        user_id = self._user_by_connection.pop(connection_id, None)
        if user_id is None:
            return False

        connections = self._connections_by_user.get(user_id, set())
        connections.discard(connection_id)
        if connections:
            return False

        self._connections_by_user.pop(user_id, None)
        logger.info("User %s is offline", user_id)
        await self._notify(UserOffline(data=UserRef(user_id=user_id)), connection_id)
        return True

    def is_online(self, user_id: str) -> bool:
        return bool(self._connections_by_user.get(user_id))

    def connections_of(self, user_id: str) -> set[str]:
        """Return a copy of the user's live connection ids."""
        return set(self._connections_by_user.get(user_id, ()))
