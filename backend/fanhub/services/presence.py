"""
Presence Registry - who is online, and on which connection

In-memory map of user id -> live connection handle, scoped to this process.
One entry per user: a later connection from the same user replaces the
earlier one (last connection wins, no multi-device fan-out).

Every change is broadcast to all connected clients as ``presence.status``.
"""
import logging
from typing import Dict, List, Optional

from fanhub.schemas.websocket_events import PresenceStatusEvent
from fanhub.services.metrics import online_users_gauge
from fanhub.services.protocols import ConnectionHandle, EventBroadcaster

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Maps each online user to its current connection."""

    def __init__(self, broadcaster: EventBroadcaster):
        self._broadcaster = broadcaster
        self._online: Dict[str, ConnectionHandle] = {}

    async def set_online(self, user_id: str, connection: ConnectionHandle) -> None:
        """Register or overwrite the live connection for ``user_id``."""
        # Same socket re-announcing as someone else releases the old identity
        if connection.user_id and connection.user_id != user_id:
            await self.clear(connection.user_id, connection)

        previous = self._online.get(user_id)
        self._online[user_id] = connection
        connection.user_id = user_id
        online_users_gauge.set(len(self._online))

        if previous is not None and previous is not connection:
            logger.info(f"[Presence] User {user_id} moved from {previous.connection_id} to {connection.connection_id}")
        else:
            logger.info(f"[Presence] User {user_id} is now online ({connection.connection_id})")

        await self._broadcaster.broadcast(
            PresenceStatusEvent(user_id=user_id, is_online=True).to_wire()
        )

    def get_connection(self, user_id: str) -> Optional[ConnectionHandle]:
        return self._online.get(user_id)

    async def clear(self, user_id: str, connection: ConnectionHandle) -> bool:
        """
        Remove ``user_id`` if ``connection`` is still the one on record.

        A disconnect from a connection that has since been superseded by a
        newer one for the same user must not take the user offline.

        Returns:
            True if the entry was removed and offline was broadcast
        """
        current = self._online.get(user_id)
        if current is None or current is not connection:
            logger.debug(f"[Presence] Ignoring stale disconnect for {user_id} ({connection.connection_id})")
            return False

        del self._online[user_id]
        online_users_gauge.set(len(self._online))
        logger.info(f"[Presence] User {user_id} is now offline")

        await self._broadcaster.broadcast(
            PresenceStatusEvent(user_id=user_id, is_online=False).to_wire()
        )
        return True

    def is_online(self, user_id: str) -> bool:
        return user_id in self._online

    def online_user_ids(self) -> List[str]:
        return list(self._online.keys())

    def __len__(self) -> int:
        return len(self._online)
