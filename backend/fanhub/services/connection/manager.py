"""
Connection Manager

Core WebSocket connection management:
- Connection/disconnection tracking
- Broadcasting to every live connection
"""
from typing import Dict, List, Optional, Any
import logging

from fastapi import WebSocket

from .models import ClientConnection

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks every live WebSocket connection, announced or not.

    Presence (which user a connection belongs to) is kept separately by the
    PresenceRegistry; this class only knows which sockets are open, so that
    presence changes can be broadcast to everyone.
    """

    def __init__(self):
        # connection_id -> ClientConnection
        self._connections: Dict[str, ClientConnection] = {}

    # === Core Connection Methods ===

    def connect(self, websocket: WebSocket) -> ClientConnection:
        """Register a new, already accepted WebSocket."""
        conn = ClientConnection(websocket)
        self.register(conn)
        return conn

    def register(self, conn: ClientConnection) -> None:
        self._connections[conn.connection_id] = conn
        logger.info(f"Connection {conn.connection_id} opened ({len(self._connections)} total)")

    def disconnect(self, conn: ClientConnection) -> bool:
        """Remove a connection. Returns False if it was not registered."""
        removed = self._connections.pop(conn.connection_id, None)
        if removed is None:
            return False
        logger.info(f"Connection {conn.connection_id} closed ({len(self._connections)} total)")
        return True

    # === Broadcast Methods ===

    async def broadcast(
        self,
        message: Dict[str, Any],
        exclude: Optional[ClientConnection] = None
    ) -> int:
        """Send a JSON message to every live connection."""
        sent_count = 0
        # Snapshot: sends may interleave with connects/disconnects
        for conn in list(self._connections.values()):
            if exclude is not None and conn is exclude:
                continue
            if await conn.send_json(message):
                sent_count += 1
        return sent_count

    # === Query Methods ===

    def get_connection(self, connection_id: str) -> Optional[ClientConnection]:
        return self._connections.get(connection_id)

    def list_connections(self) -> List[ClientConnection]:
        return list(self._connections.values())

    def get_total_connections(self) -> int:
        """Get total number of live connections."""
        return len(self._connections)
