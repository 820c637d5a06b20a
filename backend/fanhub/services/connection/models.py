"""
Connection Models

Data classes representing WebSocket connections.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional
import logging
import uuid

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ClientConnection:
    """
    Represents a single live WebSocket connection.

    ``user_id`` stays None until the client announces itself with
    ``presence.online``. Handles compare by identity, so a reconnect from the
    same user is a different handle.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex
        self.user_id: Optional[str] = None
        self.connected_at = datetime.now(timezone.utc)

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.user_id or self.connection_id}: {e}")
            return False

    def __repr__(self):
        return f"<ClientConnection {self.connection_id} user={self.user_id}>"
