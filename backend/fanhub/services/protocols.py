"""
Protocol definitions for the collaborators of the call-signaling core.

This module defines interfaces (Python Protocols) that allow:
- Swapping implementations (e.g., SQLAlchemy -> in-memory)
- Testing without a database or live WebSockets
- Clear contracts between the core and the transport/persistence layers

Usage:
    from fanhub.services.protocols import CallHistoryStore

    async def persist(store: CallHistoryStore, record: CallHistoryRecord):
        await store.append(record)
"""

from typing import Any, Dict, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from fanhub.services.call.history import CallHistoryRecord


class ConnectionHandle(Protocol):
    """
    One live, bidirectional client connection.

    The core only stores and compares handles and pushes events through
    them; it never inspects the transport.
    """

    connection_id: str
    user_id: Optional[str]

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """
        Deliver one event to the client.

        Returns:
            True if the frame was written, False if the connection is gone.
            Never raises.
        """
        ...


class EventBroadcaster(Protocol):
    """Outbound channel to every connected client."""

    async def broadcast(self, data: Dict[str, Any]) -> int:
        """
        Send an event to all live connections.

        Returns:
            Number of connections the event was delivered to
        """
        ...


class CallHistoryStore(Protocol):
    """
    Durable, append-only log of call outcomes.

    Idempotency is not guaranteed: appending the same record twice
    stores it twice.
    """

    async def append(self, record: "CallHistoryRecord") -> None:
        """Persist one record. May raise on storage failure."""
        ...


class UserDirectory(Protocol):
    """Lookup of platform users by id."""

    async def find_by_id(self, user_id: str) -> Optional[Any]:
        """
        Returns:
            The user record, or None if no such user exists
        """
        ...
