"""
Call Session Store - live calls held in memory

A session exists only between initiation and termination. Terminal states
are never stored: ending, declining, missing or dropping a call removes the
entry.
"""
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from fanhub.services.metrics import active_calls_gauge
from fanhub.services.protocols import ConnectionHandle

from .exceptions import DuplicateCallIdError

logger = logging.getLogger(__name__)


class CallStatus(str, Enum):
    RINGING = "ringing"
    ACTIVE = "active"


@dataclass
class CallSession:
    call_id: str
    caller: str
    receiver: str
    caller_connection: ConnectionHandle
    receiver_connection: ConnectionHandle
    started_at: datetime
    status: CallStatus = CallStatus.RINGING
    accepted_at: Optional[datetime] = None
    caller_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def was_accepted(self) -> bool:
        return self.status == CallStatus.ACTIVE and self.accepted_at is not None

    def elapsed_seconds(self, now: datetime) -> int:
        """Whole seconds since accept, 0 if never accepted."""
        if self.accepted_at is None:
            return 0
        return max(0, int((now - self.accepted_at).total_seconds()))

    def involves(self, connection: ConnectionHandle) -> bool:
        return connection is self.caller_connection or connection is self.receiver_connection

    def other_connection(self, connection: ConnectionHandle) -> ConnectionHandle:
        if connection is self.caller_connection:
            return self.receiver_connection
        return self.caller_connection

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_id": self.call_id,
            "caller": self.caller,
            "receiver": self.receiver,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
        }


_SESSION_FIELDS = {f.name for f in fields(CallSession)}


class CallSessionStore:
    """call_id -> CallSession"""

    def __init__(self):
        self._sessions: Dict[str, CallSession] = {}

    def create(self, session: CallSession) -> CallSession:
        """
        Insert a new session.

        Raises:
            DuplicateCallIdError: a session with this id already exists;
                the stored one stays authoritative
        """
        if session.call_id in self._sessions:
            raise DuplicateCallIdError(session.call_id)
        self._sessions[session.call_id] = session
        active_calls_gauge.set(len(self._sessions))
        return session

    def get(self, call_id: str) -> Optional[CallSession]:
        return self._sessions.get(call_id)

    def update(self, call_id: str, **patch: Any) -> Optional[CallSession]:
        """Merge fields into a stored session. Returns None if absent."""
        session = self._sessions.get(call_id)
        if session is None:
            return None
        unknown = set(patch) - _SESSION_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")
        for name, value in patch.items():
            setattr(session, name, value)
        return session

    def remove(self, call_id: str) -> Optional[CallSession]:
        """Delete a session. Removing an absent id is a no-op."""
        session = self._sessions.pop(call_id, None)
        active_calls_gauge.set(len(self._sessions))
        return session

    def find_by_connection(self, connection: ConnectionHandle) -> List[CallSession]:
        return [s for s in self._sessions.values() if s.involves(connection)]

    def all(self) -> List[CallSession]:
        return list(self._sessions.values())

    def __contains__(self, call_id: str) -> bool:
        return call_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
