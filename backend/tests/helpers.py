import asyncio
from typing import Any, Dict, List, Optional

from fanhub.services.call.history import CallHistoryRecord
from fanhub.services.call.lifecycle import CallLifecycleController
from fanhub.services.call.session_store import CallSessionStore
from fanhub.services.call.timeouts import CallTimeoutManager
from fanhub.services.connection import ConnectionManager
from fanhub.services.presence import PresenceRegistry


class FakeConnection:
    """Stands in for ClientConnection; records every event it is sent."""

    def __init__(self, connection_id: str, fail_sends: bool = False):
        self.connection_id = connection_id
        self.user_id: Optional[str] = None
        self.sent: List[Dict[str, Any]] = []
        self.fail_sends = fail_sends

    async def send_json(self, data: Dict[str, Any]) -> bool:
        if self.fail_sends:
            return False
        self.sent.append(data)
        return True

    def events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if event_type is None:
            return [e for e in self.sent if e["type"] != "presence.status"]
        return [e for e in self.sent if e["type"] == event_type]

    def types(self) -> List[str]:
        return [e["type"] for e in self.events()]


class FakeHistoryStore:
    def __init__(self, fail_times: int = 0, delay: float = 0.0):
        self.records: List[CallHistoryRecord] = []
        self.attempts = 0
        self.fail_times = fail_times
        self.delay = delay

    async def append(self, record: CallHistoryRecord) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.attempts <= self.fail_times:
            raise RuntimeError("database unavailable")
        self.records.append(record)


class FakeDirectory:
    def __init__(self, known=(), fail: bool = False):
        self.known = set(known)
        self.fail = fail
        self.lookups: List[str] = []

    async def find_by_id(self, user_id: str):
        self.lookups.append(user_id)
        if self.fail:
            raise RuntimeError("directory down")
        return {"id": user_id} if user_id in self.known else None


class Harness:
    """Controller wired to fakes, plus helpers to bring users online."""

    def __init__(self, ring_timeout: float = 30.0, history: Optional[FakeHistoryStore] = None, **kwargs):
        self.broadcaster = ConnectionManager()
        self.presence = PresenceRegistry(self.broadcaster)
        self.sessions = CallSessionStore()
        self.timeouts = CallTimeoutManager()
        self.history = history or FakeHistoryStore()
        kwargs.setdefault("history_retry_delay", 0.0)
        self.controller = CallLifecycleController(
            presence=self.presence,
            sessions=self.sessions,
            timeouts=self.timeouts,
            history=self.history,
            ring_timeout=ring_timeout,
            **kwargs,
        )

    async def online(self, user_id: str) -> FakeConnection:
        conn = FakeConnection(f"conn-{user_id}-{len(self.broadcaster.list_connections())}")
        self.broadcaster.register(conn)
        await self.presence.set_online(user_id, conn)
        return conn

    async def ringing(self, caller: str = "alice", receiver: str = "bob"):
        a = await self.online(caller)
        b = await self.online(receiver)
        session = await self.controller.initiate(a, receiver, caller, {"id": caller, "name": caller.title()})
        assert session is not None
        return a, b, session
