"""
Call Module

Wires the call-signaling core (session store, timeouts, lifecycle
controller) to the presence registry, the database and the relay, and
exports the process-wide singletons.
"""
from fanhub.models.database import AsyncSessionLocal
from fanhub.services.connection import connection_manager
from fanhub.services.presence import PresenceRegistry
from fanhub.services.rtc_service import SignalingRelay
from fanhub.services.user_service import UserDirectory

from .exceptions import (
    CallServiceError,
    DuplicateCallIdError,
)
from .history import CallHistoryRecord, CallHistoryRepository, build_history_records
from .lifecycle import CallLifecycleController
from .session_store import CallSession, CallSessionStore, CallStatus
from .timeouts import CallTimeoutManager

# Singleton instances (single-process scope)
presence_registry = PresenceRegistry(connection_manager)
call_sessions = CallSessionStore()
call_timeouts = CallTimeoutManager()
call_controller = CallLifecycleController(
    presence=presence_registry,
    sessions=call_sessions,
    timeouts=call_timeouts,
    history=CallHistoryRepository(AsyncSessionLocal),
    user_directory=UserDirectory(AsyncSessionLocal),
)
signaling_relay = SignalingRelay(presence_registry)

__all__ = [
    "CallHistoryRecord",
    "CallHistoryRepository",
    "CallLifecycleController",
    "CallSession",
    "CallSessionStore",
    "CallStatus",
    "CallTimeoutManager",
    "build_history_records",
    "presence_registry",
    "call_sessions",
    "call_timeouts",
    "call_controller",
    "signaling_relay",
    "CallServiceError",
    "DuplicateCallIdError",
]
