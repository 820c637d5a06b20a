"""
Call Lifecycle Controller - the call state machine.

    NONE -> RINGING -> ACTIVE -> (removed)
            RINGING -> declined | missed -> (removed)
   RINGING | ACTIVE -> ended | dropped on disconnect -> (removed)

Every handler mutates the session store and the timeout table before its
first ``await``. While a handler is suspended on persistence or on a send,
another event for the same call can run; it then finds the session gone
and takes the no-op path, so a call is never torn down or logged twice.

History writes and client notifications run concurrently. A failed write
is logged and counted but never holds back or cancels the notification.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from fanhub.config.constants import (
    CALL_DIRECTION_INCOMING,
    CALL_DIRECTION_OUTGOING,
    ERROR_INITIATE_FAILED,
    ERROR_USER_NOT_FOUND,
    ERROR_USER_OFFLINE,
    REASON_DECLINED_DEFAULT,
    REASON_MISSED_CALL,
    REASON_NO_ANSWER,
    REASON_USER_DISCONNECTED,
)
from fanhub.config.settings import settings
from fanhub.schemas.websocket_events import (
    CallAcceptedEvent,
    CallDeclinedEvent,
    CallEndedEvent,
    CallErrorEvent,
    CallIncomingEvent,
    CallInitiatedEvent,
    CallMissedEvent,
)
from fanhub.services.metrics import calls_initiated, calls_resolved, history_write_failures
from fanhub.services.presence import PresenceRegistry
from fanhub.services.protocols import CallHistoryStore, ConnectionHandle, UserDirectory

from .exceptions import DuplicateCallIdError
from .history import (
    HISTORY_COMPLETED,
    HISTORY_DECLINED,
    HISTORY_MISSED,
    append_with_retry,
    build_history_records,
)
from .session_store import CallSession, CallSessionStore, CallStatus
from .timeouts import CallTimeoutManager

logger = logging.getLogger(__name__)

Notification = Tuple[ConnectionHandle, Dict[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallLifecycleController:
    """
    Drives call initiation, accept, decline, end, ring timeout and
    disconnect cleanup.

    Collaborators are injected so tests can run the state machine with fake
    connections and an in-memory history store.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        sessions: CallSessionStore,
        timeouts: CallTimeoutManager,
        history: CallHistoryStore,
        user_directory: Optional[UserDirectory] = None,
        ring_timeout: Optional[float] = None,
        history_write_timeout: Optional[float] = None,
        history_retries: Optional[int] = None,
        history_retry_delay: Optional[float] = None,
        persist_declined: Optional[bool] = None,
        persist_disconnected: Optional[bool] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.presence = presence
        self.sessions = sessions
        self.timeouts = timeouts
        self.history = history
        self.user_directory = user_directory
        self.ring_timeout = settings.CALL_RING_TIMEOUT_SECONDS if ring_timeout is None else ring_timeout
        self.history_write_timeout = (
            settings.HISTORY_WRITE_TIMEOUT_SECONDS if history_write_timeout is None else history_write_timeout
        )
        self.history_retries = settings.HISTORY_WRITE_RETRIES if history_retries is None else history_retries
        self.history_retry_delay = (
            settings.HISTORY_RETRY_BASE_DELAY if history_retry_delay is None else history_retry_delay
        )
        self.persist_declined = settings.PERSIST_DECLINED_CALLS if persist_declined is None else persist_declined
        self.persist_disconnected = (
            settings.PERSIST_DISCONNECTED_CALLS if persist_disconnected is None else persist_disconnected
        )
        self._clock = clock

    # === Transitions ===

    async def initiate(
        self,
        connection: ConnectionHandle,
        receiver_id: str,
        caller_id: str,
        caller_info: Optional[Dict[str, Any]] = None,
    ) -> Optional[CallSession]:
        """
        NONE -> RINGING.

        Returns:
            The new session, or None if the call could not be placed (the
            caller has been sent ``call.error``)
        """
        logger.info(f"[Calls] {caller_id} is calling {receiver_id}")

        if connection.user_id and connection.user_id != caller_id:
            logger.warning(
                f"[Calls] Connection announced as {connection.user_id} initiates as {caller_id}"
            )

        if self.presence.get_connection(receiver_id) is None:
            logger.info(f"[Calls] Receiver {receiver_id} is offline")
            calls_initiated.labels(result="offline").inc()
            await self._send_error(connection, ERROR_USER_OFFLINE)
            return None

        if self.user_directory is not None:
            try:
                receiver = await self.user_directory.find_by_id(receiver_id)
            except Exception as e:
                # Directory outage must not block calling between online users
                logger.error(f"[Calls] User directory lookup failed for {receiver_id}: {e}")
            else:
                if receiver is None:
                    logger.info(f"[Calls] Receiver {receiver_id} is not a known user")
                    calls_initiated.labels(result="unknown_user").inc()
                    await self._send_error(connection, ERROR_USER_NOT_FOUND)
                    return None

        # Presence may have changed while the directory was queried
        receiver_connection = self.presence.get_connection(receiver_id)
        if receiver_connection is None:
            logger.info(f"[Calls] Receiver {receiver_id} went offline")
            calls_initiated.labels(result="offline").inc()
            await self._send_error(connection, ERROR_USER_OFFLINE)
            return None

        now = self._clock()
        call_id = self.generate_call_id(caller_id, receiver_id, now)
        session = CallSession(
            call_id=call_id,
            caller=caller_id,
            receiver=receiver_id,
            caller_connection=connection,
            receiver_connection=receiver_connection,
            started_at=now,
            caller_info=dict(caller_info or {}),
        )
        try:
            self.sessions.create(session)
        except DuplicateCallIdError as e:
            logger.error(f"[Calls] {e}; keeping the existing session")
            calls_initiated.labels(result="error").inc()
            await self._send_error(connection, ERROR_INITIATE_FAILED)
            return None

        self.timeouts.arm(call_id, self.ring_timeout, lambda: self._on_ring_timeout(call_id))
        calls_initiated.labels(result="ringing").inc()

        # The caller does not choose the id, so it learns it here
        await self._notify([
            (connection, CallInitiatedEvent(call_id=call_id, receiver_id=receiver_id).to_wire()),
            (receiver_connection, CallIncomingEvent(call_id=call_id, caller=session.caller_info).to_wire()),
        ])
        logger.info(f"[Calls] Call initiated: {call_id}")
        return session

    async def accept(self, connection: ConnectionHandle, call_id: str) -> bool:
        """RINGING -> ACTIVE. Unknown or already-accepted calls are ignored."""
        session = self._get_for(connection, call_id, "accept")
        if session is None:
            return False
        if self._is_caller_side(connection, session):
            logger.warning(f"[Calls] Caller tried to accept its own call {call_id}")
            return False
        if session.status != CallStatus.RINGING:
            logger.info(f"[Calls] Ignoring accept for {call_id}: already {session.status.value}")
            return False

        self.timeouts.disarm(call_id)
        now = self._clock()
        receiver_connection = session.receiver_connection
        if connection.user_id == session.receiver:
            receiver_connection = connection
        self.sessions.update(
            call_id,
            status=CallStatus.ACTIVE,
            accepted_at=now,
            receiver_connection=receiver_connection,
        )
        logger.info(f"[Calls] Call accepted: {call_id}")

        # Both ends start media on this event
        event = CallAcceptedEvent(call_id=call_id, accepted_at=now).to_wire()
        await self._notify([
            (session.caller_connection, event),
            (session.receiver_connection, event),
        ])
        return True

    async def decline(
        self,
        connection: ConnectionHandle,
        call_id: str,
        reason: Optional[str] = None,
    ) -> bool:
        """RINGING -> removed. Only the caller is told; the receiver declined."""
        session = self._get_for(connection, call_id, "decline")
        if session is None:
            return False
        if self._is_caller_side(connection, session):
            logger.warning(f"[Calls] Caller tried to decline its own call {call_id}; use end instead")
            return False
        if session.status != CallStatus.RINGING:
            logger.info(f"[Calls] Ignoring decline for {call_id}: already {session.status.value}")
            return False

        self.timeouts.disarm(call_id)
        self.sessions.remove(call_id)
        calls_resolved.labels(outcome="declined").inc()
        logger.info(f"[Calls] Call declined: {call_id}")

        notifications = [(
            session.caller_connection,
            CallDeclinedEvent(call_id=call_id, reason=reason or REASON_DECLINED_DEFAULT).to_wire(),
        )]
        if self.persist_declined:
            await self._resolve(session, HISTORY_DECLINED, 0, notifications)
        else:
            await self._notify(notifications)
        return True

    async def end(
        self,
        connection: ConnectionHandle,
        call_id: str,
        duration: Optional[int] = None,
    ) -> bool:
        """RINGING | ACTIVE -> removed, on explicit hangup by either party."""
        session = self._get_for(connection, call_id, "end")
        if session is None:
            return False

        self.timeouts.disarm(call_id)
        self.sessions.remove(call_id)

        final_duration = duration if duration is not None else session.elapsed_seconds(self._clock())
        was_accepted = session.was_accepted
        status = HISTORY_COMPLETED if was_accepted and final_duration > 0 else HISTORY_MISSED
        calls_resolved.labels(outcome=status).inc()
        logger.info(f"[Calls] Call ending: {call_id}, duration {final_duration}s, status {status}")

        event = CallEndedEvent(
            call_id=call_id,
            duration=final_duration,
            was_accepted=was_accepted,
            ended_by=connection.user_id,
        ).to_wire()
        await self._resolve(session, status, final_duration, [
            (session.caller_connection, event),
            (session.receiver_connection, event),
        ])
        return True

    async def handle_disconnect(self, connection: ConnectionHandle) -> List[str]:
        """
        Tear down every call that used ``connection``.

        The surviving party of every call is told the call ended before any
        history is written; the dropped connection is gone and gets nothing.

        Returns:
            The call ids that were torn down
        """
        affected = self.sessions.find_by_connection(connection)
        for session in affected:
            self.timeouts.disarm(session.call_id)
            self.sessions.remove(session.call_id)

        now = self._clock()
        notifications: List[Notification] = []
        writes = []
        for session in affected:
            duration = session.elapsed_seconds(now)
            was_accepted = session.was_accepted
            calls_resolved.labels(outcome="disconnected").inc()
            logger.info(f"[Calls] Call {session.call_id} dropped: {connection.user_id or connection.connection_id} disconnected")

            notifications.append((
                session.other_connection(connection),
                CallEndedEvent(
                    call_id=session.call_id,
                    duration=duration,
                    was_accepted=was_accepted,
                    reason=REASON_USER_DISCONNECTED,
                ).to_wire(),
            ))
            if self.persist_disconnected:
                status = HISTORY_COMPLETED if was_accepted and duration > 0 else HISTORY_MISSED
                writes.append(self._write_history(session, status, duration))

        await self._notify(notifications)
        if writes:
            await asyncio.gather(*writes)

        return [session.call_id for session in affected]

    async def _on_ring_timeout(self, call_id: str) -> None:
        """RINGING -> removed after the ring timeout, as a missed call."""
        session = self.sessions.get(call_id)
        if session is None or session.status != CallStatus.RINGING:
            return

        self.sessions.remove(call_id)
        calls_resolved.labels(outcome="missed").inc()
        logger.info(f"[Calls] Call {call_id} timed out - recording missed call")

        await self._resolve(session, HISTORY_MISSED, 0, [
            (session.caller_connection, CallMissedEvent(
                call_id=call_id, reason=REASON_NO_ANSWER, call_type=CALL_DIRECTION_OUTGOING,
            ).to_wire()),
            (session.receiver_connection, CallMissedEvent(
                call_id=call_id, reason=REASON_MISSED_CALL, call_type=CALL_DIRECTION_INCOMING,
            ).to_wire()),
        ])

    # === Helpers ===

    @staticmethod
    def generate_call_id(caller_id: str, receiver_id: str, now: datetime) -> str:
        return f"call_{caller_id}_{receiver_id}_{int(now.timestamp() * 1000)}"

    def _get_for(self, connection: ConnectionHandle, call_id: str, action: str) -> Optional[CallSession]:
        session = self.sessions.get(call_id)
        if session is None:
            logger.info(f"[Calls] Ignoring {action} for unknown call {call_id}")
            return None
        if not (session.involves(connection) or connection.user_id in (session.caller, session.receiver)):
            logger.warning(
                f"[Calls] Ignoring {action} for {call_id} from non-participant "
                f"{connection.user_id or connection.connection_id}"
            )
            return None
        return session

    @staticmethod
    def _is_caller_side(connection: ConnectionHandle, session: CallSession) -> bool:
        if connection.user_id == session.receiver:
            return False
        return connection is session.caller_connection or connection.user_id == session.caller

    async def _resolve(
        self,
        session: CallSession,
        status: str,
        duration: int,
        notifications: List[Notification],
    ) -> None:
        await asyncio.gather(
            self._write_history(session, status, duration),
            self._notify(notifications),
        )

    async def _write_history(self, session: CallSession, status: str, duration: int) -> None:
        """Write both directed records. Failures are logged, never raised."""
        records = build_history_records(
            session.caller, session.receiver, status, duration, self._clock()
        )
        for record in records:
            try:
                await append_with_retry(
                    self.history,
                    record,
                    retries=self.history_retries,
                    base_delay=self.history_retry_delay,
                    timeout=self.history_write_timeout,
                )
            except Exception as e:
                history_write_failures.inc()
                logger.error(
                    f"[History] Could not record {status} call {session.call_id} "
                    f"for {record.sender_id}: {e}"
                )

    @staticmethod
    async def _notify(notifications: List[Notification]) -> None:
        for connection, event in notifications:
            await connection.send_json(event)

    @staticmethod
    async def _send_error(connection: ConnectionHandle, message: str) -> None:
        await connection.send_json(CallErrorEvent(message=message).to_wire())
