"""
Call History

Persistence of call outcomes and retrieval of a user's call log.

A resolved call is written as two directed rows in the ``messages`` table,
one from each participant's point of view (sender/receiver swapped). That
is how the chat view shows the call in both conversations; it is a
deliberate denormalization, not a duplicate.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fanhub.config.constants import (
    CALL_DIRECTION_INCOMING,
    CALL_DIRECTION_OUTGOING,
    CALL_MEDIA_AUDIO,
    MESSAGE_STATUS_DELIVERED,
    MESSAGE_TYPE_CALL,
)
from fanhub.models.message import Message
from fanhub.services.protocols import CallHistoryStore

logger = logging.getLogger(__name__)

# Terminal statuses written to call_data.status
HISTORY_COMPLETED = "completed"
HISTORY_MISSED = "missed"
HISTORY_DECLINED = "declined"


@dataclass(frozen=True)
class CallHistoryRecord:
    """One participant's view of a resolved call. Write-once."""
    sender_id: str
    receiver_id: str
    duration: int
    status: str
    timestamp: datetime
    direction: str = CALL_DIRECTION_OUTGOING
    call_type: str = CALL_MEDIA_AUDIO

    def call_data(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "call_type": self.call_type,
            "direction": self.direction,
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
        }


def build_history_records(
    caller: str,
    receiver: str,
    status: str,
    duration: int,
    timestamp: datetime,
) -> Tuple[CallHistoryRecord, CallHistoryRecord]:
    """
    Fan one call outcome out into its two directed records.

    Returns:
        (caller's record, receiver's record)
    """
    return (
        CallHistoryRecord(sender_id=caller, receiver_id=receiver, duration=duration,
                          status=status, timestamp=timestamp,
                          direction=CALL_DIRECTION_OUTGOING),
        CallHistoryRecord(sender_id=receiver, receiver_id=caller, duration=duration,
                          status=status, timestamp=timestamp,
                          direction=CALL_DIRECTION_INCOMING),
    )


class CallHistoryRepository:
    """
    SQLAlchemy-backed CallHistoryStore.

    Opens a short-lived session per append, since appends happen from
    WebSocket handlers and timer callbacks that have no request scope.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def append(self, record: CallHistoryRecord) -> None:
        async with self._session_factory() as db:
            db.add(Message(
                sender_id=record.sender_id,
                receiver_id=record.receiver_id,
                content="",
                message_type=MESSAGE_TYPE_CALL,
                call_data=record.call_data(),
                status=MESSAGE_STATUS_DELIVERED,
                created_at=record.timestamp.replace(tzinfo=None),
            ))
            await db.commit()


async def append_with_retry(
    store: CallHistoryStore,
    record: CallHistoryRecord,
    retries: int = 2,
    base_delay: float = 0.2,
    timeout: Optional[float] = None,
) -> None:
    """
    Append a record, retrying with exponential backoff.

    Each attempt is bounded by ``timeout`` seconds. A failure after a
    timed-out attempt may still have been committed, so a retry can store
    the record twice.

    Raises:
        The last attempt's exception once ``retries`` retries are used up
    """
    attempt = 0
    while True:
        try:
            if timeout is None:
                await store.append(record)
            else:
                await asyncio.wait_for(store.append(record), timeout=timeout)
            return
        except Exception as e:
            if attempt >= retries:
                raise
            delay = base_delay * (2 ** attempt)
            attempt += 1
            logger.warning(
                f"[History] Append failed for {record.sender_id} -> {record.receiver_id} "
                f"(attempt {attempt}/{retries + 1}): {e}. Retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)


async def get_user_call_history(
    db: AsyncSession,
    user_id: str,
    limit: int = 50
) -> List[Dict]:
    """
    Get a user's call log, newest first.

    Only the rows where the user is the sender are returned: every call has
    one such row per participant, so this yields each call exactly once.

    Args:
        db: Database session
        user_id: ID of the user
        limit: Maximum number of calls to return

    Returns:
        List of call history dictionaries
    """
    result = await db.execute(
        select(Message)
        .where(
            and_(
                Message.message_type == MESSAGE_TYPE_CALL,
                Message.sender_id == user_id,
            )
        )
        .order_by(Message.created_at.desc())
        .limit(limit)
    )
    rows = result.scalars().all()

    history = []
    for row in rows:
        call_data = row.call_data or {}
        history.append({
            "id": row.id,
            "sender_id": row.sender_id,
            "receiver_id": row.receiver_id,
            "duration": call_data.get("duration", 0),
            "call_type": call_data.get("call_type", CALL_MEDIA_AUDIO),
            "direction": call_data.get("direction", CALL_DIRECTION_OUTGOING),
            "status": call_data.get("status", HISTORY_MISSED),
            "timestamp": call_data.get("timestamp"),
            "created_at": row.created_at.isoformat() if row.created_at else None,
        })
    return history
