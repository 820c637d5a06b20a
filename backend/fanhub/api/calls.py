"""
Calls API - Endpoints for call history

Call signaling itself runs over the /ws WebSocket; this router only exposes
what the signaling layer persisted.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fanhub.config.constants import CALL_HISTORY_DEFAULT_LIMIT, CALL_HISTORY_MAX_LIMIT
from fanhub.models.database import get_db
from fanhub.services.call.history import get_user_call_history
from fanhub.schemas.call import CallHistoryResponse, CallHistoryItem

router = APIRouter()


@router.get("/calls/history/{user_id}", response_model=CallHistoryResponse)
async def get_call_history(
    user_id: str,
    limit: int = Query(CALL_HISTORY_DEFAULT_LIMIT, ge=1, le=CALL_HISTORY_MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """
    Get a user's call log, newest first.

    One entry per call: ``direction`` is ``outgoing`` for calls the user
    placed and ``incoming`` for calls they received.
    """
    history = await get_user_call_history(db, user_id, limit=limit)
    return CallHistoryResponse(
        user_id=user_id,
        calls=[CallHistoryItem(**item) for item in history],
    )
