"""
Status Tracking Service - Redis mirror of presence

The PresenceRegistry is the source of truth for signaling, but it lives in
one process. This service mirrors it into Redis so REST workers and other
processes can answer "is this user online?":

1. User announces presence over WebSocket -> set_user_online() writes a key with TTL
2. Client sends presence.heartbeat every 30s -> heartbeat() refreshes the TTL
3. If heartbeats stop (crash, lost network) -> the key expires after 60s
4. Background task syncs the users.is_online column from Redis

Redis failures are logged and swallowed: the mirror is informational and
must never break the live connection that triggered it.
"""
import asyncio
import logging
from datetime import datetime
from typing import List, Set

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from fanhub.config.constants import HEARTBEAT_TTL_SEC, ONLINE_KEY_PREFIX, STATUS_CLEANUP_INTERVAL_SEC
from fanhub.config.redis import get_redis
from fanhub.config.settings import settings
from fanhub.models.user import User
from fanhub.models.database import AsyncSessionLocal

logger = logging.getLogger(__name__)


def _online_key(user_id: str) -> str:
    return f"{ONLINE_KEY_PREFIX}{user_id}"


class StatusService:
    """Service to mirror user online/offline status into Redis."""

    HEARTBEAT_TTL = HEARTBEAT_TTL_SEC
    CLEANUP_INTERVAL = STATUS_CLEANUP_INTERVAL_SEC

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    async def set_user_online(self, user_id: str) -> bool:
        """Write the presence key. Returns False if the mirror is off or Redis failed."""
        if not self.enabled:
            return False
        try:
            redis = await get_redis()
            await redis.set(_online_key(user_id), "1", ex=self.HEARTBEAT_TTL)
            logger.info(f"[Status] User {user_id} marked online (Redis)")
            return True
        except Exception as e:
            logger.error(f"[Status] Could not mark {user_id} online: {e}")
            return False

    async def set_user_offline(self, user_id: str) -> bool:
        if not self.enabled:
            return False
        try:
            redis = await get_redis()
            await redis.delete(_online_key(user_id))
            logger.info(f"[Status] User {user_id} marked offline (Redis)")
            return True
        except Exception as e:
            logger.error(f"[Status] Could not mark {user_id} offline: {e}")
            return False

    async def heartbeat(self, user_id: str) -> bool:
        """
        Refresh the TTL for ``user_id``.

        Re-creates the key if it already expired, e.g. after a long GC pause
        on the client.
        """
        if not self.enabled:
            return False
        try:
            redis = await get_redis()
            refreshed = await redis.expire(_online_key(user_id), self.HEARTBEAT_TTL)
            if not refreshed:
                await redis.set(_online_key(user_id), "1", ex=self.HEARTBEAT_TTL)
            return True
        except Exception as e:
            logger.error(f"[Status] Heartbeat failed for {user_id}: {e}")
            return False

    async def is_user_online(self, user_id: str) -> bool:
        """Check if user is online by checking Redis."""
        redis = await get_redis()
        return bool(await redis.exists(_online_key(user_id)))

    async def get_online_users(self) -> List[str]:
        """Get list of all user IDs with a live presence key."""
        redis = await get_redis()
        user_ids = []
        async for key in redis.scan_iter(match=f"{ONLINE_KEY_PREFIX}*"):
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            user_ids.append(key[len(ONLINE_KEY_PREFIX):])
        return user_ids

    async def sync_users(self, db: AsyncSession) -> int:
        """
        One pass of Redis -> DB sync for ``users.is_online``.

        Returns:
            Number of users whose flag changed
        """
        online: Set[str] = set(await self.get_online_users())
        result = await db.execute(
            select(User).where(or_(User.is_online == True, User.id.in_(list(online))))  # noqa: E712
        )
        changed = 0
        for user in result.scalars().all():
            should_be_online = user.id in online
            if bool(user.is_online) != should_be_online:
                user.is_online = should_be_online
                user.last_seen = datetime.utcnow()
                changed += 1
                logger.info(f"[Status] Sync: user {user.id} marked {'online' if should_be_online else 'offline'}")
        await db.commit()
        return changed

    async def cleanup_offline_users(self):
        """
        Background task to sync Redis state with the database.

        Catches users whose disconnect was never handled (process crash,
        dropped TCP without close frame).
        """
        logger.info("[Status] Starting status cleanup background task")

        while True:
            try:
                async with AsyncSessionLocal() as db:
                    await self.sync_users(db)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[Status] Status cleanup error: {e}")

            await asyncio.sleep(self.CLEANUP_INTERVAL)


# Singleton instance
status_service = StatusService(enabled=settings.PRESENCE_MIRROR_ENABLED)
