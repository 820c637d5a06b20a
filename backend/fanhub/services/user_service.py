from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from fanhub.models.user import User


class UserService:
    """
    Service for centralized User retrieval.
    Eliminates duplicated select(User) queries across the app.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
        """
        Get user by ID.
        Returns None if not found (caller handles 404).
        """
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


class UserDirectory:
    """
    UserDirectory for the call layer.

    Signaling handlers have no request-scoped session, so each lookup opens
    its own short-lived one.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def find_by_id(self, user_id: str) -> Optional[User]:
        async with self._session_factory() as db:
            return await UserService.get_by_id(db, user_id)
