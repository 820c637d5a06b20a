"""
User Model - Directory of platform members

Only the fields the real-time layer reads are mapped here; profile, stats
and auth columns belong to the CRUD side of the platform.

Key Fields:
- `is_online`: mirrored from presence by the status cleanup task
- `last_seen`: stamped whenever the sync flips `is_online`
"""
from sqlalchemy import Column, String, DateTime, Boolean
from datetime import datetime
import uuid

from .database import Base


class User(Base):
    """User directory row"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    username = Column(String(50), unique=True, nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)

    # Online status tracking
    is_online = Column(Boolean, default=False, index=True)
    last_seen = Column(DateTime, default=datetime.utcnow, nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "is_online": self.is_online,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }

    def __repr__(self):
        return f"<User {self.id} ({self.full_name})>"
