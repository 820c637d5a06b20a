"""
Database Models Package

This module exports all SQLAlchemy models used by the real-time layer.

Tables:
1. users - User directory (lookup by id, online flag)
2. messages - Direct messages, including per-participant call history rows
"""

from .database import (
    engine,
    AsyncSessionLocal,
    Base,
    init_db,
    reset_db,
    get_db,
)

from .user import User
from .message import Message

__all__ = [
    # Database utilities
    "engine",
    "AsyncSessionLocal",
    "Base",
    "init_db",
    "reset_db",
    "get_db",

    # Models
    "User",
    "Message",
]
