"""
WebSocket API module.

Provides the WebSocket router for call signaling.
"""
from .router import router

__all__ = ["router"]
