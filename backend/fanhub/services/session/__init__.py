"""
Session management module.

Provides the SignalingOrchestrator that drives one signaling WebSocket.
"""
from .orchestrator import SignalingOrchestrator

__all__ = ["SignalingOrchestrator"]
