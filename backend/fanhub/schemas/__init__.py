"""
Schemas Package

Pydantic models for API and WebSocket events.
"""

from fanhub.schemas.websocket_events import (
    WebSocketEventBase,
    UnknownEventError,
    parse_client_event,
    PresenceOnlineEvent,
    HeartbeatEvent,
    CallInitiateEvent,
    CallAcceptEvent,
    CallDeclineEvent,
    CallEndEvent,
    WebRTCOfferEvent,
    WebRTCAnswerEvent,
    WebRTCIceEvent,
)

__all__ = [
    "WebSocketEventBase",
    "UnknownEventError",
    "parse_client_event",
    "PresenceOnlineEvent",
    "HeartbeatEvent",
    "CallInitiateEvent",
    "CallAcceptEvent",
    "CallDeclineEvent",
    "CallEndEvent",
    "WebRTCOfferEvent",
    "WebRTCAnswerEvent",
    "WebRTCIceEvent",
]
