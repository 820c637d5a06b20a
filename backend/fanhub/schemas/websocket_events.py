"""
WebSocket Event Schemas

Pydantic models for type-safe WebSocket event handling.

Every frame is a JSON object with a ``type`` field. Payload keys are
camelCase on the wire and snake_case in Python.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Literal, Type
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WebSocketEventBase(BaseModel):
    """Base model for all WebSocket events."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for ``send_json``; unset optional fields are omitted."""
        data = self.model_dump(by_alias=True, mode="json")
        return {key: value for key, value in data.items() if value is not None}


# =============================================================================
# Client -> Server
# =============================================================================

class PresenceOnlineEvent(WebSocketEventBase):
    """Client announces which user it is."""
    type: Literal["presence.online"] = "presence.online"
    user_id: str = Field(min_length=1)


class HeartbeatEvent(WebSocketEventBase):
    """Client heartbeat to keep the presence mirror fresh."""
    type: Literal["presence.heartbeat"] = "presence.heartbeat"


class CallInitiateEvent(WebSocketEventBase):
    type: Literal["call.initiate"] = "call.initiate"
    receiver_id: str = Field(min_length=1)
    caller_id: str = Field(min_length=1)
    caller_info: Dict[str, Any] = Field(default_factory=dict)


class CallAcceptEvent(WebSocketEventBase):
    type: Literal["call.accept"] = "call.accept"
    call_id: str


class CallDeclineEvent(WebSocketEventBase):
    type: Literal["call.decline"] = "call.decline"
    call_id: str
    reason: Optional[str] = None


class CallEndEvent(WebSocketEventBase):
    type: Literal["call.end"] = "call.end"
    call_id: str
    # Client-measured, whole seconds
    duration: Optional[int] = Field(None, ge=0)


class WebRTCOfferEvent(WebSocketEventBase):
    type: Literal["webrtc.offer"] = "webrtc.offer"
    call_id: str
    receiver_id: str
    offer: Any


class WebRTCAnswerEvent(WebSocketEventBase):
    type: Literal["webrtc.answer"] = "webrtc.answer"
    call_id: str
    caller_id: str
    answer: Any


class WebRTCIceEvent(WebSocketEventBase):
    type: Literal["webrtc.ice"] = "webrtc.ice"
    call_id: str
    target_user_id: str
    candidate: Any


CLIENT_EVENTS: Dict[str, Type[WebSocketEventBase]] = {
    "presence.online": PresenceOnlineEvent,
    "presence.heartbeat": HeartbeatEvent,
    "call.initiate": CallInitiateEvent,
    "call.accept": CallAcceptEvent,
    "call.decline": CallDeclineEvent,
    "call.end": CallEndEvent,
    "webrtc.offer": WebRTCOfferEvent,
    "webrtc.answer": WebRTCAnswerEvent,
    "webrtc.ice": WebRTCIceEvent,
}


class UnknownEventError(ValueError):
    """Raised for a frame whose ``type`` is not a known client event."""


def parse_client_event(data: Dict[str, Any]) -> WebSocketEventBase:
    """
    Validate a decoded client frame into its event model.

    Raises:
        UnknownEventError: missing or unsupported ``type``
        pydantic.ValidationError: payload does not match the event model
    """
    event_type = data.get("type") if isinstance(data, dict) else None
    model = CLIENT_EVENTS.get(event_type)
    if model is None:
        raise UnknownEventError(f"Unknown event type: {event_type!r}")
    return model.model_validate(data)


# =============================================================================
# Server -> Client
# =============================================================================

class PresenceStatusEvent(WebSocketEventBase):
    type: Literal["presence.status"] = "presence.status"
    user_id: str
    is_online: bool


class HeartbeatAckEvent(WebSocketEventBase):
    type: Literal["presence.heartbeat_ack"] = "presence.heartbeat_ack"


class CallInitiatedEvent(WebSocketEventBase):
    type: Literal["call.initiated"] = "call.initiated"
    call_id: str
    receiver_id: str


class CallIncomingEvent(WebSocketEventBase):
    type: Literal["call.incoming"] = "call.incoming"
    call_id: str
    caller: Dict[str, Any]


class CallAcceptedEvent(WebSocketEventBase):
    type: Literal["call.accepted"] = "call.accepted"
    call_id: str
    accepted_at: datetime


class CallDeclinedEvent(WebSocketEventBase):
    type: Literal["call.declined"] = "call.declined"
    call_id: str
    reason: str


class CallMissedEvent(WebSocketEventBase):
    type: Literal["call.missed"] = "call.missed"
    call_id: str
    reason: str
    call_type: str


class CallEndedEvent(WebSocketEventBase):
    type: Literal["call.ended"] = "call.ended"
    call_id: str
    duration: int
    was_accepted: bool
    ended_by: Optional[str] = None
    reason: Optional[str] = None


class CallErrorEvent(WebSocketEventBase):
    type: Literal["call.error"] = "call.error"
    message: str


class RelayedOfferEvent(WebSocketEventBase):
    type: Literal["webrtc.offer"] = "webrtc.offer"
    call_id: str
    sender_id: Optional[str]
    offer: Any


class RelayedAnswerEvent(WebSocketEventBase):
    type: Literal["webrtc.answer"] = "webrtc.answer"
    call_id: str
    sender_id: Optional[str]
    answer: Any


class RelayedIceEvent(WebSocketEventBase):
    type: Literal["webrtc.ice"] = "webrtc.ice"
    call_id: str
    sender_id: Optional[str]
    candidate: Any
