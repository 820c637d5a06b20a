"""
Signaling Relay - WebRTC offer/answer/ICE forwarding

Stateless: the target is resolved through the PresenceRegistry on every
message, and the payload is forwarded untouched, tagged with the sender.
There is no check that the call id belongs to a live session; by the time
media is negotiated the lifecycle controller has already accepted the call.
An offline target means the frame is dropped and logged.
"""
import logging
from typing import Any, Optional

from fanhub.schemas.websocket_events import (
    RelayedAnswerEvent,
    RelayedIceEvent,
    RelayedOfferEvent,
    WebSocketEventBase,
)
from fanhub.services.presence import PresenceRegistry
from fanhub.services.protocols import ConnectionHandle

logger = logging.getLogger(__name__)


class SignalingRelay:

    def __init__(self, presence: PresenceRegistry):
        self.presence = presence

    async def relay_offer(self, sender: ConnectionHandle, call_id: str, receiver_id: str, offer: Any) -> bool:
        """Caller -> receiver SDP offer."""
        return await self._forward(
            receiver_id,
            RelayedOfferEvent(call_id=call_id, sender_id=sender.user_id, offer=offer),
            sender,
        )

    async def relay_answer(self, sender: ConnectionHandle, call_id: str, caller_id: str, answer: Any) -> bool:
        """Receiver -> caller SDP answer."""
        return await self._forward(
            caller_id,
            RelayedAnswerEvent(call_id=call_id, sender_id=sender.user_id, answer=answer),
            sender,
        )

    async def relay_ice_candidate(
        self, sender: ConnectionHandle, call_id: str, target_user_id: str, candidate: Any
    ) -> bool:
        """ICE candidate, either direction."""
        return await self._forward(
            target_user_id,
            RelayedIceEvent(call_id=call_id, sender_id=sender.user_id, candidate=candidate),
            sender,
        )

    async def _forward(self, target_user_id: str, event: WebSocketEventBase, sender: ConnectionHandle) -> bool:
        target: Optional[ConnectionHandle] = self.presence.get_connection(target_user_id)
        if target is None:
            logger.info(f"[Relay] Dropping {event.type} from {sender.user_id}: {target_user_id} not online")
            return False

        logger.debug(f"[Relay] {event.type} {sender.user_id} -> {target_user_id} ({target.connection_id})")
        return await target.send_json(event.to_wire())
