"""
Signaling Orchestrator

Runs one signaling WebSocket: registers the connection, parses and routes
each JSON frame, and tears the user's presence and calls down when the
socket closes.
"""
import json
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from fanhub.config.constants import (
    ERROR_INITIATE_FAILED,
    EVENT_CALL_ACCEPT,
    EVENT_CALL_DECLINE,
    EVENT_CALL_END,
    EVENT_CALL_INITIATE,
    EVENT_PRESENCE_HEARTBEAT,
    EVENT_PRESENCE_ONLINE,
    EVENT_WEBRTC_ANSWER,
    EVENT_WEBRTC_ICE,
    EVENT_WEBRTC_OFFER,
)
from fanhub.schemas.websocket_events import (
    CallErrorEvent,
    HeartbeatAckEvent,
    UnknownEventError,
    WebSocketEventBase,
    parse_client_event,
)
from fanhub.services.call import call_controller, presence_registry, signaling_relay
from fanhub.services.call.lifecycle import CallLifecycleController
from fanhub.services.connection import ClientConnection, ConnectionManager, connection_manager
from fanhub.services.presence import PresenceRegistry
from fanhub.services.rtc_service import SignalingRelay
from fanhub.services.status_service import StatusService, status_service

logger = logging.getLogger(__name__)


class SignalingOrchestrator:
    """
    Orchestrates the lifecycle of one signaling WebSocket.
    Handles:
    - Connection registration
    - Message loop (JSON text frames only)
    - Dispatch to presence, call lifecycle and WebRTC relay
    - Cleanup on disconnect
    """

    def __init__(
        self,
        connections: Optional[ConnectionManager] = None,
        presence: Optional[PresenceRegistry] = None,
        controller: Optional[CallLifecycleController] = None,
        relay: Optional[SignalingRelay] = None,
        status: Optional[StatusService] = None,
    ):
        self.connection_manager = connection_manager if connections is None else connections
        self.presence = presence_registry if presence is None else presence
        self.controller = call_controller if controller is None else controller
        self.relay = signaling_relay if relay is None else relay
        self.status_service = status_service if status is None else status

    async def handle_connection(self, websocket: WebSocket):
        """
        Main entry point for handling a WebSocket connection.
        """
        await websocket.accept()
        conn = self.connection_manager.connect(websocket)

        try:
            while True:
                text = await websocket.receive_text()
                await self._handle_text_message(text, conn)

        except WebSocketDisconnect:
            logger.info(f"[Orchestrator] Connection {conn.connection_id} ({conn.user_id}) disconnected")

        except Exception as e:
            logger.error(f"[Orchestrator] Error during message loop: {e}")

        finally:
            await self._cleanup(conn)

    async def _handle_text_message(self, text_data: str, conn: ClientConnection):
        """
        Handle one JSON control message.

        Bad frames are logged and dropped; the connection stays open.
        """
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning(f"[Orchestrator] Invalid JSON received from {conn.connection_id}")
            return

        try:
            event = parse_client_event(data)
        except UnknownEventError as e:
            logger.warning(f"[Orchestrator] {e}")
            return
        except ValidationError as e:
            event_type = data.get("type")
            logger.warning(f"[Orchestrator] Malformed {event_type} from {conn.connection_id}: {e.error_count()} errors")
            if event_type == EVENT_CALL_INITIATE:
                await conn.send_json(CallErrorEvent(message=ERROR_INITIATE_FAILED).to_wire())
            return

        try:
            await self._dispatch(event, conn)
        except Exception as e:
            logger.exception(f"[Orchestrator] Handler for {event.type} failed: {e}")
            if event.type == EVENT_CALL_INITIATE:
                await conn.send_json(CallErrorEvent(message=ERROR_INITIATE_FAILED).to_wire())

    async def _dispatch(self, event: WebSocketEventBase, conn: ClientConnection):
        msg_type = event.type

        if msg_type == EVENT_PRESENCE_ONLINE:
            await self.presence.set_online(event.user_id, conn)
            await self.status_service.set_user_online(event.user_id)

        elif msg_type == EVENT_PRESENCE_HEARTBEAT:
            if conn.user_id:
                await self.status_service.heartbeat(conn.user_id)
            await conn.send_json(HeartbeatAckEvent().to_wire())

        elif msg_type == EVENT_CALL_INITIATE:
            await self.controller.initiate(conn, event.receiver_id, event.caller_id, event.caller_info)

        elif msg_type == EVENT_CALL_ACCEPT:
            await self.controller.accept(conn, event.call_id)

        elif msg_type == EVENT_CALL_DECLINE:
            await self.controller.decline(conn, event.call_id, event.reason)

        elif msg_type == EVENT_CALL_END:
            await self.controller.end(conn, event.call_id, event.duration)

        elif msg_type == EVENT_WEBRTC_OFFER:
            await self.relay.relay_offer(conn, event.call_id, event.receiver_id, event.offer)

        elif msg_type == EVENT_WEBRTC_ANSWER:
            await self.relay.relay_answer(conn, event.call_id, event.caller_id, event.answer)

        elif msg_type == EVENT_WEBRTC_ICE:
            await self.relay.relay_ice_candidate(conn, event.call_id, event.target_user_id, event.candidate)

    async def _cleanup(self, conn: ClientConnection):
        """
        Disconnect handling. The socket leaves the broadcast table first so
        the offline broadcast does not write to a closed socket. Presence is
        cleared before the calls are torn down, so no new call can ring this
        connection while call history is being written.
        """
        self.connection_manager.disconnect(conn)
        try:
            if conn.user_id and await self.presence.clear(conn.user_id, conn):
                await self.status_service.set_user_offline(conn.user_id)

            dropped = await self.controller.handle_disconnect(conn)
            if dropped:
                logger.info(f"[Orchestrator] Ended {len(dropped)} call(s) for {conn.connection_id}")
        except Exception as e:
            logger.error(f"[Orchestrator] Cleanup error for {conn.connection_id}: {e}")
