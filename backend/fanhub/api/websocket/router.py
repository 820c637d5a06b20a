"""
WebSocket Router - Signaling Endpoint

This is the thin routing layer that delegates to SignalingOrchestrator
for all WebSocket session management.
"""
from fastapi import APIRouter, WebSocket

from fanhub.services.session import SignalingOrchestrator

router = APIRouter()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for presence, call signaling and WebRTC relay.

    Every frame is a JSON object with a ``type`` field:
        - presence.online / presence.heartbeat
        - call.initiate / call.accept / call.decline / call.end
        - webrtc.offer / webrtc.answer / webrtc.ice

    A connection carries no identity until it sends presence.online.
    """
    orchestrator = SignalingOrchestrator()
    await orchestrator.handle_connection(websocket)
