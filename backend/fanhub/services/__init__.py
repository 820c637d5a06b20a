"""Business Logic Services.

This package contains the service modules behind the signaling server.

Service Categories:
- Call: Call sessions, ring timeouts, lifecycle, history
- Connection: WebSocket connection tracking and broadcast
- Presence: user -> connection registry
- Session: WebSocket session orchestration
- Status: Redis presence mirror

Engagement:
- trending_service: hashtag extraction and scoring
- points_service: points, levels and level badges
"""
