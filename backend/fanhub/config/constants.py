"""
Application-wide constants for the real-time layer and the scoring rules.

This file centralizes wire event names, user-facing reason strings and the
numeric tables used by trending and points, so they stay consistent across
the backend.

Note: Environment-dependent settings (DB, Redis, timeouts) belong in settings.py.
This file is for values that do not change between environments.
"""

# ==============================================================================
# WEBSOCKET EVENTS - CLIENT -> SERVER
# ==============================================================================

EVENT_PRESENCE_ONLINE: str = "presence.online"
EVENT_PRESENCE_HEARTBEAT: str = "presence.heartbeat"
EVENT_CALL_INITIATE: str = "call.initiate"
EVENT_CALL_ACCEPT: str = "call.accept"
EVENT_CALL_DECLINE: str = "call.decline"
EVENT_CALL_END: str = "call.end"

# Relayed under the same name in both directions
EVENT_WEBRTC_OFFER: str = "webrtc.offer"
EVENT_WEBRTC_ANSWER: str = "webrtc.answer"
EVENT_WEBRTC_ICE: str = "webrtc.ice"

# ==============================================================================
# CALL MESSAGES & REASONS
# ==============================================================================

ERROR_USER_OFFLINE: str = "User is offline"
ERROR_USER_NOT_FOUND: str = "User not found"
ERROR_INITIATE_FAILED: str = "Failed to initiate call"

REASON_DECLINED_DEFAULT: str = "Call declined"
REASON_NO_ANSWER: str = "No answer"
REASON_MISSED_CALL: str = "Missed call"
REASON_USER_DISCONNECTED: str = "User disconnected"

CALL_DIRECTION_OUTGOING: str = "outgoing"
CALL_DIRECTION_INCOMING: str = "incoming"

# Only audio calls exist today
CALL_MEDIA_AUDIO: str = "audio"

# ==============================================================================
# CALL HISTORY (messages table)
# ==============================================================================

MESSAGE_TYPE_CALL: str = "call"
MESSAGE_STATUS_DELIVERED: str = "delivered"
CALL_HISTORY_DEFAULT_LIMIT: int = 50
CALL_HISTORY_MAX_LIMIT: int = 200

# ==============================================================================
# USER STATUS & HEARTBEAT
# ==============================================================================

# Redis presence key TTL; clients heartbeat every 30s, so two missed beats expire it
HEARTBEAT_TTL_SEC: int = 60

# How often the background task syncs Redis -> DB
STATUS_CLEANUP_INTERVAL_SEC: int = 120

ONLINE_KEY_PREFIX: str = "online:"

# ==============================================================================
# DATABASE
# ==============================================================================

DB_POOL_SIZE: int = 10
DB_POOL_MAX_OVERFLOW: int = 20

# ==============================================================================
# TRENDING
# ==============================================================================

TRENDING_POST_WEIGHT: int = 10
TRENDING_COMMENT_WEIGHT: int = 3
TRENDING_ENGAGEMENT_WEIGHT: int = 5
TRENDING_AGE_PENALTY_PER_DAY: int = 2

TRENDING_PERIOD_DAYS: dict = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}
TRENDING_DEFAULT_PERIOD: str = "weekly"
TRENDING_DEFAULT_LIMIT: int = 10

# ==============================================================================
# POINTS & LEVELS
# ==============================================================================

POINTS_CONFIG: dict = {
    # Post actions
    "CREATE_POST": 10,
    "POST_WITH_MEDIA": 15,
    "RECEIVE_LIKE": 5,
    "RECEIVE_COMMENT": 3,
    "POST_SHARED": 10,
    # Comment actions
    "CREATE_COMMENT": 3,
    "COMMENT_LIKED": 2,
    # Profile actions
    "COMPLETE_PROFILE": 50,
    "UPDATE_AVATAR": 5,
    "UPDATE_COVER": 5,
    # Daily login
    "DAILY_LOGIN": 2,
    "STREAK_BONUS": 5,
    # Special
    "FIRST_POST_BONUS": 20,
    "FIRST_COMMENT_BONUS": 10,
    "PROFILE_COMPLETION_BONUS": 50,
}

LEVEL_BASE_POINTS: int = 100
LEVEL_MULTIPLIER: float = 1.5

# (minimum level, title), highest first
LEVEL_TITLES: tuple = (
    (50, "Platinum Legend"),
    (20, "Gold Champion"),
    (10, "Silver Star"),
    (5, "Bronze Member"),
    (1, "Newcomer"),
)

# (minimum level, badge id), lowest first
LEVEL_BADGES: tuple = (
    (5, "BRONZE_MEMBER"),
    (10, "SILVER_MEMBER"),
    (20, "GOLD_MEMBER"),
    (50, "PLATINUM_MEMBER"),
)
