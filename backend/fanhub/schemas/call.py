from typing import List, Optional
from pydantic import BaseModel


class CallHistoryItem(BaseModel):
    id: str
    sender_id: Optional[str]
    receiver_id: Optional[str]
    direction: str  # outgoing when the user is the sender row
    duration: int
    call_type: str
    status: str
    timestamp: Optional[str]
    created_at: Optional[str]


class CallHistoryResponse(BaseModel):
    user_id: str
    calls: List[CallHistoryItem]


class PresenceResponse(BaseModel):
    user_id: str
    is_online: bool


class OnlineUsersResponse(BaseModel):
    online_users: List[str]
    count: int
