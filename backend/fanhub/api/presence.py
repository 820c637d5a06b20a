"""
Presence API - who is connected to the signaling server right now.
"""
from fastapi import APIRouter

from fanhub.services.call import presence_registry
from fanhub.schemas.call import OnlineUsersResponse, PresenceResponse

router = APIRouter()


@router.get("/presence", response_model=OnlineUsersResponse)
async def list_online_users():
    online = presence_registry.online_user_ids()
    return OnlineUsersResponse(online_users=online, count=len(online))


@router.get("/presence/{user_id}", response_model=PresenceResponse)
async def get_presence(user_id: str):
    return PresenceResponse(user_id=user_id, is_online=presence_registry.is_online(user_id))
