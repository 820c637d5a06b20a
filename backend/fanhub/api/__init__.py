from fastapi import APIRouter
from fanhub.api import calls
from fanhub.api import presence
from fanhub.api import trending
from fanhub.api import points

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


# Include calls, presence, trending, points routers
router.include_router(calls.router)
router.include_router(presence.router)
router.include_router(trending.router)
router.include_router(points.router)
