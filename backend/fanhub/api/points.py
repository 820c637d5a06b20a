"""
Points API - level lookups and point awards.
"""
from fastapi import APIRouter, HTTPException, Query

from fanhub.services import points_service
from fanhub.schemas.engagement import LevelProgressResponse, PointsAwardResponse

router = APIRouter()


@router.get("/points/level", response_model=LevelProgressResponse)
async def get_level(points: int = Query(..., ge=0)):
    return LevelProgressResponse(**points_service.level_progress(points))


@router.get("/points/award/{action}", response_model=PointsAwardResponse)
async def award(action: str, current: int = Query(0, ge=0)):
    """
    Preview what ``action`` earns a user holding ``current`` points.

    Raises 400 for an action that is not in the points table.
    """
    try:
        result = points_service.award_points(current, action)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PointsAwardResponse(
        action=result.action,
        awarded=result.awarded,
        total=result.total,
        previous_level=result.previous_level,
        level=result.level,
        leveled_up=result.leveled_up,
        title=result.title,
        new_badges=result.new_badges,
        message=result.message,
    )
