"""
Trending API - hashtag extraction and ranking.

The caller supplies the posts; nothing is read from or written to storage.
"""
from fastapi import APIRouter

from fanhub.services import trending_service
from fanhub.schemas.engagement import (
    HashtagExtractRequest,
    HashtagExtractResponse,
    TrendingHashtagOut,
    TrendingRankRequest,
    TrendingRankResponse,
)

router = APIRouter()


@router.post("/trending/hashtags", response_model=HashtagExtractResponse)
async def extract_hashtags(req: HashtagExtractRequest):
    return HashtagExtractResponse(hashtags=trending_service.extract_hashtags(req.text))


@router.post("/trending/rank", response_model=TrendingRankResponse)
async def rank_trending(req: TrendingRankRequest):
    """
    Rank hashtags across the given posts.

    Unknown periods fall back to ``weekly``.
    """
    ranked = trending_service.rank_hashtags(
        [post.model_dump() for post in req.posts],
        period=req.period,
        limit=req.limit,
    )
    return TrendingRankResponse(
        period=req.period,
        trending=[TrendingHashtagOut(**item.to_dict()) for item in ranked],
    )
