from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from fanhub.config.constants import TRENDING_DEFAULT_LIMIT, TRENDING_DEFAULT_PERIOD


class HashtagExtractRequest(BaseModel):
    text: str = ""


class HashtagExtractResponse(BaseModel):
    hashtags: List[str]


class TrendingPostIn(BaseModel):
    caption: str = ""
    likes_count: int = Field(0, ge=0)
    comments_count: int = Field(0, ge=0)
    created_at: datetime


class TrendingRankRequest(BaseModel):
    posts: List[TrendingPostIn]
    period: str = TRENDING_DEFAULT_PERIOD
    limit: int = Field(TRENDING_DEFAULT_LIMIT, ge=1, le=100)


class TrendingHashtagOut(BaseModel):
    hashtag: str
    posts_count: int
    total_engagement: int
    age_in_days: int
    score: int


class TrendingRankResponse(BaseModel):
    period: str
    trending: List[TrendingHashtagOut]


class LevelProgressResponse(BaseModel):
    points: int
    level: int
    title: str
    points_in_level: int
    points_needed: int
    progress: float


class PointsAwardResponse(BaseModel):
    action: str
    awarded: int
    total: int
    previous_level: int
    level: int
    leveled_up: bool
    title: str
    new_badges: List[str]
    message: Optional[str] = None
