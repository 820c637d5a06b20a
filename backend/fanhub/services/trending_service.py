"""
Trending Hashtags Service

Scores hashtags found in post captions:

    score = posts * 10 + comments * 3 + engagement * 5 - age_in_days * 2

floored at zero. Posts older than the selected period are ignored.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from fanhub.config.constants import (
    TRENDING_AGE_PENALTY_PER_DAY,
    TRENDING_COMMENT_WEIGHT,
    TRENDING_DEFAULT_LIMIT,
    TRENDING_DEFAULT_PERIOD,
    TRENDING_ENGAGEMENT_WEIGHT,
    TRENDING_PERIOD_DAYS,
    TRENDING_POST_WEIGHT,
)

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#([A-Za-z0-9_]+)")
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class TrendingHashtag:
    hashtag: str
    posts_count: int
    total_engagement: int
    age_in_days: int
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hashtag": self.hashtag,
            "posts_count": self.posts_count,
            "total_engagement": self.total_engagement,
            "age_in_days": self.age_in_days,
            "score": self.score,
        }


def extract_hashtags(text: Optional[str]) -> List[str]:
    """Lowercased hashtags (with ``#``) in first-seen order, without duplicates."""
    if not text:
        return []
    seen: Dict[str, None] = {}
    for match in HASHTAG_PATTERN.finditer(text):
        seen.setdefault(f"#{match.group(1).lower()}", None)
    return list(seen)


def normalize_hashtag(tag: str) -> str:
    """``Golf``, ``#golf`` and ``#GOLF`` all become ``#golf``."""
    return f"#{tag.strip().lstrip('#').lower()}"


def calculate_trending_score(
    posts_count: int,
    comments_count: int,
    total_engagement: int,
    age_in_days: int,
) -> int:
    score = (
        posts_count * TRENDING_POST_WEIGHT
        + comments_count * TRENDING_COMMENT_WEIGHT
        + total_engagement * TRENDING_ENGAGEMENT_WEIGHT
        - age_in_days * TRENDING_AGE_PENALTY_PER_DAY
    )
    return max(0, score)


def period_days(period: Optional[str]) -> int:
    return TRENDING_PERIOD_DAYS.get(period or "", TRENDING_PERIOD_DAYS[TRENDING_DEFAULT_PERIOD])


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def rank_hashtags(
    posts: Iterable[Mapping[str, Any]],
    period: str = TRENDING_DEFAULT_PERIOD,
    limit: int = TRENDING_DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> List[TrendingHashtag]:
    """
    Rank hashtags across ``posts``.

    Args:
        posts: Mappings with ``caption``, ``likes_count``, ``comments_count``
            and ``created_at``
        period: ``daily``, ``weekly`` or ``monthly``; anything else is weekly
        limit: Maximum entries returned
        now: Reference time, defaults to the current UTC time

    Returns:
        Entries sorted by score (highest first), then hashtag
    """
    now = _as_aware(now or datetime.now(timezone.utc))
    window_seconds = period_days(period) * SECONDS_PER_DAY

    buckets: Dict[str, Dict[str, Any]] = {}
    considered = 0
    for post in posts:
        created_at = _as_aware(post["created_at"])
        age_seconds = (now - created_at).total_seconds()
        if age_seconds > window_seconds:
            continue
        hashtags = extract_hashtags(post.get("caption"))
        if not hashtags:
            continue
        considered += 1

        engagement = int(post.get("likes_count") or 0) + int(post.get("comments_count") or 0)
        for hashtag in hashtags:
            bucket = buckets.setdefault(hashtag, {"posts": 0, "engagement": 0, "oldest": created_at})
            bucket["posts"] += 1
            bucket["engagement"] += engagement
            if created_at < bucket["oldest"]:
                bucket["oldest"] = created_at

    ranked = []
    for hashtag, bucket in buckets.items():
        age_in_days = max(0, int((now - bucket["oldest"]).total_seconds() // SECONDS_PER_DAY))
        ranked.append(TrendingHashtag(
            hashtag=hashtag,
            posts_count=bucket["posts"],
            total_engagement=bucket["engagement"],
            age_in_days=age_in_days,
            score=calculate_trending_score(bucket["posts"], 0, bucket["engagement"], age_in_days),
        ))

    ranked.sort(key=lambda item: (-item.score, item.hashtag))
    logger.info(f"[Trending] {considered} posts, {len(ranked)} unique hashtags ({period})")
    return ranked[:limit]
