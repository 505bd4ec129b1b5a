"""Pydantic schemas for recommendations and the scored bounty feed."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from bountyrec.services.recommendation_service import FeedExplain, FeedItem
from bountyrec.services.types import BountyTagWeight, ScoredBounty


class ScoreBreakdown(BaseModel):
    relevance: float
    social: float
    price: float
    final: float


class BountyTagRead(BaseModel):
    tag_id: int
    name: str
    weight: float


class TagMatchDetailRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tag_id: int
    tag_name: str
    user_score: float
    bounty_weight: float
    contribution: float


class FeedDebugRead(BaseModel):
    """Explain overlay: per-tag match, price ratio, network size."""

    tag_matches: list[TagMatchDetailRead]
    price_ratio: float | None = None
    mutual_count: int


class ScoredBountyRead(BaseModel):
    id: int
    title: str
    description: str
    price: float
    tier: str
    status: str
    views: int
    submissions: int
    likes: int
    engagement_score: float
    created_at: datetime | None = None
    expires_at: datetime | None = None
    tags: list[BountyTagRead] = []
    scores: ScoreBreakdown
    debug: FeedDebugRead | None = None


class RecommendationDebugRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_candidates: int
    filtered_by_tier: int
    filtered_by_relevance: int
    top_relevance_scores: list[float]
    used_fallback: bool = False


class UserProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    access_tier: str
    avg_price_viewed: float
    engagement_score: float
    platform_score: float
    total_interactions: int = 0


class RecommendationsResponse(BaseModel):
    primary: ScoredBountyRead
    secondary: ScoredBountyRead
    user_profile: UserProfileRead
    debug: RecommendationDebugRead


class PaginationRead(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class UserTagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tag_id: int
    tag_name: str
    score: int


class FeedResponse(BaseModel):
    bounties: list[ScoredBountyRead]
    pagination: PaginationRead
    user_profile: UserProfileRead
    user_tags: list[UserTagRead]


def _debug_read(explain: FeedExplain | None) -> FeedDebugRead | None:
    if explain is None:
        return None
    return FeedDebugRead(
        tag_matches=[TagMatchDetailRead.model_validate(m) for m in explain.tag_matches],
        price_ratio=explain.price_ratio,
        mutual_count=explain.mutual_count,
    )


def scored_bounty_read(
    scored: ScoredBounty,
    tags: list[BountyTagWeight],
    explain: FeedExplain | None = None,
) -> ScoredBountyRead:
    b = scored.bounty
    return ScoredBountyRead(
        id=b.id,
        title=b.title,
        description=b.description,
        price=b.price,
        tier=b.tier,
        status=b.status,
        views=b.views,
        submissions=b.submissions,
        likes=b.likes,
        engagement_score=b.engagement_score,
        created_at=b.created_at,
        expires_at=b.expires_at,
        tags=[BountyTagRead(tag_id=t.tag_id, name=t.tag_name or f"Tag {t.tag_id}", weight=t.weight) for t in tags],
        scores=ScoreBreakdown(
            relevance=scored.relevance_score,
            social=scored.social_boost,
            price=scored.price_affinity,
            final=scored.final_score,
        ),
        debug=_debug_read(explain),
    )


def feed_item_read(item: FeedItem) -> ScoredBountyRead:
    return scored_bounty_read(item.scored, item.tags, item.explain)
