"""Recommendation endpoints: primary/stretch picks and the personalized feed."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bountyrec.config import get_settings
from bountyrec.models.base import get_db
from bountyrec.models.recommendation_log import RecommendationLog
from bountyrec.schemas.recommendation import (
    FeedResponse,
    PaginationRead,
    RecommendationDebugRead,
    RecommendationsResponse,
    UserProfileRead,
    UserTagRead,
    feed_item_read,
    scored_bounty_read,
)
from bountyrec.services import recommendation_service
from bountyrec.services.recommendation_service import FeedSort
from bountyrec.services.snapshot_loader import load_recommendation_context
from bountyrec.services.types import ACCESS_TIERS

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/users/{user_id}", tags=["recommendations"])


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(user_id: str, db: AsyncSession = Depends(get_db)):
    """Primary (best overall) and secondary (stretch) bounty for a user."""
    profile, ctx = await load_recommendation_context(db, user_id)

    result = recommendation_service.get_recommendations(
        ctx.input, ctx.bounties, ctx.tag_map, ctx.mutual_interactions
    )

    entry = recommendation_service.build_log_entry(user_id, result)
    db.add(RecommendationLog(
        user_id=entry.user_id,
        primary_bounty_id=entry.primary_bounty_id,
        secondary_bounty_id=entry.secondary_bounty_id,
        primary_score=entry.primary_score,
        secondary_score=entry.secondary_score,
        reason_primary=entry.reason_primary,
        reason_secondary=entry.reason_secondary,
    ))

    return RecommendationsResponse(
        primary=scored_bounty_read(result.primary, list(ctx.tag_map.get(result.primary.bounty.id, ()))),
        secondary=scored_bounty_read(result.secondary, list(ctx.tag_map.get(result.secondary.bounty.id, ()))),
        user_profile=UserProfileRead.model_validate(profile),
        debug=RecommendationDebugRead.model_validate(result.debug),
    )


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    sort_by: FeedSort = Query("relevance", description="relevance, price_high, price_low, engagement, newest"),
    tiers: str | None = Query(None, description="Comma-separated tiers, e.g. basic,middle"),
    tags: str | None = Query(None, description="Comma-separated tag ids"),
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    offset: int = Query(0, ge=0),
    explain: bool = Query(False, description="Include per-bounty scoring details"),
):
    """All accessible bounties above the relevance threshold, scored and paginated."""
    tier_filter = _split_csv(tiers)
    unknown = [t for t in tier_filter if t not in ACCESS_TIERS]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown tiers: {', '.join(unknown)}")
    try:
        tag_filter = [int(t) for t in _split_csv(tags)]
    except ValueError:
        raise HTTPException(status_code=422, detail="tags must be comma-separated integers")

    profile, ctx = await load_recommendation_context(db, user_id)

    page = recommendation_service.build_feed(
        ctx.input,
        ctx.bounties,
        ctx.tag_map,
        ctx.mutual_interactions,
        sort_by=sort_by,
        tier_filter=tier_filter,
        tag_filter=tag_filter,
        limit=limit,
        offset=offset,
        explain=explain,
    )

    return FeedResponse(
        bounties=[feed_item_read(item) for item in page.items],
        pagination=PaginationRead(total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more),
        user_profile=UserProfileRead.model_validate(profile),
        user_tags=[UserTagRead.model_validate(t) for t in ctx.input.user_tags],
    )
