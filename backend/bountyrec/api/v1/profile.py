"""Explicit skill tags and profile endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bountyrec.models.base import get_db
from bountyrec.models.tag import Tag
from bountyrec.models.user_profile import UserTag
from bountyrec.schemas.profile import ProfileUpdate, TagRead, UserTagsUpdate, UserTagsUpdateResult
from bountyrec.schemas.recommendation import UserProfileRead, UserTagRead
from bountyrec.services.snapshot_loader import load_profile, load_user_tags, profile_snapshot
from bountyrec.services.user_profile_service import apply_profile_overrides, normalize_user_tags

router = APIRouter(tags=["profile"])


@router.get("/tags", response_model=list[TagRead])
async def list_tags(
    db: AsyncSession = Depends(get_db),
    category: str | None = Query(None, description="Filter by category"),
):
    """All known tags, most popular first."""
    query = select(Tag)
    if category:
        query = query.where(Tag.category == category)
    result = await db.execute(query.order_by(Tag.popularity.desc(), Tag.name))
    return result.scalars().all()


@router.get("/users/{user_id}/tags", response_model=list[UserTagRead])
async def get_user_tags(user_id: str, db: AsyncSession = Depends(get_db)):
    tags = await load_user_tags(db, user_id)
    return [UserTagRead.model_validate(t) for t in sorted(tags, key=lambda t: t.score, reverse=True)]


@router.put("/users/{user_id}/tags", response_model=UserTagsUpdateResult)
async def replace_user_tags(user_id: str, payload: UserTagsUpdate, db: AsyncSession = Depends(get_db)):
    """Replace the user's explicit skills wholesale. A score of 0 drops the tag."""
    try:
        scores = normalize_user_tags((t.tag_id, t.score) for t in payload.tags)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if scores:
        known = set((await db.execute(select(Tag.id).where(Tag.id.in_(scores)))).scalars())
        missing = sorted(set(scores) - known)
        if missing:
            raise HTTPException(status_code=404, detail=f"Unknown tag ids: {missing}")

    await db.execute(delete(UserTag).where(UserTag.user_id == user_id))
    for tag_id, score in scores.items():
        db.add(UserTag(user_id=user_id, tag_id=tag_id, score=score, source="manual"))
    await db.flush()

    return UserTagsUpdateResult(tag_count=len(scores))


@router.get("/users/{user_id}/profile", response_model=UserProfileRead)
async def get_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    return await load_profile(db, user_id)


@router.patch("/users/{user_id}/profile", response_model=UserProfileRead)
async def update_profile(user_id: str, payload: ProfileUpdate, db: AsyncSession = Depends(get_db)):
    """Override profile fields to tune recommendations (operator tooling)."""
    profile = await load_profile(db, user_id)
    updated = apply_profile_overrides(
        profile_snapshot(profile),
        avg_price_viewed=payload.avg_price_viewed,
        access_tier=payload.access_tier,
        platform_score=payload.platform_score,
        engagement_score=payload.engagement_score,
    )

    profile.avg_price_viewed = updated.avg_price_viewed
    profile.access_tier = updated.access_tier
    profile.platform_score = updated.platform_score
    profile.engagement_score = updated.engagement_score
    await db.flush()

    return UserProfileRead.model_validate(updated)
