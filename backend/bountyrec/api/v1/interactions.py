"""Interaction and view recording. Tracked events also feed the implicit profile."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bountyrec.config import get_settings
from bountyrec.models.base import get_db
from bountyrec.models.bounty import Bounty, BountyInteraction, BountyView
from bountyrec.schemas.behavior import InteractionCreate, InteractionResult, ViewCreate, ViewResult
from bountyrec.services.behavior_service import is_tracked
from bountyrec.services.behavior_store import track_behavior_event
from bountyrec.services.snapshot_loader import load_profile, profile_snapshot
from bountyrec.services.user_profile_service import (
    PRICE_VIEW_WINDOW,
    apply_interaction_count,
    apply_view_prices,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/users/{user_id}", tags=["interactions"])


async def _get_bounty(db: AsyncSession, bounty_id: int) -> Bounty:
    bounty = await db.get(Bounty, bounty_id)
    if not bounty:
        raise HTTPException(status_code=404, detail="Bounty not found")
    return bounty


# Bounty counters bumped per interaction type
BOUNTY_COUNTERS = {
    "view": Bounty.views,
    "like": Bounty.likes,
    "submit": Bounty.submissions,
}


async def _bump_bounty_counter(db: AsyncSession, bounty_id: int, interaction_type: str) -> None:
    """Increment the bounty's counter in SQL so concurrent requests never lose a bump."""
    column = BOUNTY_COUNTERS.get(interaction_type)
    if column is None:
        return
    await db.execute(update(Bounty).where(Bounty.id == bounty_id).values({column: column + 1}))


async def _track_behavior(db: AsyncSession, user_id: str, bounty_id: int, event_type: str) -> bool:
    """Forward one tracked event to the behavior tracker. Never fails the request."""
    if not settings.behavior_tracking_async:
        await db.run_sync(track_behavior_event, user_id, bounty_id, event_type)
        return True
    try:
        from bountyrec.tasks.behavior_tasks import track_behavior
        track_behavior.delay(user_id, bounty_id, event_type)
        return True
    except Exception:
        logger.warning("Could not dispatch behavior tracking for user %s bounty %s", user_id, bounty_id, exc_info=True)
        return False


@router.post("/interactions", response_model=InteractionResult)
async def record_interaction(user_id: str, payload: InteractionCreate, db: AsyncSession = Depends(get_db)):
    """Record an interaction and refresh the user's engagement score."""
    profile = await load_profile(db, user_id)
    bounty = await _get_bounty(db, payload.bounty_id)

    db.add(BountyInteraction(user_id=user_id, bounty_id=bounty.id, interaction_type=payload.type))
    await _bump_bounty_counter(db, bounty.id, payload.type)
    await db.flush()

    count = (await db.execute(
        select(func.count(BountyInteraction.id)).where(BountyInteraction.user_id == user_id)
    )).scalar() or 0
    updated = apply_interaction_count(profile_snapshot(profile), count)
    profile.total_interactions = updated.total_interactions
    profile.engagement_score = updated.engagement_score

    tracked = False
    if is_tracked(payload.type):
        tracked = await _track_behavior(db, user_id, bounty.id, payload.type)

    return InteractionResult(new_engagement_score=updated.engagement_score, behavior_tracked=tracked)


@router.post("/views", response_model=ViewResult)
async def record_view(user_id: str, payload: ViewCreate, db: AsyncSession = Depends(get_db)):
    """Record a bounty view and recompute the trailing average viewed price."""
    profile = await load_profile(db, user_id)
    bounty = await _get_bounty(db, payload.bounty_id)

    db.add(BountyView(user_id=user_id, bounty_id=bounty.id, duration=payload.duration))
    await db.flush()

    result = await db.execute(
        select(Bounty.price)
        .join(BountyView, BountyView.bounty_id == Bounty.id)
        .where(BountyView.user_id == user_id)
        .order_by(BountyView.viewed_at.desc())
        .limit(PRICE_VIEW_WINDOW)
    )
    updated = apply_view_prices(profile_snapshot(profile), result.scalars().all())
    profile.avg_price_viewed = updated.avg_price_viewed

    return ViewResult(avg_price=updated.avg_price_viewed)
