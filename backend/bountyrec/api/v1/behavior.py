"""Implicit profile endpoints: blended scores and divergence prompts."""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bountyrec.config import get_settings
from bountyrec.models.base import get_db
from bountyrec.schemas.behavior import (
    BlendedPriceRangeRead,
    BlendedTagRead,
    DivergenceAlertRead,
    DivergenceResponseCreate,
)
from bountyrec.services import behavior_service
from bountyrec.services.behavior_store import (
    load_behavior_snapshot,
    load_tag_names,
    resolve_divergence,
    show_divergence_alerts,
)

settings = get_settings()

router = APIRouter(prefix="/users/{user_id}", tags=["behavior"])


def _blended_tags(session, user_id: str):
    snapshot = load_behavior_snapshot(session, user_id)
    names = load_tag_names(session, {*snapshot.explicit_scores, *snapshot.tag_behaviors})
    return behavior_service.get_blended_tag_scores(
        snapshot.explicit_scores, snapshot.tag_behaviors, snapshot.blend, names
    )


def _blended_price_range(session, user_id: str):
    snapshot = load_behavior_snapshot(session, user_id)
    return behavior_service.get_blended_price_range(
        snapshot.price, snapshot.blend, snapshot.explicit_price_min, snapshot.explicit_price_max
    )


@router.get("/blended-tags", response_model=list[BlendedTagRead])
async def get_blended_tags(user_id: str, db: AsyncSession = Depends(get_db)):
    """Explicit and implicit tag scores blended by interaction volume, strongest first."""
    return await db.run_sync(_blended_tags, user_id)


@router.get("/blended-price-range", response_model=BlendedPriceRangeRead)
async def get_blended_price_range(user_id: str, db: AsyncSession = Depends(get_db)):
    return await db.run_sync(_blended_price_range, user_id)


@router.get("/divergence-alerts", response_model=list[DivergenceAlertRead])
async def get_divergence_alerts(user_id: str, db: AsyncSession = Depends(get_db)):
    """At most one batch of "are you sure?" prompts per cooldown window."""
    cooldown = timedelta(hours=settings.divergence_prompt_cooldown_hours)
    return await db.run_sync(show_divergence_alerts, user_id, None, cooldown)


@router.post("/divergence-alerts/respond", response_model=list[BlendedTagRead])
async def respond_to_divergence(user_id: str, payload: DivergenceResponseCreate, db: AsyncSession = Depends(get_db)):
    """Apply the user's answer to a prompt and return the refreshed blended tags."""
    try:
        await db.run_sync(resolve_divergence, user_id, payload.tag_id, payload.action, payload.new_score)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await db.run_sync(_blended_tags, user_id)
