"""Behavior store — maps implicit-profile rows to behavior snapshots and back.

Runs on a sync Session: inside Celery tasks directly, and from the API through
``AsyncSession.run_sync``. Rows are locked FOR UPDATE when loaded for writing so
concurrent events for the same user serialize instead of losing counts.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from bountyrec.models.behavior import UserBehaviorPrice, UserBehaviorTag, UserBlendConfig, UserOnboarding
from bountyrec.models.bounty import Bounty, BountyTag
from bountyrec.models.tag import Tag
from bountyrec.models.user_profile import UserTag
from bountyrec.services import behavior_service
from bountyrec.services.behavior_service import (
    BehaviorSnapshot,
    BlendConfig,
    DivergenceAlert,
    DivergenceResolution,
    EventSignal,
    EventType,
    PriceBehavior,
    TagBehavior,
)

logger = logging.getLogger(__name__)


# ============ ROW <-> SNAPSHOT ============


def tag_behavior_from_row(row: UserBehaviorTag) -> TagBehavior:
    return TagBehavior(
        tag_id=row.tag_id,
        signals={
            EventType.VIEW: EventSignal(count=row.view_count, score=row.view_score),
            EventType.LIKE: EventSignal(count=row.like_count, score=row.like_score),
            EventType.SUBMIT: EventSignal(count=row.submit_count, score=row.submit_score),
            EventType.COMPLETE: EventSignal(count=row.complete_count, score=row.complete_score),
        },
        implicit_score=row.implicit_score,
        divergence_detected=bool(row.divergence_detected),
        last_explicit_score=row.last_explicit_score,
    )


def apply_tag_behavior(row: UserBehaviorTag, behavior: TagBehavior) -> None:
    view = behavior.signal(EventType.VIEW)
    like = behavior.signal(EventType.LIKE)
    submit = behavior.signal(EventType.SUBMIT)
    complete = behavior.signal(EventType.COMPLETE)

    row.view_count, row.view_score = view.count, view.score
    row.like_count, row.like_score = like.count, like.score
    row.submit_count, row.submit_score = submit.count, submit.score
    row.complete_count, row.complete_score = complete.count, complete.score
    row.implicit_score = behavior.implicit_score
    row.divergence_detected = behavior.divergence_detected
    row.last_explicit_score = behavior.last_explicit_score


def price_behavior_from_row(row: UserBehaviorPrice | None) -> PriceBehavior:
    if row is None:
        return PriceBehavior()
    return PriceBehavior(
        averages={
            EventType.VIEW: row.avg_price_viewed,
            EventType.LIKE: row.avg_price_liked,
            EventType.SUBMIT: row.avg_price_submitted,
            EventType.COMPLETE: row.avg_price_completed,
        },
        implicit_price_min=row.implicit_price_min,
        implicit_price_max=row.implicit_price_max,
        last_explicit_min=row.last_explicit_min,
        last_explicit_max=row.last_explicit_max,
        divergence_detected=bool(row.divergence_detected),
    )


def apply_price_behavior(row: UserBehaviorPrice, price: PriceBehavior) -> None:
    row.avg_price_viewed = price.average(EventType.VIEW)
    row.avg_price_liked = price.average(EventType.LIKE)
    row.avg_price_submitted = price.average(EventType.SUBMIT)
    row.avg_price_completed = price.average(EventType.COMPLETE)
    row.implicit_price_min = price.implicit_price_min
    row.implicit_price_max = price.implicit_price_max
    row.last_explicit_min = price.last_explicit_min
    row.last_explicit_max = price.last_explicit_max
    row.divergence_detected = price.divergence_detected


def blend_config_from_row(row: UserBlendConfig | None) -> BlendConfig:
    if row is None:
        return BlendConfig()
    return BlendConfig(
        explicit_weight=row.explicit_weight,
        implicit_weight=row.implicit_weight,
        total_interactions=row.total_interactions,
        last_divergence_prompt_at=row.last_divergence_prompt_at,
        divergence_prompt_count=row.divergence_prompt_count,
    )


def apply_blend_config(row: UserBlendConfig, blend: BlendConfig) -> None:
    row.explicit_weight = blend.explicit_weight
    row.implicit_weight = blend.implicit_weight
    row.total_interactions = blend.total_interactions
    row.last_divergence_prompt_at = blend.last_divergence_prompt_at
    row.divergence_prompt_count = blend.divergence_prompt_count


# ============ LOAD / SAVE ============


def _insert_ignore(session: Session, model, rows: list[dict], conflict_columns: list[str]) -> None:
    """INSERT ... ON CONFLICT DO NOTHING. Waits on a concurrent insert of the same key."""
    if not rows:
        return
    # sqlite is only used for local runs and tests
    insert = sqlite_insert if session.get_bind().dialect.name == "sqlite" else pg_insert
    session.execute(insert(model).values(rows).on_conflict_do_nothing(index_elements=conflict_columns))


def ensure_behavior_rows(session: Session, user_id: str, tag_ids: Iterable[int] = ()) -> None:
    """Create any missing price, blend and per-tag behavior rows for the user.

    Must run before a locked load: FOR UPDATE only locks rows that exist, so a
    first event on a user or tag would otherwise race with a concurrent one.
    """
    _insert_ignore(session, UserBehaviorPrice, [{"user_id": user_id}], ["user_id"])
    _insert_ignore(session, UserBlendConfig, [{"user_id": user_id}], ["user_id"])
    _insert_ignore(
        session,
        UserBehaviorTag,
        [{"user_id": user_id, "tag_id": tag_id} for tag_id in dict.fromkeys(tag_ids)],
        ["user_id", "tag_id"],
    )


def _locked(query, lock: bool):
    if not lock:
        return query
    # Re-read rows already in the identity map once the lock is held
    return query.with_for_update().execution_options(populate_existing=True)


def load_behavior_snapshot(session: Session, user_id: str, lock: bool = False) -> BehaviorSnapshot:
    """Read the user's behavior rows. With ``lock``, call ensure_behavior_rows first."""
    tag_rows = session.execute(
        _locked(select(UserBehaviorTag).where(UserBehaviorTag.user_id == user_id).order_by(UserBehaviorTag.tag_id), lock)
    ).scalars().all()
    price_row = session.execute(
        _locked(select(UserBehaviorPrice).where(UserBehaviorPrice.user_id == user_id), lock)
    ).scalar_one_or_none()
    blend_row = session.execute(
        _locked(select(UserBlendConfig).where(UserBlendConfig.user_id == user_id), lock)
    ).scalar_one_or_none()
    explicit = session.execute(
        select(UserTag.tag_id, UserTag.score).where(UserTag.user_id == user_id)
    ).all()
    onboarding = session.execute(
        select(UserOnboarding).where(UserOnboarding.user_id == user_id)
    ).scalar_one_or_none()

    return BehaviorSnapshot(
        user_id=user_id,
        explicit_scores={row.tag_id: row.score for row in explicit},
        tag_behaviors={row.tag_id: tag_behavior_from_row(row) for row in tag_rows},
        price=price_behavior_from_row(price_row),
        blend=blend_config_from_row(blend_row),
        explicit_price_min=onboarding.price_range_min if onboarding else None,
        explicit_price_max=onboarding.price_range_max if onboarding else None,
    )


def _get_or_create(session: Session, model, user_id: str):
    row = session.execute(select(model).where(model.user_id == user_id)).scalar_one_or_none()
    if row is None:
        row = model(user_id=user_id)
        session.add(row)
    return row


def save_tag_behaviors(session: Session, user_id: str, behaviors: dict[int, TagBehavior]) -> int:
    """Write changed tag behaviors. Returns the number of rows touched."""
    rows = {
        row.tag_id: row
        for row in session.execute(
            select(UserBehaviorTag).where(UserBehaviorTag.user_id == user_id)
        ).scalars()
    }

    touched = 0
    for tag_id, behavior in behaviors.items():
        row = rows.get(tag_id)
        if row is not None and tag_behavior_from_row(row) == behavior:
            continue
        if row is None:
            row = UserBehaviorTag(user_id=user_id, tag_id=tag_id)
            session.add(row)
        apply_tag_behavior(row, behavior)
        touched += 1
    return touched


def save_behavior_snapshot(session: Session, snapshot: BehaviorSnapshot) -> None:
    save_tag_behaviors(session, snapshot.user_id, dict(snapshot.tag_behaviors))
    apply_price_behavior(_get_or_create(session, UserBehaviorPrice, snapshot.user_id), snapshot.price)
    apply_blend_config(_get_or_create(session, UserBlendConfig, snapshot.user_id), snapshot.blend)
    session.flush()


def load_tag_names(session: Session, tag_ids) -> dict[int, str]:
    tag_ids = list(tag_ids)
    if not tag_ids:
        return {}
    rows = session.execute(select(Tag.id, Tag.name).where(Tag.id.in_(tag_ids))).all()
    return {row.id: row.name for row in rows}


# ============ OPERATIONS ============


def track_behavior_event(session: Session, user_id: str, bounty_id: int, event_type: str) -> BehaviorSnapshot | None:
    """Apply one tracked interaction to the user's implicit profile and persist it.

    Returns None when the bounty no longer exists.
    """
    event = behavior_service.tracked_event(event_type)

    bounty = session.execute(select(Bounty).where(Bounty.id == bounty_id)).scalar_one_or_none()
    if not bounty:
        logger.warning("Skipping %s event for missing bounty %s", event.value, bounty_id)
        return None

    tag_ids = session.execute(select(BountyTag.tag_id).where(BountyTag.bounty_id == bounty_id)).scalars().all()

    ensure_behavior_rows(session, user_id, tag_ids)
    snapshot = load_behavior_snapshot(session, user_id, lock=True)
    updated = behavior_service.record_event(snapshot, event, bounty.price, tag_ids)
    save_behavior_snapshot(session, updated)

    logger.info(
        "Tracked %s on bounty %s for user %s (%d tags, %d total interactions)",
        event.value,
        bounty_id,
        user_id,
        len(tag_ids),
        updated.blend.total_interactions,
    )
    return updated


def resolve_divergence(
    session: Session,
    user_id: str,
    tag_id: int,
    action: str,
    new_score: int | None = None,
) -> DivergenceResolution:
    """Apply a divergence prompt answer: edit explicit skills, clear the flag, record the prompt."""
    ensure_behavior_rows(session, user_id)
    snapshot = load_behavior_snapshot(session, user_id, lock=True)
    resolution = behavior_service.apply_divergence_response(
        snapshot.explicit_scores,
        snapshot.tag_behaviors.get(tag_id),
        snapshot.blend,
        tag_id,
        action,
        new_score,
    )

    if tag_id in resolution.explicit_scores and resolution.explicit_scores.get(tag_id) != snapshot.explicit_scores.get(tag_id):
        existing = session.execute(
            select(UserTag).where(UserTag.user_id == user_id, UserTag.tag_id == tag_id)
        ).scalar_one_or_none()
        if existing is None:
            session.add(UserTag(
                user_id=user_id,
                tag_id=tag_id,
                score=resolution.explicit_scores[tag_id],
                source="divergence_prompt",
            ))
        else:
            existing.score = resolution.explicit_scores[tag_id]
            existing.source = "divergence_prompt"
    elif tag_id not in resolution.explicit_scores and tag_id in snapshot.explicit_scores:
        session.execute(delete(UserTag).where(UserTag.user_id == user_id, UserTag.tag_id == tag_id))

    if resolution.tag_behavior is not None:
        save_tag_behaviors(session, user_id, {tag_id: resolution.tag_behavior})
    apply_blend_config(_get_or_create(session, UserBlendConfig, user_id), resolution.blend)
    session.flush()
    return resolution


def show_divergence_alerts(
    session: Session,
    user_id: str,
    now: datetime | None = None,
    cooldown: timedelta = behavior_service.DIVERGENCE_PROMPT_COOLDOWN,
) -> list[DivergenceAlert]:
    """Pending prompts for the user; showing a non-empty batch starts the cooldown."""
    now = now or datetime.now(timezone.utc)
    ensure_behavior_rows(session, user_id)
    snapshot = load_behavior_snapshot(session, user_id, lock=True)
    names = load_tag_names(session, snapshot.tag_behaviors)
    alerts = behavior_service.get_divergence_alerts(
        snapshot.tag_behaviors, snapshot.blend, names, now, cooldown, explicit_scores=snapshot.explicit_scores
    )
    if alerts:
        blend = behavior_service.mark_divergence_prompt_shown(snapshot.blend, now)
        apply_blend_config(_get_or_create(session, UserBlendConfig, user_id), blend)
        session.flush()
    return alerts
