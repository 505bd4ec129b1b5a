"""Snapshot loader — reads one request's worth of rows and converts them for the scoring engine."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bountyrec.models.bounty import Bounty, BountyInteraction, BountyTag
from bountyrec.models.tag import Tag
from bountyrec.models.user_profile import Mutual, UserProfile, UserTag
from bountyrec.services.exceptions import MissingProfileError
from bountyrec.services.social_graph import MAX_LAYER, expand_mutuals
from bountyrec.services.types import (
    BountyData,
    BountyTagWeight,
    MutualConnection,
    MutualEdge,
    RecommendationInput,
    UserProfileSnapshot,
    UserTagScore,
    tag_label,
)

logger = logging.getLogger(__name__)


@dataclass
class RecommendationContext:
    """Everything scoring needs for one user, fetched once per request."""

    input: RecommendationInput
    bounties: list[BountyData]
    tag_map: dict[int, list[BountyTagWeight]]
    mutual_interactions: dict[str, set[int]]


def profile_snapshot(row: UserProfile) -> UserProfileSnapshot:
    return UserProfileSnapshot(
        user_id=row.user_id,
        avg_price_viewed=row.avg_price_viewed or 0.0,
        engagement_score=row.engagement_score or 0.0,
        access_tier=row.access_tier,
        platform_score=row.platform_score,
        total_interactions=row.total_interactions,
    )


def bounty_data(row: Bounty) -> BountyData:
    return BountyData(
        id=row.id,
        title=row.title,
        description=row.description,
        price=row.price,
        tier=row.tier,
        status=row.status,
        views=row.views,
        submissions=row.submissions,
        likes=row.likes,
        engagement_score=row.engagement_score or 0.0,
        creator_id=row.creator_id,
        claimed_by_id=row.claimed_by_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        expires_at=row.expires_at,
        completed_at=row.completed_at,
    )


async def load_profile(db: AsyncSession, user_id: str) -> UserProfile:
    """Return the user's profile row or raise MissingProfileError."""
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if not profile:
        raise MissingProfileError(user_id)
    return profile


async def load_user_tags(db: AsyncSession, user_id: str) -> list[UserTagScore]:
    result = await db.execute(
        select(UserTag.tag_id, UserTag.score, Tag.name)
        .outerjoin(Tag, UserTag.tag_id == Tag.id)
        .where(UserTag.user_id == user_id)
    )
    return [
        UserTagScore(tag_id=row.tag_id, tag_name=tag_label(row.tag_id, row.name), score=row.score)
        for row in result
    ]


async def load_mutual_connections(db: AsyncSession, user_id: str) -> list[MutualConnection]:
    """Fetch stored edges frontier by frontier, then expand them into three layers."""
    edges_by_user: dict[str, list[MutualEdge]] = {}
    queried: set[str] = set()
    frontier = {user_id}

    for _ in range(MAX_LAYER):
        result = await db.execute(select(Mutual).where(Mutual.user_id.in_(frontier)))
        queried |= frontier
        reached: set[str] = set()
        for row in result.scalars():
            edges_by_user.setdefault(row.user_id, []).append(
                MutualEdge(user_id=row.user_id, mutual_id=row.mutual_id, strength=row.strength)
            )
            reached.add(row.mutual_id)
        frontier = reached - queried
        if not frontier:
            break

    return expand_mutuals(user_id, edges_by_user)


async def load_open_bounties(db: AsyncSession) -> list[BountyData]:
    result = await db.execute(select(Bounty).where(Bounty.status == "open"))
    return [bounty_data(row) for row in result.scalars()]


async def load_bounty_tag_map(db: AsyncSession, bounty_ids: list[int] | None = None) -> dict[int, list[BountyTagWeight]]:
    query = select(BountyTag.bounty_id, BountyTag.tag_id, BountyTag.weight, Tag.name).outerjoin(
        Tag, BountyTag.tag_id == Tag.id
    )
    if bounty_ids is not None:
        query = query.where(BountyTag.bounty_id.in_(bounty_ids))

    tag_map: dict[int, list[BountyTagWeight]] = {}
    for row in await db.execute(query):
        if row.name is None:
            logger.debug("Bounty %s references unknown tag %s", row.bounty_id, row.tag_id)
        tag_map.setdefault(row.bounty_id, []).append(
            BountyTagWeight(tag_id=row.tag_id, weight=row.weight, tag_name=tag_label(row.tag_id, row.name))
        )
    return tag_map


async def load_mutual_interactions(db: AsyncSession, mutual_ids: list[str]) -> dict[str, set[int]]:
    """Map each connection to the bounty ids they have interacted with (any type)."""
    if not mutual_ids:
        return {}
    result = await db.execute(
        select(BountyInteraction.user_id, BountyInteraction.bounty_id)
        .where(BountyInteraction.user_id.in_(mutual_ids))
        .distinct()
    )
    interactions: dict[str, set[int]] = {}
    for row in result:
        interactions.setdefault(row.user_id, set()).add(row.bounty_id)
    return interactions


async def load_recommendation_context(db: AsyncSession, user_id: str) -> tuple[UserProfile, RecommendationContext]:
    """Load the profile (or raise MissingProfileError) and every scoring input."""
    profile = await load_profile(db, user_id)
    user_tags = await load_user_tags(db, user_id)
    mutuals = await load_mutual_connections(db, user_id)
    bounties = await load_open_bounties(db)
    tag_map = await load_bounty_tag_map(db)
    mutual_interactions = await load_mutual_interactions(db, [m.mutual_id for m in mutuals])

    context = RecommendationContext(
        input=RecommendationInput(
            user_id=user_id,
            user_tags=user_tags,
            user_profile=profile_snapshot(profile),
            mutuals=mutuals,
        ),
        bounties=bounties,
        tag_map=tag_map,
        mutual_interactions=mutual_interactions,
    )
    return profile, context
