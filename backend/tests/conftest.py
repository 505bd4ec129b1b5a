"""Shared builders for the scoring and behavior tests, plus an in-memory database."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bountyrec.models.base import Base
from bountyrec.models import behavior, recommendation_log  # noqa: F401
from bountyrec.models.bounty import Bounty, BountyTag
from bountyrec.models.tag import Tag
from bountyrec.models.user_profile import UserProfile, UserTag
from bountyrec.services.types import (
    BountyData,
    BountyTagWeight,
    MutualConnection,
    RecommendationInput,
    UserProfileSnapshot,
    UserTagScore,
)

TAG_NAMES = {1: "typescript", 2: "python", 3: "rust", 4: "react", 5: "solidity"}


def make_profile(access_tier="middle", avg_price_viewed=500.0, engagement_score=0.0, user_id="user-1"):
    return UserProfileSnapshot(
        user_id=user_id,
        avg_price_viewed=avg_price_viewed,
        engagement_score=engagement_score,
        access_tier=access_tier,
    )


def make_user_tags(scores: dict[int, int]) -> list[UserTagScore]:
    return [UserTagScore(tag_id=t, tag_name=TAG_NAMES.get(t, f"Tag {t}"), score=s) for t, s in scores.items()]


def make_input(tag_scores=None, mutuals=None, **profile_kwargs) -> RecommendationInput:
    profile = make_profile(**profile_kwargs)
    return RecommendationInput(
        user_id=profile.user_id,
        user_tags=make_user_tags(tag_scores or {}),
        user_profile=profile,
        mutuals=list(mutuals or []),
    )


def make_bounty(bounty_id, price=600, tier="middle", status="open", engagement_score=0.0, created_at=None):
    return BountyData(
        id=bounty_id,
        price=price,
        tier=tier,
        status=status,
        title=f"Bounty {bounty_id}",
        engagement_score=engagement_score,
        created_at=created_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def bounty_tags(*pairs) -> list[BountyTagWeight]:
    """bounty_tags((1, 1.0), (2, 0.5)) -> tag weights with known names."""
    return [BountyTagWeight(tag_id=t, weight=w, tag_name=TAG_NAMES.get(t)) for t, w in pairs]


def mutual(mutual_id, layer=1, strength=1.0) -> MutualConnection:
    return MutualConnection(mutual_id=mutual_id, layer=layer, strength=strength)


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ============ DATABASE ============


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory sqlite database with every table created."""
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


class AsyncSessionAdapter:
    """The slice of AsyncSession the routers and loaders use, backed by a sync Session."""

    def __init__(self, session):
        self.session = session

    def add(self, obj):
        self.session.add(obj)

    async def execute(self, statement):
        return self.session.execute(statement)

    async def get(self, model, ident):
        return self.session.get(model, ident)

    async def flush(self):
        self.session.flush()

    async def commit(self):
        self.session.commit()

    async def rollback(self):
        self.session.rollback()

    async def run_sync(self, fn, *args, **kwargs):
        return fn(self.session, *args, **kwargs)


def seed_tags(session, names=TAG_NAMES):
    session.add_all(Tag(id=tag_id, name=name, category="language") for tag_id, name in names.items())
    session.flush()


def seed_user(session, user_id="user-1", access_tier="middle", tag_scores=None):
    profile = UserProfile(user_id=user_id, access_tier=access_tier)
    session.add(profile)
    for tag_id, score in (tag_scores or {}).items():
        session.add(UserTag(user_id=user_id, tag_id=tag_id, score=score))
    session.flush()
    return profile


def seed_bounty(session, bounty_id, price=600, tier="middle", status="open", tags=()):
    """seed_bounty(s, 1, tags=[(2, 1.0)]) -> bounty row with weighted tags."""
    row = Bounty(id=bounty_id, title=f"Bounty {bounty_id}", price=price, tier=tier, status=status)
    session.add(row)
    for tag_id, weight in tags:
        session.add(BountyTag(bounty_id=bounty_id, tag_id=tag_id, weight=weight))
    session.flush()
    return row
