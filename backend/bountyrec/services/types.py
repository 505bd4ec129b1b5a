"""Plain data snapshots shared by the scoring models and the ranking engine.

The scoring code never touches the database: callers load rows once per request,
convert them to these dataclasses, and pass them in.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

AccessTier = Literal["basic", "middle", "high"]
BountyStatus = Literal["open", "claimed", "completed", "expired"]

TIER_LEVELS: dict[str, int] = {"basic": 1, "middle": 2, "high": 3}
ACCESS_TIERS: tuple[str, ...] = ("basic", "middle", "high")


def tier_level(tier: str) -> int:
    """Numeric level of an access tier (basic=1, middle=2, high=3)."""
    try:
        return TIER_LEVELS[tier]
    except KeyError:
        raise ValueError(f"Unknown access tier: {tier!r}") from None


def tag_label(tag_id: int, tag_name: str | None = None) -> str:
    """Display name for a tag, with a placeholder when the name is unknown."""
    return tag_name or f"Tag {tag_id}"


@dataclass(frozen=True)
class UserTagScore:
    """Explicit, user-declared skill strength (1-5)."""

    tag_id: int
    tag_name: str
    score: int


@dataclass(frozen=True)
class UserProfileSnapshot:
    user_id: str
    avg_price_viewed: float
    engagement_score: float  # 0-100
    access_tier: AccessTier
    platform_score: float = 2.0
    total_interactions: int = 0


@dataclass(frozen=True)
class MutualEdge:
    """Stored direct (layer 1) edge of the social graph."""

    user_id: str
    mutual_id: str
    strength: float  # 0-1


@dataclass(frozen=True)
class MutualConnection:
    """Connection discovered by graph expansion, strength already decayed."""

    mutual_id: str
    layer: int  # 1 = direct, 2 = friend-of-friend, 3 = third degree
    strength: float


@dataclass(frozen=True)
class BountyTagWeight:
    tag_id: int
    weight: float  # 0-1
    tag_name: str | None = None


@dataclass(frozen=True)
class BountyData:
    id: int
    price: float
    tier: AccessTier
    status: BountyStatus = "open"
    title: str = ""
    description: str = ""
    views: int = 0
    submissions: int = 0
    likes: int = 0
    engagement_score: float = 0.0  # 0-100
    creator_id: str | None = None
    claimed_by_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expires_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class RecommendationInput:
    user_id: str
    user_tags: list[UserTagScore]
    user_profile: UserProfileSnapshot
    mutuals: list[MutualConnection] = field(default_factory=list)


@dataclass(frozen=True)
class ScoredBounty:
    bounty: BountyData
    relevance_score: float  # 0-10
    social_boost: float  # 0-2
    price_affinity: float  # 0-1
    final_score: float  # 0-10

    def reason(self) -> dict[str, float]:
        """Sub-score breakdown stored with recommendation log entries."""
        return {
            "relevance": self.relevance_score,
            "social": self.social_boost,
            "price": self.price_affinity,
        }


@dataclass(frozen=True)
class TagMatchDetail:
    tag_id: int
    tag_name: str
    user_score: float  # 0 when the user does not have the tag
    bounty_weight: float
    contribution: float
