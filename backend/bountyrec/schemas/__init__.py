"""Pydantic schemas package."""

from bountyrec.schemas.recommendation import (
    BountyTagRead,
    FeedDebugRead,
    FeedResponse,
    PaginationRead,
    RecommendationDebugRead,
    RecommendationsResponse,
    ScoreBreakdown,
    ScoredBountyRead,
    TagMatchDetailRead,
    UserProfileRead,
    UserTagRead,
)
from bountyrec.schemas.behavior import (
    BlendedPriceRangeRead,
    BlendedTagRead,
    DivergenceAlertRead,
    DivergenceResponseCreate,
    InteractionCreate,
    InteractionResult,
    ViewCreate,
    ViewResult,
)
from bountyrec.schemas.profile import (
    ProfileUpdate,
    TagRead,
    UserTagInput,
    UserTagsUpdate,
    UserTagsUpdateResult,
)

__all__ = [
    # Recommendation / feed
    "BountyTagRead",
    "FeedDebugRead",
    "FeedResponse",
    "PaginationRead",
    "RecommendationDebugRead",
    "RecommendationsResponse",
    "ScoreBreakdown",
    "ScoredBountyRead",
    "TagMatchDetailRead",
    "UserProfileRead",
    "UserTagRead",
    # Behavior
    "BlendedPriceRangeRead",
    "BlendedTagRead",
    "DivergenceAlertRead",
    "DivergenceResponseCreate",
    "InteractionCreate",
    "InteractionResult",
    "ViewCreate",
    "ViewResult",
    # Profile
    "ProfileUpdate",
    "TagRead",
    "UserTagInput",
    "UserTagsUpdate",
    "UserTagsUpdateResult",
]
