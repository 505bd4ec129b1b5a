"""User profile service — explicit skill edits, view price average, engagement score."""

from dataclasses import replace
from typing import Iterable, Sequence

from bountyrec.services.types import ACCESS_TIERS, UserProfileSnapshot

PRICE_VIEW_WINDOW = 10  # views averaged into avg_price_viewed
ENGAGEMENT_PER_INTERACTION = 2
MAX_ENGAGEMENT_SCORE = 100

MIN_TAG_SCORE = 1
MAX_TAG_SCORE = 5


def trailing_average_price(recent_prices: Sequence[float], window: int = PRICE_VIEW_WINDOW) -> float:
    """Arithmetic mean of the most recent viewed prices (newest first), 0 with no views."""
    prices = list(recent_prices)[:window]
    if not prices:
        return 0.0
    return sum(prices) / len(prices)


def engagement_score_for(interaction_count: int) -> float:
    return float(min(interaction_count * ENGAGEMENT_PER_INTERACTION, MAX_ENGAGEMENT_SCORE))


def apply_interaction_count(profile: UserProfileSnapshot, interaction_count: int) -> UserProfileSnapshot:
    """Profile copy with total interactions and engagement score refreshed."""
    return replace(
        profile,
        total_interactions=interaction_count,
        engagement_score=engagement_score_for(interaction_count),
    )


def apply_view_prices(profile: UserProfileSnapshot, recent_prices: Sequence[float]) -> UserProfileSnapshot:
    if not recent_prices:
        return profile
    return replace(profile, avg_price_viewed=trailing_average_price(recent_prices))


def normalize_user_tags(entries: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Validate a wholesale skill list save.

    Scores must be 0-5; a score of 0 removes the tag. A later entry for the
    same tag replaces an earlier one.
    """
    scores: dict[int, int] = {}
    for tag_id, score in entries:
        if score == 0:
            scores.pop(tag_id, None)
            continue
        if not MIN_TAG_SCORE <= score <= MAX_TAG_SCORE:
            raise ValueError(f"Tag score for tag {tag_id} must be between {MIN_TAG_SCORE} and {MAX_TAG_SCORE}")
        scores[tag_id] = score
    return scores


def apply_profile_overrides(
    profile: UserProfileSnapshot,
    avg_price_viewed: float | None = None,
    access_tier: str | None = None,
    platform_score: float | None = None,
    engagement_score: float | None = None,
) -> UserProfileSnapshot:
    """Operator override of profile fields, used to tune recommendations."""
    changes: dict = {}
    if avg_price_viewed is not None:
        changes["avg_price_viewed"] = max(0.0, avg_price_viewed)
    if access_tier is not None:
        if access_tier not in ACCESS_TIERS:
            raise ValueError(f"Unknown access tier: {access_tier!r}")
        changes["access_tier"] = access_tier
    if platform_score is not None:
        changes["platform_score"] = max(0.0, min(10.0, platform_score))
    if engagement_score is not None:
        changes["engagement_score"] = max(0.0, min(float(MAX_ENGAGEMENT_SCORE), engagement_score))
    return replace(profile, **changes) if changes else profile
