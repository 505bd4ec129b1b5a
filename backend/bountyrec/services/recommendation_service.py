"""Recommendation engine — weighted bounty scoring, personalized feed, primary/stretch picks.

Final score (0-10), each sub-score normalized to 0-1 first:
    relevance/10 * 5.5 + social/2 * 1.5 + price * 2.0 + min(engagement, 10)/10 * 1.0

Bounties below MIN_RELEVANCE_THRESHOLD are dropped from the feed and from the
picks, unless every accessible bounty is below it. In that case the picks fall
back to the unfiltered ranking and debug.filtered_by_relevance is 0.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Collection, Literal, Mapping, Sequence

from bountyrec.services.exceptions import NoCandidatesError
from bountyrec.services.price_affinity import compute_price_affinity
from bountyrec.services.social_graph import compute_social_boost
from bountyrec.services.tag_match import compute_relevance, get_tag_match_details, user_tag_map
from bountyrec.services.types import (
    BountyData,
    BountyTagWeight,
    RecommendationInput,
    ScoredBounty,
    TagMatchDetail,
    tier_level,
)

logger = logging.getLogger(__name__)

WEIGHTS = {
    "relevance": 0.55,  # do your skills match?
    "social": 0.15,  # did people you know engage?
    "price": 0.20,  # is the price attractive?
    "engagement": 0.10,  # is it popular?
}

MIN_RELEVANCE_THRESHOLD = 3.0
STRETCH_SCORE_RATIO = 0.2  # stretch pick must beat 20% of the top score
TOP_RELEVANCE_DEBUG_COUNT = 5

FeedSort = Literal["relevance", "price_high", "price_low", "engagement", "newest"]
FEED_SORTS: tuple[str, ...] = ("relevance", "price_high", "price_low", "engagement", "newest")

BountyTagMap = Mapping[int, Sequence[BountyTagWeight]]
MutualInteractions = Mapping[str, Collection[int]]


@dataclass(frozen=True)
class RecommendationDebug:
    total_candidates: int
    filtered_by_tier: int
    filtered_by_relevance: int
    top_relevance_scores: list[float]
    used_fallback: bool = False


@dataclass(frozen=True)
class RecommendationResult:
    primary: ScoredBounty
    secondary: ScoredBounty
    debug: RecommendationDebug


@dataclass(frozen=True)
class FeedExplain:
    tag_matches: list[TagMatchDetail]
    price_ratio: float | None
    mutual_count: int


@dataclass(frozen=True)
class FeedItem:
    scored: ScoredBounty
    tags: list[BountyTagWeight]
    explain: FeedExplain | None = None


@dataclass(frozen=True)
class FeedPage:
    items: list[FeedItem]
    total: int
    limit: int
    offset: int
    has_more: bool


@dataclass(frozen=True)
class RecommendationLogEntry:
    user_id: str
    primary_bounty_id: int
    secondary_bounty_id: int
    primary_score: float
    secondary_score: float
    reason_primary: str
    reason_secondary: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def filter_by_access_tier(bounties: Sequence[BountyData], access_tier: str) -> list[BountyData]:
    """Bounties at or below the user's tier level (basic < middle < high)."""
    user_level = tier_level(access_tier)
    return [b for b in bounties if tier_level(b.tier) <= user_level]


def _accessible_candidates(bounties: Sequence[BountyData], access_tier: str) -> list[BountyData]:
    """Open, tier-accessible bounties with duplicate ids removed."""
    seen: set[int] = set()
    candidates = []
    for bounty in filter_by_access_tier(bounties, access_tier):
        if bounty.status != "open" or bounty.id in seen:
            continue
        seen.add(bounty.id)
        candidates.append(bounty)
    return candidates


def compute_final_score(
    relevance: float,
    social_boost: float,
    price_affinity: float,
    bounty_engagement: float,
) -> float:
    normalized_engagement = min((bounty_engagement or 0) / 10, 1.0)
    return (
        (relevance / 10) * WEIGHTS["relevance"] * 10
        + (social_boost / 2) * WEIGHTS["social"] * 10
        + price_affinity * WEIGHTS["price"] * 10
        + normalized_engagement * WEIGHTS["engagement"] * 10
    )


def score_bounty(
    bounty: BountyData,
    user_tags: Mapping[int, float],
    input: RecommendationInput,
    tag_map: BountyTagMap,
    mutual_interactions: MutualInteractions,
) -> ScoredBounty:
    relevance = compute_relevance(user_tags, tag_map.get(bounty.id, ()))
    social = compute_social_boost(bounty.id, input.mutuals, mutual_interactions)
    price = compute_price_affinity(
        bounty.price,
        bounty.tier,
        input.user_profile.avg_price_viewed,
        input.user_profile.access_tier,
    )
    return ScoredBounty(
        bounty=bounty,
        relevance_score=relevance,
        social_boost=social,
        price_affinity=price,
        final_score=compute_final_score(relevance, social, price, bounty.engagement_score),
    )


def _score_candidates(
    input: RecommendationInput,
    candidates: Sequence[BountyData],
    tag_map: BountyTagMap,
    mutual_interactions: MutualInteractions,
) -> list[ScoredBounty]:
    user_tags = user_tag_map(input.user_tags)
    return [score_bounty(b, user_tags, input, tag_map, mutual_interactions) for b in candidates]


def passes_relevance_threshold(scored: ScoredBounty) -> bool:
    return scored.relevance_score >= MIN_RELEVANCE_THRESHOLD


def score_all_bounties(
    input: RecommendationInput,
    bounties: Sequence[BountyData],
    tag_map: BountyTagMap,
    mutual_interactions: MutualInteractions,
    apply_relevance_filter: bool = True,
) -> list[ScoredBounty]:
    """Score every accessible open bounty for the feed. Not sorted.

    An empty result is a valid feed, never an error.
    """
    candidates = _accessible_candidates(bounties, input.user_profile.access_tier)
    scored = _score_candidates(input, candidates, tag_map, mutual_interactions)

    if apply_relevance_filter:
        return [sb for sb in scored if passes_relevance_threshold(sb)]
    return scored


def _by_final_score(scored: Sequence[ScoredBounty]) -> list[ScoredBounty]:
    return sorted(scored, key=lambda sb: sb.final_score, reverse=True)


def select_stretch_bounty(scored: Sequence[ScoredBounty], top_score: float) -> ScoredBounty | None:
    """Best-scoring bounty with weak skill match but a decent overall score.

    ``scored`` is every accessible candidate, threshold or not; ``top_score`` is
    the primary pick's final score.
    """
    floor = (top_score or 1.0) * STRETCH_SCORE_RATIO
    candidates = [
        sb
        for sb in scored
        if sb.relevance_score < MIN_RELEVANCE_THRESHOLD and sb.final_score > floor
    ]
    return max(candidates, key=lambda sb: sb.final_score, default=None)


def get_recommendations(
    input: RecommendationInput,
    bounties: Sequence[BountyData],
    tag_map: BountyTagMap,
    mutual_interactions: MutualInteractions,
) -> RecommendationResult:
    """Pick a primary (best overall) and a secondary ("stretch") bounty.

    Raises NoCandidatesError when no open bounty is accessible at all.
    """
    candidates = _accessible_candidates(bounties, input.user_profile.access_tier)
    if not candidates:
        raise NoCandidatesError()

    all_scored = _score_candidates(input, candidates, tag_map, mutual_interactions)
    ranked = _by_final_score(sb for sb in all_scored if passes_relevance_threshold(sb))

    if not ranked:
        # Nobody cleared the relevance threshold: rank everything instead
        fallback = _by_final_score(all_scored)
        logger.warning(
            "No bounty reached relevance %.1f for user %s (%d candidates); using unfiltered ranking",
            MIN_RELEVANCE_THRESHOLD,
            input.user_id,
            len(fallback),
        )
        primary = fallback[0]
        secondary = fallback[1] if len(fallback) > 1 else primary
        return RecommendationResult(
            primary=primary,
            secondary=secondary,
            debug=RecommendationDebug(
                total_candidates=len(bounties),
                filtered_by_tier=len(candidates),
                filtered_by_relevance=0,
                top_relevance_scores=[sb.relevance_score for sb in fallback[:TOP_RELEVANCE_DEBUG_COUNT]],
                used_fallback=True,
            ),
        )

    primary = ranked[0]
    secondary = select_stretch_bounty(all_scored, primary.final_score)
    if secondary is None:
        secondary = ranked[1] if len(ranked) > 1 else primary

    logger.debug(
        "Recommendations for user %s: primary=%s (%.2f) secondary=%s (%.2f)",
        input.user_id,
        primary.bounty.id,
        primary.final_score,
        secondary.bounty.id,
        secondary.final_score,
    )

    return RecommendationResult(
        primary=primary,
        secondary=secondary,
        debug=RecommendationDebug(
            total_candidates=len(bounties),
            filtered_by_tier=len(candidates),
            filtered_by_relevance=len(ranked),
            top_relevance_scores=[sb.relevance_score for sb in ranked[:TOP_RELEVANCE_DEBUG_COUNT]],
        ),
    )


def sort_scored_bounties(scored: Sequence[ScoredBounty], sort_by: str = "relevance") -> list[ScoredBounty]:
    """Order a scored feed by one of FEED_SORTS."""
    if sort_by == "relevance":
        return _by_final_score(scored)
    if sort_by == "price_high":
        return sorted(scored, key=lambda sb: sb.bounty.price, reverse=True)
    if sort_by == "price_low":
        return sorted(scored, key=lambda sb: sb.bounty.price)
    if sort_by == "engagement":
        return sorted(scored, key=lambda sb: sb.bounty.engagement_score, reverse=True)
    if sort_by == "newest":
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            scored,
            key=lambda sb: _aware(sb.bounty.created_at) if sb.bounty.created_at else epoch,
            reverse=True,
        )
    raise ValueError(f"Unknown sort key: {sort_by!r}")


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def build_feed(
    input: RecommendationInput,
    bounties: Sequence[BountyData],
    tag_map: BountyTagMap,
    mutual_interactions: MutualInteractions,
    sort_by: str = "relevance",
    tier_filter: Collection[str] | None = None,
    tag_filter: Collection[int] | None = None,
    limit: int = 50,
    offset: int = 0,
    explain: bool = False,
) -> FeedPage:
    """Score, sort and paginate the personalized bounty feed.

    ``tier_filter`` keeps only the listed tiers; ``tag_filter`` keeps bounties
    carrying at least one listed tag. Both apply before scoring.
    """
    if tier_filter:
        bounties = [b for b in bounties if b.tier in tier_filter]
    if tag_filter:
        wanted = set(tag_filter)
        bounties = [b for b in bounties if any(t.tag_id in wanted for t in tag_map.get(b.id, ()))]

    scored = sort_scored_bounties(score_all_bounties(input, bounties, tag_map, mutual_interactions), sort_by)
    total = len(scored)
    page = scored[offset:offset + limit]

    avg_price = input.user_profile.avg_price_viewed
    items = []
    for sb in page:
        tags = list(tag_map.get(sb.bounty.id, ()))
        detail = None
        if explain:
            detail = FeedExplain(
                tag_matches=get_tag_match_details(input.user_tags, tags),
                price_ratio=sb.bounty.price / avg_price if avg_price > 0 else None,
                mutual_count=len(input.mutuals),
            )
        items.append(FeedItem(scored=sb, tags=tags, explain=detail))

    return FeedPage(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )


def build_log_entry(user_id: str, result: RecommendationResult) -> RecommendationLogEntry:
    """Compact audit record for one recommendation request."""
    return RecommendationLogEntry(
        user_id=user_id,
        primary_bounty_id=result.primary.bounty.id,
        secondary_bounty_id=result.secondary.bounty.id,
        primary_score=result.primary.final_score,
        secondary_score=result.secondary.final_score,
        reason_primary=json.dumps(result.primary.reason()),
        reason_secondary=json.dumps(result.secondary.reason()),
    )
