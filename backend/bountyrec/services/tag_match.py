"""Tag match model — how well a user's declared skills fit a bounty's tags."""

from typing import Mapping, Sequence

from bountyrec.services.types import BountyTagWeight, TagMatchDetail, UserTagScore, tag_label

MAX_RELEVANCE = 10.0

# A perfect single-tag match (score 5 x weight 1.0) maps to 10
RELEVANCE_SCALE = 2.0


def user_tag_map(user_tags: Sequence[UserTagScore]) -> dict[int, float]:
    """Index explicit user tags by tag id."""
    return {t.tag_id: t.score for t in user_tags}


def compute_relevance(user_tags: Mapping[int, float], bounty_tags: Sequence[BountyTagWeight]) -> float:
    """Weighted average of the user's tag scores over the bounty's tags, rescaled to 0-10.

    Tags the user does not have count as 0. Returns 0 when the bounty has no tags
    or all of its tag weights are zero.
    """
    if not bounty_tags:
        return 0.0

    total_score = 0.0
    total_weight = 0.0
    for bt in bounty_tags:
        total_score += user_tags.get(bt.tag_id, 0) * bt.weight
        total_weight += bt.weight

    if total_weight <= 0:
        return 0.0

    relevance = (total_score / total_weight) * RELEVANCE_SCALE
    return max(0.0, min(MAX_RELEVANCE, relevance))


def get_tag_match_details(
    user_tags: Sequence[UserTagScore],
    bounty_tags: Sequence[BountyTagWeight],
) -> list[TagMatchDetail]:
    """Per-tag breakdown of a relevance score, for the feed's explain overlay."""
    by_id = {t.tag_id: t for t in user_tags}

    details = []
    for bt in bounty_tags:
        user_tag = by_id.get(bt.tag_id)
        user_score = user_tag.score if user_tag else 0
        name = bt.tag_name or (user_tag.tag_name if user_tag else None)
        details.append(
            TagMatchDetail(
                tag_id=bt.tag_id,
                tag_name=tag_label(bt.tag_id, name),
                user_score=user_score,
                bounty_weight=bt.weight,
                contribution=user_score * bt.weight,
            )
        )
    return details
