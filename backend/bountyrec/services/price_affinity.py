"""Price affinity model — fit between a bounty's price/tier and the user's price habits."""

from bountyrec.services.types import tier_level

# Cold start (no viewing history)
COLD_START_SAME_TIER = 0.8
COLD_START_OTHER_TIER = 0.5

# Bounty priced within 0.5x-2x of the user's average viewed price
SWEET_SPOT_LOW = 0.5
SWEET_SPOT_HIGH = 2.0

CHEAP_FLOOR = 0.1
EXPENSIVE_FLOOR = 0.2

SAME_TIER_BONUS = 0.1
FAR_BELOW_TIER_PENALTY = -0.1


def price_history_score(bounty_price: float, avg_price_viewed: float) -> float:
    """Score how close a price is to what the user usually views.

    ratio 0.5-2.0 -> 1.0; cheaper falls off as ratio*2 (floor 0.1);
    pricier falls off as 2/ratio (floor 0.2).
    """
    if avg_price_viewed <= 0:
        return 0.5

    ratio = bounty_price / avg_price_viewed

    if SWEET_SPOT_LOW <= ratio <= SWEET_SPOT_HIGH:
        return 1.0
    if ratio < SWEET_SPOT_LOW:
        return max(CHEAP_FLOOR, ratio * 2)
    return max(EXPENSIVE_FLOOR, SWEET_SPOT_HIGH / ratio)


def tier_bonus(bounty_tier: str, user_access_tier: str) -> float:
    tier_diff = tier_level(user_access_tier) - tier_level(bounty_tier)
    if tier_diff == 0:
        return SAME_TIER_BONUS
    if tier_diff >= 2:
        return FAR_BELOW_TIER_PENALTY
    # One tier below is neutral; above the user's tier never reaches here (access filter)
    return 0.0


def compute_price_affinity(
    bounty_price: float,
    bounty_tier: str,
    avg_price_viewed: float,
    user_access_tier: str,
) -> float:
    """Return a 0-1 affinity between a bounty's price/tier and the user's habits."""
    if avg_price_viewed <= 0:
        return COLD_START_SAME_TIER if bounty_tier == user_access_tier else COLD_START_OTHER_TIER

    score = price_history_score(bounty_price, avg_price_viewed) + tier_bonus(bounty_tier, user_access_tier)
    return max(0.0, min(1.0, score))
