"""
Discount tier engine.

Maps a puzzle score to a reward tier and its default discount percentage.
Score thresholds are the single source of truth: the same rule is applied
when a game result is persisted and when a code is picked for the player.
"""
from typing import NamedTuple, List, Dict, Any


BRONZE = 'bronze'
SILVER = 'silver'
GOLD = 'gold'
PLATINUM = 'platinum'

# Lowest to highest
TIER_ORDER = (BRONZE, SILVER, GOLD, PLATINUM)

# (minimum score, tier), checked highest first
SCORE_BREAKPOINTS = (
    (150, PLATINUM),
    (120, GOLD),
    (90, SILVER),
)

DEFAULT_PERCENTAGES = {
    BRONZE: 10,
    SILVER: 20,
    GOLD: 25,
    PLATINUM: 30,
}

# Seed codes offered to a merchant before their first setup. minScore is the
# completion-percentage threshold shown in the admin, not the score breakpoint.
DEFAULT_DISCOUNT_CODES: List[Dict[str, Any]] = [
    {'code': 'PUZZLE10', 'percentage': 10, 'title': 'Puzzle Bronze Reward - 10% Off', 'tier': BRONZE, 'minScore': 0},
    {'code': 'PUZZLE20', 'percentage': 20, 'title': 'Puzzle Silver Reward - 20% Off', 'tier': SILVER, 'minScore': 50},
    {'code': 'PUZZLE25', 'percentage': 25, 'title': 'Puzzle Gold Reward - 25% Off', 'tier': GOLD, 'minScore': 75},
    {'code': 'PUZZLE30', 'percentage': 30, 'title': 'Puzzle Platinum Reward - 30% Off', 'tier': PLATINUM, 'minScore': 90},
]


class TierResult(NamedTuple):
    tier: str
    percentage: int


def tier_for_score(score) -> TierResult:
    """
    Return the reward tier for a score.

    Never raises for numeric input; anything below the silver breakpoint,
    negative scores included, is bronze.
    """
    for minimum, tier in SCORE_BREAKPOINTS:
        if score >= minimum:
            return TierResult(tier, DEFAULT_PERCENTAGES[tier])
    return TierResult(BRONZE, DEFAULT_PERCENTAGES[BRONZE])


def tier_rank(tier: str) -> int:
    """Position of a tier in TIER_ORDER, -1 for unknown tiers."""
    try:
        return TIER_ORDER.index(tier)
    except ValueError:
        return -1


def is_valid_tier(tier) -> bool:
    return tier in TIER_ORDER


def default_discount_codes() -> List[Dict[str, Any]]:
    """Fresh copy of the seed list, safe for callers to mutate."""
    return [dict(code) for code in DEFAULT_DISCOUNT_CODES]
