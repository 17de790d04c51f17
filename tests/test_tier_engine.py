"""
Tests for the discount tier engine.

Tests cover:
- Score breakpoints and tier boundaries
- Default percentages per tier
- Tier ordering helpers
- Seed code list
"""
import pytest

from puzzlecraft.services.tier_engine import (
    BRONZE, SILVER, GOLD, PLATINUM, TIER_ORDER,
    tier_for_score, tier_rank, is_valid_tier, default_discount_codes,
)


class TestTierForScore:
    """Tests for tier_for_score()."""

    @pytest.mark.parametrize('score, expected', [
        (0, BRONZE),
        (89, BRONZE),
        (90, SILVER),
        (95, SILVER),
        (119, SILVER),
        (120, GOLD),
        (149, GOLD),
        (150, PLATINUM),
        (1000, PLATINUM),
    ])
    def test_breakpoints(self, score, expected):
        """Each breakpoint starts its tier."""
        assert tier_for_score(score).tier == expected

    def test_negative_score_is_bronze(self):
        """Negative scores fall through to the lowest tier."""
        result = tier_for_score(-20)
        assert result.tier == BRONZE
        assert result.percentage == 10

    def test_percentages(self):
        """Each tier carries its default percentage."""
        assert tier_for_score(10).percentage == 10
        assert tier_for_score(95).percentage == 20
        assert tier_for_score(130).percentage == 25
        assert tier_for_score(200).percentage == 30

    def test_float_scores(self):
        """Numeric floats are compared as-is."""
        assert tier_for_score(89.9).tier == BRONZE
        assert tier_for_score(90.0).tier == SILVER

    def test_tier_never_drops_as_score_rises(self):
        """Sweeping scores upward only ever moves to the same or a higher tier."""
        ranks = [tier_rank(tier_for_score(score).tier) for score in range(-10, 300)]
        assert ranks == sorted(ranks)
        assert ranks[0] == tier_rank(BRONZE)
        assert ranks[-1] == tier_rank(PLATINUM)

    def test_percentage_never_drops_as_score_rises(self):
        percentages = [tier_for_score(score).percentage for score in range(-10, 300)]
        assert percentages == sorted(percentages)


class TestTierHelpers:
    """Tests for tier ordering helpers."""

    def test_rank_follows_order(self):
        """Ranks increase from bronze to platinum."""
        assert [tier_rank(t) for t in TIER_ORDER] == [0, 1, 2, 3]

    def test_unknown_tier_rank(self):
        """Unknown tiers rank below every known tier."""
        assert tier_rank('diamond') == -1

    def test_is_valid_tier(self):
        """Only the four tier names are valid."""
        assert is_valid_tier(GOLD)
        assert not is_valid_tier('Gold')
        assert not is_valid_tier(None)


class TestDefaultDiscountCodes:
    """Tests for the seed code list."""

    def test_one_code_per_tier(self):
        """The seed list has one code per tier."""
        codes = default_discount_codes()
        assert [c['tier'] for c in codes] == [BRONZE, SILVER, GOLD, PLATINUM]
        assert [c['code'] for c in codes] == ['PUZZLE10', 'PUZZLE20', 'PUZZLE25', 'PUZZLE30']

    def test_returns_copies(self):
        """Mutating the returned list does not change the seeds."""
        codes = default_discount_codes()
        codes[0]['code'] = 'CHANGED'
        assert default_discount_codes()[0]['code'] == 'PUZZLE10'
