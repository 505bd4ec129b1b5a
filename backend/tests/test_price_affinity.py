"""Price/tier affinity."""

import pytest

from bountyrec.services.price_affinity import compute_price_affinity, price_history_score, tier_bonus


class TestColdStart:
    @pytest.mark.parametrize("price", [1, 500, 10_000])
    def test_same_tier_without_history(self, price):
        assert compute_price_affinity(price, "middle", 0, "middle") == pytest.approx(0.8)

    @pytest.mark.parametrize("price", [1, 500, 10_000])
    def test_other_tier_without_history(self, price):
        assert compute_price_affinity(price, "basic", 0, "middle") == pytest.approx(0.5)


class TestPriceHistoryScore:
    def test_sweet_spot(self):
        assert price_history_score(500, 500) == 1.0
        assert price_history_score(250, 500) == 1.0
        assert price_history_score(1000, 500) == 1.0

    def test_cheap_falls_off_linearly(self):
        assert price_history_score(100, 500) == pytest.approx(0.4)

    def test_cheap_floor(self):
        assert price_history_score(1, 500) == pytest.approx(0.1)

    def test_expensive_falls_off(self):
        assert price_history_score(1500, 500) == pytest.approx(2 / 3)

    def test_expensive_floor(self):
        assert price_history_score(50_000, 500) == pytest.approx(0.2)


class TestTierBonus:
    def test_same_tier(self):
        assert tier_bonus("high", "high") == pytest.approx(0.1)

    def test_one_below(self):
        assert tier_bonus("middle", "high") == 0

    def test_two_below(self):
        assert tier_bonus("basic", "high") == pytest.approx(-0.1)


class TestComputePriceAffinity:
    def test_ratio_one_same_tier_clamps_to_one(self):
        assert compute_price_affinity(500, "middle", 500, "middle") == pytest.approx(1.0)

    def test_two_tiers_below_in_sweet_spot(self):
        assert compute_price_affinity(500, "basic", 500, "high") == pytest.approx(0.9)

    def test_never_below_zero(self):
        assert 0 <= compute_price_affinity(1, "basic", 100_000, "high") <= 1
