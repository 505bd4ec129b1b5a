"""Scoring, primary/stretch selection and the personalized feed."""

import json
from datetime import datetime, timezone

import pytest

from bountyrec.services.exceptions import NoCandidatesError
from bountyrec.services.recommendation_service import (
    build_feed,
    build_log_entry,
    compute_final_score,
    filter_by_access_tier,
    get_recommendations,
    score_all_bounties,
    sort_scored_bounties,
)

from conftest import bounty_tags, make_bounty, make_input, mutual


def _ids(scored):
    return [sb.bounty.id for sb in scored]


class TestFinalScore:
    def test_weights(self):
        assert compute_final_score(10, 2, 1, 10) == pytest.approx(10.0)
        assert compute_final_score(0, 0, 0, 0) == 0

    def test_engagement_normalized_at_ten(self):
        assert compute_final_score(0, 0, 0, 80) == pytest.approx(1.0)
        assert compute_final_score(0, 0, 0, 5) == pytest.approx(0.5)

    def test_social_contribution(self):
        assert compute_final_score(0, 1, 0, 0) == pytest.approx(0.75)


class TestAccessTier:
    BOUNTIES = [make_bounty(1, tier="basic"), make_bounty(2, tier="middle"), make_bounty(3, tier="high")]

    def test_basic_sees_only_basic(self):
        assert [b.tier for b in filter_by_access_tier(self.BOUNTIES, "basic")] == ["basic"]

    def test_tiers_are_strictly_nested(self):
        basic = {b.id for b in filter_by_access_tier(self.BOUNTIES, "basic")}
        middle = {b.id for b in filter_by_access_tier(self.BOUNTIES, "middle")}
        high = {b.id for b in filter_by_access_tier(self.BOUNTIES, "high")}
        assert basic < middle < high

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError):
            filter_by_access_tier(self.BOUNTIES, "platinum")


class TestGetRecommendations:
    def test_end_to_end_single_bounty(self):
        input = make_input({1: 5}, access_tier="middle", avg_price_viewed=500)
        bounty = make_bounty(1, price=600, tier="middle")

        result = get_recommendations(input, [bounty], {1: bounty_tags((1, 1.0))}, {})

        assert result.primary.relevance_score == pytest.approx(10.0)
        assert result.primary.price_affinity == pytest.approx(1.0)
        assert result.primary.social_boost == 0
        assert result.primary.final_score == pytest.approx(7.5)
        # Only one bounty qualifies: secondary repeats the primary
        assert result.secondary is result.primary
        assert result.debug.filtered_by_relevance == 1
        assert result.debug.used_fallback is False

    def test_stretch_pick_has_weak_relevance(self):
        input = make_input({1: 5})
        bounties = [
            make_bounty(1, price=600),
            make_bounty(2, price=500, engagement_score=10),
            make_bounty(3, price=5000),
        ]
        tag_map = {1: bounty_tags((1, 1.0)), 2: bounty_tags((3, 1.0)), 3: bounty_tags((1, 1.0))}

        result = get_recommendations(input, bounties, tag_map, {})

        assert result.primary.bounty.id == 1
        assert result.secondary.bounty.id == 2
        assert result.secondary.relevance_score < 3
        assert result.secondary.final_score == pytest.approx(3.0)

    def test_second_ranked_when_no_stretch_qualifies(self):
        input = make_input({1: 5})
        bounties = [make_bounty(1, price=600), make_bounty(3, price=5000), make_bounty(4, price=10, tier="basic")]
        tag_map = {1: bounty_tags((1, 1.0)), 3: bounty_tags((1, 1.0)), 4: bounty_tags((3, 1.0))}

        result = get_recommendations(input, bounties, tag_map, {})

        assert result.primary.bounty.id == 1
        assert result.secondary.bounty.id == 3
        assert result.debug.filtered_by_relevance == 2

    def test_fallback_when_nothing_reaches_threshold(self):
        input = make_input({2: 5})
        bounties = [make_bounty(1, price=600), make_bounty(2, price=450, engagement_score=10)]
        tag_map = {1: bounty_tags((1, 1.0)), 2: bounty_tags((1, 1.0))}

        result = get_recommendations(input, bounties, tag_map, {})

        assert result.debug.filtered_by_relevance == 0
        assert result.debug.used_fallback is True
        assert result.primary.bounty.id == 2
        assert result.secondary.bounty.id == 1

    def test_fallback_with_single_bounty_duplicates(self):
        input = make_input({2: 5})
        result = get_recommendations(input, [make_bounty(1)], {1: bounty_tags((1, 1.0))}, {})

        assert result.primary.bounty.id == result.secondary.bounty.id == 1
        assert result.debug.filtered_by_relevance == 0

    def test_no_accessible_bounties_raises(self):
        input = make_input({1: 5}, access_tier="basic")
        with pytest.raises(NoCandidatesError):
            get_recommendations(input, [make_bounty(1, tier="high")], {1: bounty_tags((1, 1.0))}, {})

    def test_no_bounties_raises(self):
        with pytest.raises(NoCandidatesError, match="No bounties available"):
            get_recommendations(make_input({1: 5}), [], {}, {})

    def test_closed_bounties_are_not_candidates(self):
        input = make_input({1: 5})
        bounties = [make_bounty(1, status="completed"), make_bounty(2, status="claimed")]
        with pytest.raises(NoCandidatesError):
            get_recommendations(input, bounties, {1: bounty_tags((1, 1.0)), 2: bounty_tags((1, 1.0))}, {})

    def test_debug_counts(self):
        input = make_input({1: 5}, access_tier="basic")
        bounties = [make_bounty(1, tier="basic"), make_bounty(2, tier="basic"), make_bounty(3, tier="high")]
        tag_map = {1: bounty_tags((1, 1.0)), 2: bounty_tags((3, 1.0)), 3: bounty_tags((1, 1.0))}

        debug = get_recommendations(input, bounties, tag_map, {}).debug

        assert debug.total_candidates == 3
        assert debug.filtered_by_tier == 2
        assert debug.filtered_by_relevance == 1
        assert debug.top_relevance_scores == [pytest.approx(10.0)]

    def test_social_boost_from_mutual_interactions(self):
        input = make_input({1: 5}, mutuals=[mutual("friend")])
        bounties = [make_bounty(1, price=600), make_bounty(2, price=600)]
        tag_map = {1: bounty_tags((1, 1.0)), 2: bounty_tags((1, 1.0))}

        result = get_recommendations(input, bounties, tag_map, {"friend": {2}})

        assert result.primary.bounty.id == 2
        assert result.primary.social_boost == pytest.approx(1.0)
        assert result.primary.final_score == pytest.approx(8.25)


class TestScoreAllBounties:
    def test_filters_by_relevance(self):
        input = make_input({1: 5})
        bounties = [make_bounty(1), make_bounty(2)]
        tag_map = {1: bounty_tags((1, 1.0)), 2: bounty_tags((3, 1.0))}

        assert _ids(score_all_bounties(input, bounties, tag_map, {})) == [1]
        assert sorted(_ids(score_all_bounties(input, bounties, tag_map, {}, apply_relevance_filter=False))) == [1, 2]

    def test_empty_is_not_an_error(self):
        assert score_all_bounties(make_input({1: 5}), [], {}, {}) == []

    def test_duplicate_bounties_scored_once(self):
        input = make_input({1: 5})
        bounty = make_bounty(1)
        scored = score_all_bounties(input, [bounty, bounty], {1: bounty_tags((1, 1.0))}, {})
        assert _ids(scored) == [1]

    def test_scores_stay_in_bounds(self):
        input = make_input({1: 5, 2: 5}, mutuals=[mutual(f"m{i}") for i in range(4)], access_tier="high")
        bounties = [make_bounty(i, price=p, tier=t, engagement_score=e)
                    for i, (p, t, e) in enumerate([(1, "basic", 100), (500, "high", 0), (99_999, "middle", 3)])]
        tag_map = {i: bounty_tags((1, 1.0), (2, 1.0)) for i in range(3)}
        interactions = {f"m{i}": {0, 1, 2} for i in range(4)}

        for sb in score_all_bounties(input, bounties, tag_map, interactions, apply_relevance_filter=False):
            assert 0 <= sb.relevance_score <= 10
            assert 0 <= sb.social_boost <= 2
            assert 0 <= sb.price_affinity <= 1
            assert 0 <= sb.final_score <= 10


class TestFeed:
    @pytest.fixture
    def feed_data(self):
        bounties = [
            make_bounty(1, price=300, tier="basic", engagement_score=5,
                        created_at=datetime(2026, 1, 3, tzinfo=timezone.utc)),
            make_bounty(2, price=900, tier="middle", engagement_score=1,
                        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
            make_bounty(3, price=600, tier="middle", engagement_score=9,
                        created_at=datetime(2026, 1, 2, tzinfo=timezone.utc)),
            make_bounty(4, price=700, tier="middle"),
        ]
        tag_map = {
            1: bounty_tags((1, 1.0)),
            2: bounty_tags((1, 1.0), (2, 0.5)),
            3: bounty_tags((1, 1.0)),
            4: bounty_tags((5, 1.0)),
        }
        return make_input({1: 5, 2: 3}), bounties, tag_map

    def test_excludes_low_relevance(self, feed_data):
        page = build_feed(*feed_data, {})
        assert page.total == 3
        assert 4 not in [item.scored.bounty.id for item in page.items]

    @pytest.mark.parametrize(
        "sort_by, expected",
        [
            ("price_high", [2, 3, 1]),
            ("price_low", [1, 3, 2]),
            ("engagement", [3, 1, 2]),
            ("newest", [1, 3, 2]),
        ],
    )
    def test_sort_keys(self, feed_data, sort_by, expected):
        page = build_feed(*feed_data, {}, sort_by=sort_by)
        assert [item.scored.bounty.id for item in page.items] == expected

    def test_relevance_sort_is_by_final_score(self, feed_data):
        page = build_feed(*feed_data, {})
        scores = [item.scored.final_score for item in page.items]
        assert scores == sorted(scores, reverse=True)

    def test_tier_filter(self, feed_data):
        page = build_feed(*feed_data, {}, tier_filter=["basic"])
        assert [item.scored.bounty.id for item in page.items] == [1]

    def test_tag_filter(self, feed_data):
        page = build_feed(*feed_data, {}, tag_filter=[2])
        assert [item.scored.bounty.id for item in page.items] == [2]

    def test_pagination(self, feed_data):
        first = build_feed(*feed_data, {}, sort_by="price_low", limit=2, offset=0)
        second = build_feed(*feed_data, {}, sort_by="price_low", limit=2, offset=2)

        assert [item.scored.bounty.id for item in first.items] == [1, 3]
        assert first.has_more is True
        assert [item.scored.bounty.id for item in second.items] == [2]
        assert second.has_more is False
        assert second.total == 3

    def test_explain(self, feed_data):
        page = build_feed(*feed_data, {}, sort_by="price_high", explain=True)
        explain = page.items[0].explain

        assert explain.price_ratio == pytest.approx(900 / 500)
        assert explain.mutual_count == 0
        assert [(m.tag_name, m.contribution) for m in explain.tag_matches] == [
            ("typescript", pytest.approx(5.0)),
            ("python", pytest.approx(1.5)),
        ]

    def test_no_explain_by_default(self, feed_data):
        assert all(item.explain is None for item in build_feed(*feed_data, {}).items)

    def test_unknown_sort_rejected(self, feed_data):
        input, bounties, tag_map = feed_data
        with pytest.raises(ValueError):
            sort_scored_bounties(score_all_bounties(input, bounties, tag_map, {}), "cheapest")


def test_log_entry_serializes_reasons():
    input = make_input({1: 5})
    result = get_recommendations(input, [make_bounty(1)], {1: bounty_tags((1, 1.0))}, {})

    entry = build_log_entry("user-1", result)

    assert entry.primary_bounty_id == entry.secondary_bounty_id == 1
    assert entry.primary_score == pytest.approx(7.5)
    assert json.loads(entry.reason_primary) == {"relevance": 10.0, "social": 0.0, "price": 1.0}
