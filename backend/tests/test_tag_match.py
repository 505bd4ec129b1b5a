"""Relevance between declared skills and bounty tags."""

import pytest

from bountyrec.services.tag_match import compute_relevance, get_tag_match_details, user_tag_map

from conftest import bounty_tags, make_user_tags


class TestComputeRelevance:
    def test_no_bounty_tags_is_zero(self):
        assert compute_relevance({1: 5}, []) == 0

    def test_perfect_single_tag_match_is_ten(self):
        assert compute_relevance({1: 5}, bounty_tags((1, 1.0))) == pytest.approx(10.0)

    def test_user_without_any_bounty_tag_is_zero(self):
        assert compute_relevance({2: 5}, bounty_tags((1, 1.0), (3, 0.5))) == 0

    def test_partial_overlap_weighted_by_tag_importance(self):
        # (5*1.0 + 0*0.5) / 1.5 * 2
        assert compute_relevance({1: 5}, bounty_tags((1, 1.0), (3, 0.5))) == pytest.approx(20 / 3)

    def test_zero_weights_are_zero(self):
        assert compute_relevance({1: 5}, bounty_tags((1, 0.0))) == 0

    def test_stays_within_bounds(self):
        cases = [
            ({1: 5, 2: 5}, bounty_tags((1, 1.0), (2, 1.0))),
            ({1: 1}, bounty_tags((1, 0.1))),
            ({}, bounty_tags((1, 1.0))),
            ({1: 3, 4: 2}, bounty_tags((1, 0.7), (4, 0.3), (5, 0.9))),
        ]
        for user_tags, tags in cases:
            assert 0 <= compute_relevance(user_tags, tags) <= 10

    def test_monotonic_in_user_score(self):
        tags = bounty_tags((1, 0.8), (2, 0.4))
        previous = -1.0
        for score in range(0, 6):
            relevance = compute_relevance({1: score, 2: 3}, tags)
            assert relevance >= previous
            previous = relevance


class TestTagMatchDetails:
    def test_contribution_per_bounty_tag(self):
        details = get_tag_match_details(make_user_tags({1: 4}), bounty_tags((1, 0.5), (3, 1.0)))

        assert [d.tag_id for d in details] == [1, 3]
        assert details[0].tag_name == "typescript"
        assert details[0].contribution == pytest.approx(2.0)
        assert details[1].user_score == 0
        assert details[1].contribution == 0

    def test_unknown_tag_name_gets_placeholder(self):
        details = get_tag_match_details([], bounty_tags((99, 1.0)))
        assert details[0].tag_name == "Tag 99"

    def test_user_tag_map_indexes_by_id(self):
        assert user_tag_map(make_user_tags({1: 5, 2: 3})) == {1: 5, 2: 3}
