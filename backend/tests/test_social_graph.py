"""Mutual expansion and social-proof boost."""

import pytest

from bountyrec.services.social_graph import (
    MAX_SOCIAL_BOOST,
    compute_social_boost,
    expand_mutuals,
    group_edges,
    layer_multiplier,
)
from bountyrec.services.types import MutualEdge

from conftest import mutual


def edges(*triples):
    return group_edges(MutualEdge(user_id=u, mutual_id=m, strength=s) for u, m, s in triples)


class TestExpandMutuals:
    def test_three_layers_with_decay(self):
        graph = edges(("me", "a", 1.0), ("a", "b", 0.8), ("b", "c", 0.6))

        by_id = {m.mutual_id: m for m in expand_mutuals("me", graph)}

        assert by_id["a"].layer == 1 and by_id["a"].strength == pytest.approx(1.0)
        assert by_id["b"].layer == 2 and by_id["b"].strength == pytest.approx(0.4)
        assert by_id["c"].layer == 3 and by_id["c"].strength == pytest.approx(0.15)

    def test_excludes_self_and_already_reached(self):
        graph = edges(
            ("me", "a", 1.0),
            ("me", "b", 1.0),
            ("a", "me", 1.0),
            ("a", "b", 1.0),
            ("b", "a", 1.0),
        )

        result = expand_mutuals("me", graph)

        assert sorted(m.mutual_id for m in result) == ["a", "b"]
        assert all(m.layer == 1 for m in result)

    def test_no_duplicate_connections(self):
        graph = edges(("me", "a", 1.0), ("me", "b", 1.0), ("a", "c", 0.2), ("b", "c", 0.9))

        result = expand_mutuals("me", graph)

        c = [m for m in result if m.mutual_id == "c"]
        assert len(c) == 1
        assert c[0].strength == pytest.approx(0.45)

    def test_stops_after_third_layer(self):
        graph = edges(("me", "a", 1.0), ("a", "b", 1.0), ("b", "c", 1.0), ("c", "d", 1.0))
        assert "d" not in {m.mutual_id for m in expand_mutuals("me", graph)}

    def test_decayed_strength_never_exceeds_edge(self):
        graph = edges(("me", "a", 0.7), ("a", "b", 0.9), ("b", "c", 1.0))
        stored = {"a": 0.7, "b": 0.9, "c": 1.0}
        for m in expand_mutuals("me", graph):
            assert m.strength <= stored[m.mutual_id]

    def test_no_edges(self):
        assert expand_mutuals("me", {}) == []


class TestSocialBoost:
    def test_single_direct_mutual_is_one(self):
        boost = compute_social_boost(7, [mutual("a")], {"a": {7}})
        assert boost == pytest.approx(1.0)

    def test_ignores_mutuals_without_interaction(self):
        assert compute_social_boost(7, [mutual("a")], {"a": {8}}) == 0

    def test_layer_multiplier_applies(self):
        boost = compute_social_boost(7, [mutual("b", layer=2, strength=0.5)], {"b": {7}})
        assert boost == pytest.approx(0.25)

    def test_capped(self):
        mutuals = [mutual(f"m{i}") for i in range(5)]
        interactions = {f"m{i}": {7} for i in range(5)}
        assert compute_social_boost(7, mutuals, interactions) == MAX_SOCIAL_BOOST

    def test_monotonic_in_interacting_mutuals(self):
        mutuals = [mutual(f"m{i}", layer=3, strength=0.25) for i in range(40)]
        previous = 0.0
        for n in range(len(mutuals) + 1):
            interactions = {f"m{i}": {7} for i in range(n)}
            boost = compute_social_boost(7, mutuals, interactions)
            assert previous <= boost <= MAX_SOCIAL_BOOST
            previous = boost

    def test_layer_multipliers(self):
        assert [layer_multiplier(n) for n in (1, 2, 3)] == [1.0, 0.5, 0.25]
