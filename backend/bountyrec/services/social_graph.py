"""Social graph propagation — three-layer mutual expansion and social-proof boost."""

from typing import Collection, Iterable, Mapping, Sequence

from bountyrec.services.types import MutualConnection, MutualEdge

MAX_LAYER = 3
MAX_SOCIAL_BOOST = 2.0


def layer_multiplier(layer: int) -> float:
    """Decay applied to a connection discovered at a given layer: 1.0, 0.5, 0.25."""
    return 1 / 2 ** (layer - 1)


def group_edges(edges: Iterable[MutualEdge]) -> dict[str, list[MutualEdge]]:
    """Adjacency list keyed by the edge's source user."""
    grouped: dict[str, list[MutualEdge]] = {}
    for edge in edges:
        grouped.setdefault(edge.user_id, []).append(edge)
    return grouped


def expand_mutuals(
    user_id: str,
    edges_by_user: Mapping[str, Sequence[MutualEdge]],
    max_layer: int = MAX_LAYER,
) -> list[MutualConnection]:
    """Breadth-first expansion of a user's direct edges into decayed layers.

    Each layer only keeps users not already reached at a lower layer (nor the
    user themself). When several edges reach the same new user within one layer,
    the strongest one wins. Strength is the stored edge strength times the
    layer multiplier, so it never exceeds the underlying edge strength.
    """
    visited = {user_id}
    frontier = [user_id]
    connections: list[MutualConnection] = []

    for layer in range(1, max_layer + 1):
        decay = layer_multiplier(layer)
        discovered: dict[str, float] = {}

        for source in frontier:
            for edge in edges_by_user.get(source, ()):
                if edge.mutual_id in visited:
                    continue
                strength = max(0.0, min(1.0, edge.strength)) * decay
                if strength > discovered.get(edge.mutual_id, -1.0):
                    discovered[edge.mutual_id] = strength

        if not discovered:
            break

        connections.extend(
            MutualConnection(mutual_id=mutual_id, layer=layer, strength=strength)
            for mutual_id, strength in discovered.items()
        )
        visited.update(discovered)
        frontier = list(discovered)

    return connections


def compute_social_boost(
    bounty_id: int,
    mutuals: Sequence[MutualConnection],
    mutual_interactions: Mapping[str, Collection[int]],
) -> float:
    """Sum of strength x layer multiplier over mutuals who interacted with the bounty, capped at 2."""
    boost = 0.0
    for mutual in mutuals:
        if bounty_id in mutual_interactions.get(mutual.mutual_id, ()):
            boost += mutual.strength * layer_multiplier(mutual.layer)

    return min(boost, MAX_SOCIAL_BOOST)
