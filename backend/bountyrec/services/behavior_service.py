"""Behavior tracking service — implicit profile from interactions, blended with the explicit one.

Signal weights:
    view 0.1 (browsing), like 0.2 (light commitment),
    submit 0.3 (real commitment), complete 0.4 (proof of fit)

Per (user, tag), each event type keeps a counter and a 0-10 score
(count x weight x 2). The tag's implicit score re-applies the same weights
over those per-type scores, so it converges to 10 slower than linearly.

Every function here takes snapshots and returns updated copies. The caller is
responsible for persisting them under row-level locking.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Literal, Mapping

from bountyrec.services.exceptions import UnknownEventTypeError
from bountyrec.services.types import tag_label

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    VIEW = "view"
    LIKE = "like"
    SUBMIT = "submit"
    CLAIM = "claim"
    COMPLETE = "complete"


# Claims are recorded as interactions but do not feed the implicit profile
TRACKED_EVENTS: tuple[EventType, ...] = (EventType.VIEW, EventType.LIKE, EventType.SUBMIT, EventType.COMPLETE)

BEHAVIOR_WEIGHTS: dict[EventType, float] = {
    EventType.VIEW: 0.1,
    EventType.LIKE: 0.2,
    EventType.SUBMIT: 0.3,
    EventType.COMPLETE: 0.4,
}

SIGNAL_SCALE = 2
MAX_SIGNAL_SCORE = 10.0

PRICE_EMA_ALPHA = 0.1
IMPLICIT_PRICE_MIN_FACTOR = 0.5
IMPLICIT_PRICE_MAX_FACTOR = 1.5

# Interaction counts that move the explicit/implicit blend
START_BLENDING = 10
EQUAL_WEIGHT = 50
TRUST_IMPLICIT = 100

NEW_INTEREST_MIN_IMPLICIT = 3.0
UNUSED_SKILL_MIN_EXPLICIT = 4
UNUSED_SKILL_MAX_IMPLICIT = 1.0

DIVERGENCE_PROMPT_COOLDOWN = timedelta(hours=24)

DEFAULT_EXPLICIT_PRICE_MIN = 100
DEFAULT_EXPLICIT_PRICE_MAX = 2000


def tracked_event(value: "str | EventType") -> EventType:
    """Coerce an event string to a tracked EventType or raise UnknownEventTypeError."""
    try:
        event_type = EventType(value)
    except ValueError:
        raise UnknownEventTypeError(str(value)) from None
    if event_type not in BEHAVIOR_WEIGHTS:
        raise UnknownEventTypeError(event_type.value)
    return event_type


def is_tracked(value: str) -> bool:
    return value in {e.value for e in TRACKED_EVENTS}


# ============ STATE ============


@dataclass(frozen=True)
class EventSignal:
    count: int = 0
    score: float = 0.0  # 0-10


@dataclass(frozen=True)
class TagBehavior:
    tag_id: int
    signals: Mapping[EventType, EventSignal] = field(default_factory=dict)
    implicit_score: float = 0.0  # 0-10
    divergence_detected: bool = False
    last_explicit_score: float | None = None

    def signal(self, event_type: EventType) -> EventSignal:
        return self.signals.get(event_type, EventSignal())


@dataclass(frozen=True)
class PriceBehavior:
    averages: Mapping[EventType, float] = field(default_factory=dict)
    implicit_price_min: float | None = None
    implicit_price_max: float | None = None
    last_explicit_min: float | None = None
    last_explicit_max: float | None = None
    divergence_detected: bool = False

    def average(self, event_type: EventType) -> float:
        return self.averages.get(event_type, 0.0)


@dataclass(frozen=True)
class BlendConfig:
    explicit_weight: float = 0.8
    implicit_weight: float = 0.2
    total_interactions: int = 0
    last_divergence_prompt_at: datetime | None = None
    divergence_prompt_count: int = 0


@dataclass(frozen=True)
class BehaviorSnapshot:
    """Everything the tracker reads and writes for one user."""

    user_id: str
    explicit_scores: Mapping[int, float] = field(default_factory=dict)
    tag_behaviors: Mapping[int, TagBehavior] = field(default_factory=dict)
    price: PriceBehavior = field(default_factory=PriceBehavior)
    blend: BlendConfig = field(default_factory=BlendConfig)
    explicit_price_min: float | None = None
    explicit_price_max: float | None = None


# ============ TAG SIGNALS ============


def signal_score(count: int, event_type: EventType) -> float:
    return min(MAX_SIGNAL_SCORE, count * BEHAVIOR_WEIGHTS[event_type] * SIGNAL_SCALE)


def compute_implicit_score(signals: Mapping[EventType, EventSignal]) -> float:
    """Weighted sum of the per-type scores (not the raw counts), capped at 10."""
    raw = sum(signals.get(ev, EventSignal()).score * weight for ev, weight in BEHAVIOR_WEIGHTS.items())
    return min(MAX_SIGNAL_SCORE, raw)


def update_tag_behavior(behavior: TagBehavior, event_type: EventType) -> TagBehavior:
    current = behavior.signal(event_type)
    count = current.count + 1
    signals = dict(behavior.signals)
    signals[event_type] = EventSignal(count=count, score=signal_score(count, event_type))
    return replace(behavior, signals=signals, implicit_score=compute_implicit_score(signals))


# ============ PRICE SIGNALS ============


def implicit_price_range(averages: Iterable[float]) -> tuple[float | None, float | None]:
    """Range spanned by the positive rolling averages, widened to 0.5x min .. 1.5x max."""
    positive = [a for a in averages if a > 0]
    if not positive:
        return None, None
    return min(positive) * IMPLICIT_PRICE_MIN_FACTOR, max(positive) * IMPLICIT_PRICE_MAX_FACTOR


def update_price_behavior(price: PriceBehavior, bounty_price: float, event_type: EventType) -> PriceBehavior:
    current = price.average(event_type)
    if current == 0:
        new_avg = bounty_price
    else:
        new_avg = current * (1 - PRICE_EMA_ALPHA) + bounty_price * PRICE_EMA_ALPHA

    averages = dict(price.averages)
    averages[event_type] = new_avg
    low, high = implicit_price_range(averages.get(ev, 0.0) for ev in TRACKED_EVENTS)
    return replace(price, averages=averages, implicit_price_min=low, implicit_price_max=high)


def detect_price_divergence(price: PriceBehavior, explicit_min: float, explicit_max: float) -> PriceBehavior:
    """Flag when the implicit price range does not overlap the stated one."""
    if price.implicit_price_min is None or price.implicit_price_max is None:
        return price
    overlaps = price.implicit_price_min <= explicit_max and price.implicit_price_max >= explicit_min
    if overlaps:
        return price
    return replace(
        price,
        divergence_detected=True,
        last_explicit_min=explicit_min,
        last_explicit_max=explicit_max,
    )


# ============ BLEND ============


def compute_blend_weights(total_interactions: int) -> tuple[float, float]:
    """(explicit, implicit) weights for an interaction count; always sums to 1.0.

    <10: 0.8/0.2, 10-50: linear to 0.5/0.5, 50-100: 0.5/0.5, >=100: 0.3/0.7
    """
    if total_interactions >= TRUST_IMPLICIT:
        implicit = 0.7
    elif total_interactions >= EQUAL_WEIGHT:
        implicit = 0.5
    elif total_interactions >= START_BLENDING:
        progress = (total_interactions - START_BLENDING) / (EQUAL_WEIGHT - START_BLENDING)
        implicit = 0.2 + progress * 0.3
    else:
        implicit = 0.2
    return 1.0 - implicit, implicit


def update_blend_config(blend: BlendConfig) -> BlendConfig:
    total = blend.total_interactions + 1
    explicit, implicit = compute_blend_weights(total)
    return replace(blend, total_interactions=total, explicit_weight=explicit, implicit_weight=implicit)


# ============ DIVERGENCE ============


def _is_new_interest(explicit_score: float, implicit_score: float) -> bool:
    return not explicit_score and implicit_score >= NEW_INTEREST_MIN_IMPLICIT


def _is_unused_skill(explicit_score: float, implicit_score: float) -> bool:
    return explicit_score >= UNUSED_SKILL_MIN_EXPLICIT and implicit_score < UNUSED_SKILL_MAX_IMPLICIT


def detect_divergence(
    tag_behaviors: Mapping[int, TagBehavior],
    explicit_scores: Mapping[int, float],
) -> dict[int, TagBehavior]:
    """Flag tags where behavior disagrees with the explicit profile.

    Flags are sticky: they are only cleared by a divergence response.
    """
    updated = dict(tag_behaviors)
    for tag_id, behavior in tag_behaviors.items():
        explicit = explicit_scores.get(tag_id) or 0
        if _is_new_interest(explicit, behavior.implicit_score) or _is_unused_skill(explicit, behavior.implicit_score):
            if not behavior.divergence_detected:
                logger.info("Divergence on tag %s (explicit=%s implicit=%.2f)", tag_id, explicit, behavior.implicit_score)
            updated[tag_id] = replace(behavior, divergence_detected=True, last_explicit_score=explicit)
    return updated


# ============ EVENT RECORDING ============


def record_event(
    snapshot: BehaviorSnapshot,
    event_type: "str | EventType",
    bounty_price: float,
    bounty_tag_ids: Iterable[int],
) -> BehaviorSnapshot:
    """Apply one view/like/submit/complete event to a user's behavior state."""
    event_type = tracked_event(event_type)

    tag_behaviors = dict(snapshot.tag_behaviors)
    for tag_id in dict.fromkeys(bounty_tag_ids):
        behavior = tag_behaviors.get(tag_id) or TagBehavior(tag_id=tag_id)
        tag_behaviors[tag_id] = update_tag_behavior(behavior, event_type)

    price = update_price_behavior(snapshot.price, bounty_price, event_type)
    if snapshot.explicit_price_min is not None and snapshot.explicit_price_max is not None:
        price = detect_price_divergence(price, snapshot.explicit_price_min, snapshot.explicit_price_max)

    return replace(
        snapshot,
        tag_behaviors=detect_divergence(tag_behaviors, snapshot.explicit_scores),
        price=price,
        blend=update_blend_config(snapshot.blend),
    )


# ============ BLENDED SCORING ============


@dataclass(frozen=True)
class BlendedTagScore:
    tag_id: int
    tag_name: str
    explicit_score: float
    implicit_score: float
    blended_score: float
    divergent: bool


@dataclass(frozen=True)
class BlendedPriceRange:
    min: float
    max: float
    source: Literal["explicit", "implicit", "blended"]


def get_blended_tag_scores(
    explicit_scores: Mapping[int, float],
    tag_behaviors: Mapping[int, TagBehavior],
    blend: BlendConfig | None,
    tag_names: Mapping[int, str],
) -> list[BlendedTagScore]:
    """Blend explicit and implicit per-tag scores over every tag with either signal."""
    blend = blend or BlendConfig()

    results = []
    for tag_id in dict.fromkeys([*explicit_scores, *tag_behaviors]):
        behavior = tag_behaviors.get(tag_id)
        explicit = explicit_scores.get(tag_id, 0)
        implicit = behavior.implicit_score if behavior else 0.0
        results.append(
            BlendedTagScore(
                tag_id=tag_id,
                tag_name=tag_label(tag_id, tag_names.get(tag_id)),
                explicit_score=explicit,
                implicit_score=implicit,
                blended_score=explicit * blend.explicit_weight + implicit * blend.implicit_weight,
                divergent=behavior.divergence_detected if behavior else False,
            )
        )

    results.sort(key=lambda r: r.blended_score, reverse=True)
    return results


def get_blended_price_range(
    price: PriceBehavior | None,
    blend: BlendConfig | None,
    explicit_min: float | None = None,
    explicit_max: float | None = None,
) -> BlendedPriceRange:
    explicit_min = DEFAULT_EXPLICIT_PRICE_MIN if explicit_min is None else explicit_min
    explicit_max = DEFAULT_EXPLICIT_PRICE_MAX if explicit_max is None else explicit_max

    if not price or not price.implicit_price_min or not price.implicit_price_max:
        return BlendedPriceRange(min=explicit_min, max=explicit_max, source="explicit")

    blend = blend or BlendConfig()
    low = explicit_min * blend.explicit_weight + price.implicit_price_min * blend.implicit_weight
    high = explicit_max * blend.explicit_weight + price.implicit_price_max * blend.implicit_weight
    return BlendedPriceRange(min=round(low), max=round(high), source="blended")


# ============ DIVERGENCE PROMPTS ============


class DivergenceAction(str, Enum):
    ADD_SKILL = "add_skill"
    REMOVE_SKILL = "remove_skill"
    KEEP = "keep"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class DivergenceAlert:
    type: Literal["new_interest", "unused_skill"]
    tag_id: int
    tag_name: str
    explicit_score: float
    implicit_score: float
    message: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def prompt_allowed(blend: BlendConfig | None, now: datetime | None = None,
                   cooldown: timedelta = DIVERGENCE_PROMPT_COOLDOWN) -> bool:
    """True when no divergence batch was shown within the cooldown window."""
    if not blend or not blend.last_divergence_prompt_at:
        return True
    now = now or _utcnow()
    last = blend.last_divergence_prompt_at
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return now - last >= cooldown


def _format_score(value: float) -> str:
    return f"{value:g}"


def get_divergence_alerts(
    tag_behaviors: Mapping[int, TagBehavior],
    blend: BlendConfig | None,
    tag_names: Mapping[int, str],
    now: datetime | None = None,
    cooldown: timedelta = DIVERGENCE_PROMPT_COOLDOWN,
    explicit_scores: Mapping[int, float] | None = None,
) -> list[DivergenceAlert]:
    """Build "are you sure?" prompts for flagged tags, at most one batch per cooldown window.

    With ``explicit_scores`` (the current skill set), a flagged tag is only
    prompted if it still diverges; otherwise the score seen at flag time is used.
    """
    if not prompt_allowed(blend, now, cooldown):
        return []

    alerts = []
    for behavior in tag_behaviors.values():
        if not behavior.divergence_detected:
            continue

        name = tag_label(behavior.tag_id, tag_names.get(behavior.tag_id))
        if explicit_scores is not None:
            explicit = explicit_scores.get(behavior.tag_id) or 0
        else:
            explicit = behavior.last_explicit_score or 0
        implicit = behavior.implicit_score

        if _is_new_interest(explicit, implicit):
            alerts.append(DivergenceAlert(
                type="new_interest",
                tag_id=behavior.tag_id,
                tag_name=name,
                explicit_score=0,
                implicit_score=implicit,
                message=f"You've been engaging with {name} bounties. Add it to your skills?",
            ))
        elif _is_unused_skill(explicit, implicit):
            alerts.append(DivergenceAlert(
                type="unused_skill",
                tag_id=behavior.tag_id,
                tag_name=name,
                explicit_score=explicit,
                implicit_score=implicit,
                message=(
                    f"You said you know {name} ({_format_score(explicit)}/5), "
                    "but haven't engaged with those bounties. Still accurate?"
                ),
            ))

    return alerts


def mark_divergence_prompt_shown(blend: BlendConfig, now: datetime | None = None) -> BlendConfig:
    return replace(
        blend,
        last_divergence_prompt_at=now or _utcnow(),
        divergence_prompt_count=blend.divergence_prompt_count + 1,
    )


@dataclass(frozen=True)
class DivergenceResolution:
    explicit_scores: dict[int, float]
    tag_behavior: TagBehavior | None
    blend: BlendConfig


def apply_divergence_response(
    explicit_scores: Mapping[int, float],
    tag_behavior: TagBehavior | None,
    blend: BlendConfig,
    tag_id: int,
    action: "str | DivergenceAction",
    new_score: int | None = None,
    now: datetime | None = None,
) -> DivergenceResolution:
    """Apply the user's answer to a divergence prompt.

    add_skill sets the explicit score (1-5 required), remove_skill drops it;
    every action clears the tag's flag and counts as a shown prompt.
    """
    action = DivergenceAction(action)
    scores = dict(explicit_scores)

    if action is DivergenceAction.ADD_SKILL:
        if new_score is None or not 1 <= new_score <= 5:
            raise ValueError("add_skill requires a score between 1 and 5")
        scores[tag_id] = new_score
    elif action is DivergenceAction.REMOVE_SKILL:
        scores.pop(tag_id, None)

    if tag_behavior is not None:
        tag_behavior = replace(tag_behavior, divergence_detected=False)

    return DivergenceResolution(
        explicit_scores=scores,
        tag_behavior=tag_behavior,
        blend=mark_divergence_prompt_shown(blend, now),
    )
