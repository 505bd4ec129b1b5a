"""Celery tasks for implicit behavior tracking."""

import logging

from sqlalchemy.exc import IntegrityError, OperationalError

from bountyrec.tasks.celery_app import celery_app
from bountyrec.models.base import sync_session_scope

# Import ALL models to ensure relationships resolve
from bountyrec.models.tag import Tag  # noqa: F401
from bountyrec.models.bounty import Bounty  # noqa: F401
from bountyrec.models.user_profile import UserProfile  # noqa: F401
from bountyrec.models.behavior import UserBehaviorTag  # noqa: F401
from bountyrec.models.recommendation_log import RecommendationLog  # noqa: F401
from bountyrec.services.behavior_store import track_behavior_event

logger = logging.getLogger(__name__)


@celery_app.task(
    name="bountyrec.tasks.behavior_tasks.track_behavior",
    autoretry_for=(IntegrityError, OperationalError),  # key races, lock timeouts, deadlocks
    retry_backoff=True,
    max_retries=3,
)
def track_behavior(user_id: str, bounty_id: int, event_type: str):
    """Apply one view/like/submit/complete event to the user's implicit profile.

    Dispatched by the interactions endpoint after the interaction row is written.
    """
    try:
        with sync_session_scope() as session:
            snapshot = track_behavior_event(session, user_id, bounty_id, event_type)
    except Exception:
        logger.exception("Behavior tracking failed for user %s bounty %s (%s)", user_id, bounty_id, event_type)
        raise

    if snapshot is None:
        return {"tracked": False}
    return {
        "tracked": True,
        "total_interactions": snapshot.blend.total_interactions,
        "explicit_weight": snapshot.blend.explicit_weight,
        "implicit_weight": snapshot.blend.implicit_weight,
    }
