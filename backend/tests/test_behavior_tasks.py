"""Celery behavior task run in-process against an in-memory database."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from bountyrec.models import base
from bountyrec.models.user_profile import UserTag
from bountyrec.services.behavior_service import EventType
from bountyrec.services.behavior_store import load_behavior_snapshot
from bountyrec.tasks.behavior_tasks import track_behavior

from conftest import seed_bounty, seed_tags


@pytest.fixture(autouse=True)
def task_sessions(session_factory, monkeypatch):
    monkeypatch.setattr(base, "SyncSessionLocal", session_factory)
    with session_factory() as session:
        seed_tags(session)
        seed_bounty(session, 1, price=400, tags=[(3, 1.0)])
        session.commit()
    return session_factory


class TestTrackBehaviorTask:
    def test_commits_tracked_event(self, task_sessions):
        result = track_behavior("user-1", 1, "like")

        assert result == {
            "tracked": True,
            "total_interactions": 1,
            "explicit_weight": pytest.approx(0.8),
            "implicit_weight": pytest.approx(0.2),
        }
        with task_sessions() as session:
            snapshot = load_behavior_snapshot(session, "user-1")
            assert snapshot.tag_behaviors[3].signal(EventType.LIKE).count == 1

    def test_missing_bounty(self):
        assert track_behavior("user-1", 99, "like") == {"tracked": False}

    def test_untracked_event_rolls_back(self, task_sessions):
        with pytest.raises(ValueError):
            track_behavior("user-1", 1, "claim")

        with task_sessions() as session:
            assert load_behavior_snapshot(session, "user-1").tag_behaviors == {}

    def test_retries_on_lock_and_key_conflicts(self):
        assert set(track_behavior.autoretry_for) == {IntegrityError, OperationalError}
        assert track_behavior.max_retries == 3


class TestSyncSessionScope:
    def test_commits(self, task_sessions):
        with base.sync_session_scope() as session:
            session.add(UserTag(user_id="user-1", tag_id=3, score=4))

        with task_sessions() as session:
            assert session.execute(select(func.count()).select_from(UserTag)).scalar_one() == 1

    def test_rolls_back_on_error(self, task_sessions):
        with pytest.raises(RuntimeError):
            with base.sync_session_scope() as session:
                session.add(UserTag(user_id="user-1", tag_id=3, score=4))
                session.flush()
                raise RuntimeError("worker crashed")

        with task_sessions() as session:
            assert session.execute(select(func.count()).select_from(UserTag)).scalar_one() == 0


def test_sync_url_uses_psycopg2():
    url = "postgresql+asyncpg://bounty_user:secret@db:5432/bounties"
    assert base.sync_database_url(url) == "postgresql+psycopg2://bounty_user:secret@db:5432/bounties"
