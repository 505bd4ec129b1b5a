"""Celery application configuration."""

from celery import Celery

from bountyrec.config import get_settings

settings = get_settings()

celery_app = Celery(
    "bountyrec",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "bountyrec.tasks.behavior_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=60,
    task_soft_time_limit=50,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
