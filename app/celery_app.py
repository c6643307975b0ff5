from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "course_ledger",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],  # Auto-discover tasks from this module
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # full leaderboard rebuild scales with purchases
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "creator-leaderboard-refresh-nightly": {
        "task": "refresh_creator_leaderboard",
        "schedule": crontab(hour=settings.leaderboard_refresh_hour, minute=0),
        "args": [],
    },
}
