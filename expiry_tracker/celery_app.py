"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from expiry_tracker.config import get_settings

settings = get_settings()

app = Celery(
    "expiry_tracker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["expiry_tracker.tasks.recipe_suggestions"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.app_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=900,  # 15 minutes max per sweep
    task_soft_time_limit=840,
)

app.conf.beat_schedule = {
    "recipe-suggestion-sweep": {
        "task": "expiry_tracker.tasks.recipe_suggestions.send_recipe_suggestions",
        "schedule": crontab(hour=9, minute=0),
    },
    "expiry-reminder-sweep": {
        "task": "expiry_tracker.tasks.recipe_suggestions.send_expiry_reminders",
        "schedule": crontab(hour=8, minute=0),
    },
    "purge-recipe-cache": {
        "task": "expiry_tracker.tasks.recipe_suggestions.purge_recipe_cache",
        "schedule": crontab(minute=15),
    },
}
