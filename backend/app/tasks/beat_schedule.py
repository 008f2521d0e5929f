# backend/app/tasks/beat_schedule.py
"""Celery Beat schedule for Parkspace."""

from datetime import timedelta
from typing import Any, Dict

from celery.schedules import crontab

from app.core.config import settings


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return {
        "dispatch-notification-outbox": {
            "task": "outbox.dispatch_pending",
            "schedule": timedelta(seconds=settings.outbox_dispatch_interval_seconds),
            "options": {"queue": "notifications"},
        },
        # Read notifications older than a day are purged at midnight UTC
        "purge-read-notifications": {
            "task": "notifications.purge_read",
            "schedule": crontab(hour=0, minute=0),
            "options": {"queue": "maintenance"},
        },
    }
