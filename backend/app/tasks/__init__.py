"""
Celery tasks package for Parkspace.

Importing the package registers every task with the Celery app.
"""

from app.tasks.celery_app import BaseTask, celery_app
from app.tasks.notification_tasks import (
    deliver_event,
    dispatch_pending,
    purge_read_notifications,
)

__all__ = [
    "BaseTask",
    "celery_app",
    "deliver_event",
    "dispatch_pending",
    "purge_read_notifications",
]
