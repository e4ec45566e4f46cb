"""
Background scheduling for the sweeps.
"""

from .celery_app import REMINDER_TASK, RETENTION_TASK, STORAGE_CLEANUP_TASK, create_celery_app, get_celery_app

__all__ = [
    "REMINDER_TASK",
    "RETENTION_TASK",
    "STORAGE_CLEANUP_TASK",
    "create_celery_app",
    "get_celery_app",
]
