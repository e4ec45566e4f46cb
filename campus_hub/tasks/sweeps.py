"""
Celery tasks wrapping the sweeps.
"""

from __future__ import annotations

from typing import Any

from celery import shared_task

from campus_hub.services import ReminderSweep, RetentionSweep, StorageReconciler

from .celery_app import REMINDER_TASK, RETENTION_TASK, STORAGE_CLEANUP_TASK


@shared_task(name=REMINDER_TASK, bind=True)
def run_reminder_sweep(self, *, test_user_id: str | None = None) -> dict[str, Any]:
    """Scheduled reminder sweep; ``test_user_id`` runs it in test mode."""
    return ReminderSweep.from_app().run(test_user_id=test_user_id).to_dict()


@shared_task(name=RETENTION_TASK, bind=True)
def run_retention_sweep(self) -> dict[str, Any]:
    return RetentionSweep.from_app().run().to_dict()


@shared_task(name=STORAGE_CLEANUP_TASK, bind=True)
def run_storage_cleanup(self) -> dict[str, Any]:
    return StorageReconciler.from_app().run().to_dict()
