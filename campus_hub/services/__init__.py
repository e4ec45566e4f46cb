"""
Application services: the three sweeps plus the event lifecycle and inbox
operations used by the routes.
"""

from .change_feed import ChangeFeed
from .event_service import EventService
from .notification_service import NotificationService
from .reminder_service import ReminderSettings, ReminderSweep, ReminderSweepSummary, ReminderWindow
from .retention_service import RetentionSummary, RetentionSweep
from .storage_reconciler import ReconcileSummary, StorageReconciler

__all__ = [
    "ChangeFeed",
    "EventService",
    "NotificationService",
    "ReminderSettings",
    "ReminderSweep",
    "ReminderSweepSummary",
    "ReminderWindow",
    "RetentionSummary",
    "RetentionSweep",
    "ReconcileSummary",
    "StorageReconciler",
]
