# campus_hub/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .event import Event, EventCategory, SavedEvent
from .lease import SweepLease
from .notification import Notification, NotificationType
from .user import ADMIN_ROLE, USER_ROLE, User

__all__ = [
    "db",
    "BaseModel",
    "User",
    "ADMIN_ROLE",
    "USER_ROLE",
    # Event models
    "Event",
    "SavedEvent",
    "EventCategory",
    # Notifications
    "Notification",
    "NotificationType",
    "SweepLease",
]
