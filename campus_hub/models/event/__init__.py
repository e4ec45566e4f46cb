# campus_hub/models/event/__init__.py
"""
Event models package.
"""

from .enums import EventCategory
from .models import Event, SavedEvent

__all__ = [
    # Models
    "Event",
    "SavedEvent",
    # Enums
    "EventCategory",
]
