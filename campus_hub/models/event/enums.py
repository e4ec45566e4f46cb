# campus_hub/models/event/enums.py
"""
Enums for event models.
"""

from enum import Enum as PyEnum


class EventCategory(PyEnum):
    """Event category enumeration"""

    CULTURAL = "Cultural"
    ACADEMIC = "Academic"
    HALL = "Hall"
    CLUB = "Club"
    DEPARTMENT = "Department"
    SPORTS = "Sports"

    @classmethod
    def choices(cls):
        return [(member.value, member.value) for member in cls]
