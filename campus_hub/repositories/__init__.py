"""
Event store adapters.
"""

from .base import EventStore
from .memory_store import InMemoryEventStore
from .records import EventRecord, NotificationRecord, PendingReminder, ReminderFlagUpdate
from .sqlalchemy_store import SQLAlchemyEventStore

STORE_BACKENDS = {
    "sqlalchemy": SQLAlchemyEventStore,
    "memory": InMemoryEventStore,
}


def create_event_store(backend):
    """Instantiate the event store adapter named by ``EVENT_STORE_BACKEND``."""
    try:
        store_cls = STORE_BACKENDS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown EVENT_STORE_BACKEND '{backend}'. Expected one of: {', '.join(sorted(STORE_BACKENDS))}"
        ) from None
    return store_cls()


__all__ = [
    "EventStore",
    "EventRecord",
    "NotificationRecord",
    "PendingReminder",
    "ReminderFlagUpdate",
    "InMemoryEventStore",
    "SQLAlchemyEventStore",
    "create_event_store",
]
