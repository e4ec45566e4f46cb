# campus_hub/models/event/models.py

import uuid

from flask import current_app
from sqlalchemy import Enum, Index
from sqlalchemy.exc import SQLAlchemyError

from ..base import BaseModel, db
from .enums import EventCategory


def _new_event_id():
    return str(uuid.uuid4())


class Event(BaseModel):
    """Model for representing campus events"""

    __tablename__ = "events"

    id = db.Column(db.String(36), primary_key=True, default=_new_event_id)
    title = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")

    category = db.Column(
        Enum(EventCategory, name="event_category_enum"),
        nullable=False,
        index=True,
    )

    # Dates and times
    date = db.Column(db.Date, nullable=False, index=True)
    time = db.Column(db.Time, nullable=True)  # Local clock time, midnight when missing

    # Location and organizer
    venue = db.Column(db.String(200), nullable=False)
    organizer = db.Column(db.String(200), nullable=False)

    # Assets
    image_url = db.Column(db.String(1000), nullable=True)
    document_url = db.Column(db.String(1000), nullable=True)

    # Moderation
    is_approved = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_by = db.Column(db.String(255), nullable=False)  # Creator email
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Optional links and descriptors
    registration_link = db.Column(db.String(500), nullable=True)
    social_link = db.Column(db.String(500), nullable=True)
    entry_fee = db.Column(db.String(100), nullable=True)
    expected_audience = db.Column(db.String(100), nullable=True)

    # Relationships
    creator = db.relationship("User", foreign_keys=[user_id])
    saves = db.relationship(
        "SavedEvent", back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (Index("idx_event_approved_date", "is_approved", "date"),)

    def __repr__(self):
        return f"<Event {self.title} ({self.date})>"

    @staticmethod
    def find_by_id(event_id):
        """Find event by ID with error handling"""
        try:
            return db.session.get(Event, event_id)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding event by id {event_id}: {str(e)}")
            return None

    def to_record(self):
        from campus_hub.repositories.records import EventRecord

        return EventRecord(
            id=self.id,
            title=self.title,
            description=self.description or "",
            date=self.date,
            time=self.time,
            venue=self.venue,
            category=self.category,
            image_url=self.image_url,
            document_url=self.document_url,
            organizer=self.organizer,
            is_approved=bool(self.is_approved),
            created_by=self.created_by,
            user_id=self.user_id,
            registration_link=self.registration_link,
            social_link=self.social_link,
            entry_fee=self.entry_fee,
            expected_audience=self.expected_audience,
            created_at=self.created_at,
        )


class SavedEvent(BaseModel):
    """Save Registry row: a user's bookmark on an event plus reminder flags"""

    __tablename__ = "saved_events"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = db.Column(
        db.String(36), db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Monotonic: once true these are never written back to false
    reminder_24h_sent = db.Column(db.Boolean, default=False, nullable=False)
    reminder_1h_sent = db.Column(db.Boolean, default=False, nullable=False)

    # Relationships
    event = db.relationship("Event", back_populates="saves")
    user = db.relationship("User", back_populates="saved_events")

    __table_args__ = (
        db.UniqueConstraint("user_id", "event_id", name="_user_event_saved_uc"),
        Index("idx_saved_reminder_flags", "reminder_24h_sent", "reminder_1h_sent"),
    )

    def __repr__(self):
        return f"<SavedEvent user={self.user_id} event={self.event_id}>"
