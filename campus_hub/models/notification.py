# campus_hub/models/notification.py

from enum import Enum as PyEnum

from sqlalchemy import Enum, Index

from .base import BaseModel, db


class NotificationType(PyEnum):
    """In-app alert type enumeration"""

    EVENT_APPROVED = "event_approved"
    EVENT_REJECTED = "event_rejected"
    NEW_EVENT = "new_event"


class Notification(BaseModel):
    """In-app alert shown in a user's inbox"""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(Enum(NotificationType, name="notification_type_enum"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    event_id = db.Column(db.String(36), db.ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (Index("idx_notification_user_read", "user_id", "is_read"),)

    def __repr__(self):
        return f"<Notification {self.type.value} user={self.user_id}>"

    def to_record(self):
        from campus_hub.repositories.records import NotificationRecord

        return NotificationRecord(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            message=self.message,
            event_id=self.event_id,
            is_read=bool(self.is_read),
            created_at=self.created_at,
        )
