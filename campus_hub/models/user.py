# campus_hub/models/user.py

import hashlib
import secrets
import uuid

from flask import current_app
from flask_login import UserMixin
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseModel, db

ADMIN_ROLE = "admin"
USER_ROLE = "user"


def hash_api_token(token):
    """Return the stored digest for a raw API token"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class User(UserMixin, BaseModel):
    """Campus Hub account. Credentials live with the auth provider."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(200), nullable=True)
    role = db.Column(db.String(20), default=USER_ROLE, nullable=False)
    external_id = db.Column(db.String(100), unique=True, nullable=True, index=True)  # Auth provider subject
    api_token_hash = db.Column(db.String(64), unique=True, nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Relationships
    saved_events = db.relationship(
        "SavedEvent", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def is_admin(self):
        return self.role == ADMIN_ROLE

    @property
    def name(self):
        return self.display_name or self.email.split("@")[0]

    def issue_api_token(self):
        """Generate a new API token, store its digest and return the raw value"""
        token = secrets.token_urlsafe(32)
        self.api_token_hash = hash_api_token(token)
        return token

    @staticmethod
    def find_by_api_token(token):
        """Find an active user by raw API token with error handling"""
        if not token:
            return None
        try:
            return User.query.filter_by(api_token_hash=hash_api_token(token), is_active=True).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error resolving API token: {str(e)}")
            return None

    @staticmethod
    def find_by_external_id(external_id):
        """Find user by auth-provider subject with error handling"""
        try:
            return User.query.filter_by(external_id=external_id).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding user by external id {external_id}: {str(e)}")
            return None

    @staticmethod
    def find_by_email(email):
        """Find user by email with error handling"""
        try:
            return User.query.filter_by(email=email.strip().lower()).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding user by email {email}: {str(e)}")
            return None

    @staticmethod
    def active_ids():
        """Ids of every active account"""
        return [row.id for row in User.query.with_entities(User.id).filter_by(is_active=True).all()]
