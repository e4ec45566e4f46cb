# campus_hub/routes/__init__.py
"""
Application routes package
"""

from .admin import register_admin_routes
from .events import register_event_routes
from .notifications import register_notification_routes
from .upload import register_upload_routes


def init_routes(app):
    """Initialize all application routes"""
    register_event_routes(app)
    register_notification_routes(app)
    register_upload_routes(app)
    register_admin_routes(app)
