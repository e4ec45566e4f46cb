# campus_hub/utils/permissions.py

from functools import wraps

from flask import jsonify
from flask_login import current_user


def admin_required(f):
    """Decorator to require the admin role (401 when unauthenticated, 403 otherwise)"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_admin:
            return jsonify({"error": "Admin privileges required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def can_view_unapproved(user):
    """Admins see every event; everyone else only approved ones (plus their own)"""
    return bool(user and user.is_authenticated and user.is_admin)
