# campus_hub/auth.py
"""
Bearer-token authentication through Flask-Login.

``AUTH_PROVIDER=local`` resolves tokens issued by ``flask users ...``
against their stored digest. ``AUTH_PROVIDER=supabase`` asks the provider
who the token belongs to and maps that identity onto a local account,
creating the account on first sight.
"""

from flask import current_app, g, jsonify
from flask_login import LoginManager
from sqlalchemy.exc import SQLAlchemyError

from campus_hub.extensions import get_auth_client
from campus_hub.models import USER_ROLE, User, db


def _bearer_token(request):
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _user_for_identity(identity):
    user = User.find_by_external_id(identity.subject)
    if user is not None:
        return user if user.is_active else None

    email = (identity.email or "").strip().lower()
    user = User.find_by_email(email) if email else None
    try:
        if user is None:
            user = User(email=email or f"{identity.subject}@users.invalid", role=USER_ROLE)
            db.session.add(user)
        user.external_id = identity.subject
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to link auth identity {identity.subject}: {str(e)}")
        return None
    current_app.logger.info(f"Linked auth identity {identity.subject} to user {user.id}")
    return user if user.is_active else None


def load_user_from_request(request):
    """Resolve the request's bearer token to an active user, or None"""
    token = _bearer_token(request)
    if token is None:
        return None

    if current_app.config.get("AUTH_PROVIDER", "local") == "supabase":
        identity = get_auth_client().get_identity(token)
        if identity is None:
            return None
        return _user_for_identity(identity)

    return User.find_by_api_token(token)


def init_auth(app):
    """Create the login manager and wire the request loader"""
    login_manager = LoginManager()
    login_manager.init_app(app)

    # Register login manager in app extensions for testing
    app.extensions["login_manager"] = login_manager

    login_manager.request_loader(load_user_from_request)

    @app.before_request
    def reset_request_user():
        # Bearer credentials are per request; drop a user cached on a reused app context
        g.pop("_login_user", None)

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, str(user_id))
        except Exception as e:
            current_app.logger.error(f"Error loading user {user_id}: {str(e)}")
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    return login_manager
