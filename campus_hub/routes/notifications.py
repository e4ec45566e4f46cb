# campus_hub/routes/notifications.py

"""
Alerts inbox, badge counts and push device registration
"""

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from campus_hub.services import NotificationService


def register_notification_routes(app):
    """Register notification routes"""

    @app.route("/api/notifications", methods=["GET"])
    @login_required
    def list_notifications():
        """Return the caller's alerts newest first, marking unread ones as read"""
        notifications = NotificationService.from_app().open_inbox(current_user.id)
        return jsonify({"notifications": [n.to_dict() for n in notifications]})

    @app.route("/api/me/counts", methods=["GET"])
    @login_required
    def my_counts():
        return jsonify(NotificationService.from_app().counts(current_user.id))

    @app.route("/api/push/sync-token", methods=["POST"])
    @login_required
    def sync_push_token():
        payload = request.get_json(silent=True)
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        action = payload.get("action", "add")
        service = NotificationService.from_app()
        current_app.logger.info(f"Push token sync [{action}] for user {current_user.id}")

        if action == "remove":
            service.unregister_device(current_user.id)
            return jsonify({"success": True, "message": "Unsubscribed"})

        if action != "add":
            return jsonify({"error": f"Unknown action '{action}'"}), 400

        device_token = payload.get("deviceToken") or payload.get("device_token") or ""
        if not isinstance(device_token, str) or not device_token.strip():
            return jsonify({"error": "Missing deviceToken"}), 400

        topic_subscribed = service.register_device(current_user.id, device_token.strip())
        return jsonify({"success": True, "topic_subscribed": topic_subscribed})
