# campus_hub/routes/admin.py

"""
Admin triggers for the sweeps
"""

from flask import current_app, jsonify, request
from flask_login import current_user

from campus_hub.services import ReminderSweep, RetentionSweep, StorageReconciler
from campus_hub.utils.permissions import admin_required


def _test_mode_requested(payload):
    value = payload.get("test_mode", payload.get("testMode", False))
    return value is True or str(value).lower() == "true"


def register_admin_routes(app):
    """Register admin routes"""

    @app.route("/api/admin/reminders/trigger", methods=["POST"])
    @admin_required
    def trigger_reminders():
        """
        Run the reminder sweep now.

        With ``{"test_mode": true}`` only the caller's saved events are used
        and each gets a 1-hour reminder immediately.
        """
        payload = request.get_json(silent=True)
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        test_user_id = current_user.id if _test_mode_requested(payload) else None
        try:
            summary = ReminderSweep.from_app().run(test_user_id=test_user_id)
        except Exception as e:
            current_app.logger.error(f"Reminder sweep failed: {str(e)}", exc_info=True)
            return jsonify({"error": str(e) or "Reminder sweep failed"}), 500

        message = "Reminder sweep skipped" if summary.skipped else "Reminder sweep complete"
        return jsonify({"message": message, **summary.to_dict()})

    @app.route("/api/admin/storage-cleanup", methods=["POST"])
    @admin_required
    def storage_cleanup():
        try:
            summary = StorageReconciler.from_app().run()
        except Exception as e:
            current_app.logger.error(f"Storage cleanup failed: {str(e)}", exc_info=True)
            return jsonify({"error": str(e) or "Cleanup failed"}), 500
        return jsonify(summary.to_dict())

    @app.route("/api/admin/retention/run", methods=["POST"])
    @admin_required
    def run_retention():
        try:
            summary = RetentionSweep.from_app().run()
        except Exception as e:
            current_app.logger.error(f"Retention sweep failed: {str(e)}", exc_info=True)
            return jsonify({"error": str(e) or "Retention sweep failed"}), 500
        return jsonify(summary.to_dict())
