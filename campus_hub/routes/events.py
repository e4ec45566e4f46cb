# campus_hub/routes/events.py

"""
Event browsing, submission, moderation and Save Registry endpoints
"""

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from campus_hub.forms import EventSubmissionForm
from campus_hub.services import EventService
from campus_hub.utils.permissions import admin_required, can_view_unapproved


def _viewer_id():
    return current_user.id if current_user.is_authenticated else None


def register_event_routes(app):
    """Register event routes"""

    @app.route("/api/events", methods=["GET"])
    def list_events():
        """List events. Runs the retention sweep first when RETENTION_ON_LIST is on."""
        service = EventService.from_app()
        include_unapproved = can_view_unapproved(current_user)
        events = service.list_events(include_unapproved=include_unapproved, viewer_id=_viewer_id())
        return jsonify({"events": [event.to_dict() for event in events]})

    @app.route("/api/events", methods=["POST"])
    @login_required
    def submit_event():
        form = EventSubmissionForm.from_json(request.get_json(silent=True))
        if not form.validate():
            return jsonify({"error": "Validation failed", "errors": form.errors}), 400

        event = EventService.from_app().submit(
            form.cleaned_data(), user_id=current_user.id, email=current_user.email
        )
        return jsonify({"event": event.to_dict()}), 201

    @app.route("/api/events/<event_id>", methods=["GET"])
    def get_event(event_id):
        service = EventService.from_app()
        event = service.get_event(
            event_id, viewer_id=_viewer_id(), viewer_is_admin=can_view_unapproved(current_user)
        )
        payload = event.to_dict()
        if current_user.is_authenticated:
            payload["saved"] = service.is_saved(current_user.id, event.id)
        return jsonify({"event": payload})

    @app.route("/api/events/<event_id>/approve", methods=["POST"])
    @admin_required
    def approve_event(event_id):
        event = EventService.from_app().approve(event_id)
        current_app.logger.info(f"Admin {current_user.email} approved event {event_id}")
        return jsonify({"success": True, "event": event.to_dict()})

    @app.route("/api/events/<event_id>/reject", methods=["POST"])
    @admin_required
    def reject_event(event_id):
        EventService.from_app().reject(event_id)
        current_app.logger.info(f"Admin {current_user.email} rejected event {event_id}")
        return jsonify({"success": True})

    @app.route("/api/events/<event_id>", methods=["DELETE"])
    @admin_required
    def delete_event(event_id):
        EventService.from_app().delete(event_id)
        current_app.logger.info(f"Admin {current_user.email} deleted event {event_id}")
        return jsonify({"success": True})

    @app.route("/api/events/<event_id>/save", methods=["POST"])
    @login_required
    def save_event(event_id):
        service = EventService.from_app()
        created = service.save(current_user.id, event_id)
        return jsonify({"saved": True, "created": created, "count": service.store.count_saved(current_user.id)})

    @app.route("/api/events/<event_id>/save", methods=["DELETE"])
    @login_required
    def unsave_event(event_id):
        service = EventService.from_app()
        removed = service.unsave(current_user.id, event_id)
        return jsonify({"saved": False, "removed": removed, "count": service.store.count_saved(current_user.id)})

    @app.route("/api/saved", methods=["GET"])
    @login_required
    def list_saved_events():
        events = EventService.from_app().list_saved(current_user.id)
        return jsonify({"events": [event.to_dict() for event in events]})
