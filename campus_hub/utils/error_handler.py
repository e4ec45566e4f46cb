# campus_hub/utils/error_handler.py
"""
JSON error responses for the API.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from campus_hub.errors import CampusHubError
from campus_hub.models import db


def init_error_handlers(app):
    """Register JSON handlers for domain errors, HTTP errors and unhandled exceptions"""

    @app.errorhandler(CampusHubError)
    def handle_campus_hub_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.error(f"Unhandled exception: {str(error)}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500
