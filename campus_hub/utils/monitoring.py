# campus_hub/utils/monitoring.py
"""
Health check and Prometheus metrics endpoints.
"""

from datetime import datetime, timezone

from flask import Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from campus_hub.models import db


class HealthChecker:
    """Liveness probe backing ``/health``"""

    def __init__(self, app=None):
        self.app = app

    def basic_health_check(self):
        checks = {"database": "ok"}
        status = "healthy"
        status_code = 200
        try:
            db.session.execute(text("SELECT 1"))
        except Exception as e:
            db.session.rollback()
            checks["database"] = str(e)
            status = "unhealthy"
            status_code = 503
        payload = {
            "status": status,
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.app is not None:
            payload["app"] = self.app.config.get("APP_NAME", "Campus Hub")
            payload["version"] = self.app.config.get("APP_VERSION")
        if status_code != 200:
            payload["error"] = checks["database"]
        return jsonify(payload), status_code


def init_monitoring(app):
    """Register ``/health`` and, when monitoring is enabled, ``/metrics``"""
    health_checker = HealthChecker(app)
    app.extensions["health_checker"] = health_checker

    @app.route(app.config.get("HEALTH_CHECK_ENDPOINT", "/health"), methods=["GET"])
    def health():
        return health_checker.basic_health_check()

    if app.config.get("MONITORING_ENABLED", False):

        @app.route(app.config.get("METRICS_ENDPOINT", "/metrics"), methods=["GET"])
        def metrics():
            return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    return health_checker
