"""
Tests for health checks, metrics, error handlers and logging
"""

import json
import logging
from unittest.mock import patch

from campus_hub.metrics import record_storage_deleted
from campus_hub.utils.logging_config import JSONFormatter, setup_logging
from campus_hub.utils.monitoring import HealthChecker


class TestHealth:
    """Test the health endpoint"""

    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        payload = response.get_json()
        assert payload["status"] == "healthy"
        assert payload["checks"]["database"] == "ok"

    def test_unhealthy_database(self, app):
        with app.test_request_context():
            with patch("campus_hub.utils.monitoring.db.session.execute", side_effect=RuntimeError("db gone")):
                response, status_code = HealthChecker(app).basic_health_check()

        assert status_code == 503
        assert response.get_json()["error"] == "db gone"


class TestMetrics:
    def test_counters_are_exported(self):
        from prometheus_client import REGISTRY, generate_latest

        before = REGISTRY.get_sample_value("campus_hub_storage_objects_deleted_total", {"job": "reconciler"}) or 0
        record_storage_deleted("reconciler", 3)

        after = REGISTRY.get_sample_value("campus_hub_storage_objects_deleted_total", {"job": "reconciler"})
        assert after == before + 3
        assert b"campus_hub_reminders_sent" in generate_latest()


class TestErrorHandlers:
    """Test JSON error responses"""

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}

    def test_wrong_method(self, client):
        response = client.put("/api/events")
        assert response.status_code == 405
        assert response.get_json() == {"error": "Method not allowed"}

    def test_unexpected_exception(self, client, monkeypatch):
        from campus_hub.services import EventService

        def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(EventService, "list_events", boom)
        response = client.get("/api/events")

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestLogging:
    def test_json_formatter_includes_extra(self):
        record = logging.LogRecord("campus_hub", logging.INFO, __file__, 10, "swept %s", ("events",), None)
        record.deleted_events = 4

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "swept events"
        assert payload["level"] == "INFO"
        assert payload["deleted_events"] == 4

    def test_setup_logging_replaces_handlers(self, app):
        app.config["ENABLE_CONSOLE_LOGGING"] = True
        setup_logging(app)
        setup_logging(app)

        ours = [h for h in app.logger.handlers if getattr(h, "_campus_hub_handler", False)]
        assert len(ours) == 1
        app.config["ENABLE_CONSOLE_LOGGING"] = False
        setup_logging(app)
