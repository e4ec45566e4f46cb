# conftest.py

import os
from datetime import date, time, timedelta

import pytest

# Set testing environment BEFORE importing app so app.py loads TestingConfig
os.environ["FLASK_ENV"] = "testing"

# Now import app and other modules after environment is set
from app import app as flask_app  # noqa: E402
from campus_hub.extensions import (  # noqa: E402
    get_change_feed,
    get_dispatcher,
    get_event_store,
    get_storage,
    init_services,
)
from campus_hub.integrations.notifications import LoggingDispatcher  # noqa: E402
from campus_hub.integrations.storage import LocalStorage  # noqa: E402
from campus_hub.models import ADMIN_ROLE, USER_ROLE, User, db  # noqa: E402
from campus_hub.models.event import EventCategory  # noqa: E402
from campus_hub.repositories import EventRecord, InMemoryEventStore  # noqa: E402


@pytest.fixture(scope="function")
def app(tmp_path):
    """Create and configure a test Flask application with fresh collaborators"""
    flask_app.config.update(
        {
            "TESTING": True,
            "WTF_CSRF_ENABLED": False,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "MONITORING_ENABLED": False,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "WARNING",
            "EVENT_STORE_BACKEND": "sqlalchemy",
            "AUTH_PROVIDER": "local",
            "STORAGE_BACKEND": "local",
            "LOCAL_STORAGE_DIR": str(tmp_path / "storage"),
            "NOTIFICATION_BACKEND": "log",
            "EVENT_TIMEZONE": "UTC",
            "RETENTION_DAYS": 7,
            "RETENTION_ON_LIST": True,
            "SCHEDULER_ENABLED": False,
            "CELERY_SQLITE_PATH": str(tmp_path / "celery.sqlite"),
        }
    )

    # Re-initialize logging with updated config
    from campus_hub.utils.logging_config import setup_logging

    setup_logging(flask_app)

    with flask_app.app_context():
        # Drop any existing tables to ensure clean state
        db.drop_all()
        db.create_all()
        init_services(flask_app)
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def store(app):
    return get_event_store(app)


@pytest.fixture
def dispatcher(app) -> LoggingDispatcher:
    return get_dispatcher(app)


@pytest.fixture
def storage(app) -> LocalStorage:
    return get_storage(app)


@pytest.fixture
def change_feed(app):
    return get_change_feed(app)


@pytest.fixture
def memory_store():
    return InMemoryEventStore()


def _create_user(email, role, display_name=None):
    user = User(email=email, role=role, display_name=display_name, is_active=True)
    token = user.issue_api_token()
    db.session.add(user)
    db.session.commit()
    user.raw_token = token
    return user


@pytest.fixture
def test_user(app):
    """Regular account with an issued API token (``user.raw_token``)"""
    return _create_user("student@example.edu", USER_ROLE, "Student")


@pytest.fixture
def other_user(app):
    return _create_user("other@example.edu", USER_ROLE, "Other")


@pytest.fixture
def admin_user(app):
    return _create_user("admin@example.edu", ADMIN_ROLE, "Admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {user.raw_token}"}


@pytest.fixture
def user_headers(test_user):
    return auth_headers(test_user)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


def build_event(**overrides):
    """EventRecord with sensible defaults, dated a week from today"""
    values = {
        "id": "",
        "title": "Annual Mushaira",
        "description": "An evening of poetry.",
        "date": date.today() + timedelta(days=7),
        "time": time(18, 0),
        "venue": "Kennedy Hall",
        "category": EventCategory.CULTURAL,
        "organizer": "Kennedy Hall",
        "created_by": "organizer@example.edu",
    }
    values.update(overrides)
    return EventRecord(**values)


@pytest.fixture
def event_record():
    """The ``build_event`` helper, for tests that need unsaved records"""
    return build_event


@pytest.fixture
def make_event(store):
    """Factory adding an event to the active store; approved unless told otherwise"""

    def _make_event(approved=True, target_store=None, **overrides):
        target = target_store or store
        event = target.add_event(build_event(**overrides))
        if approved:
            event = target.approve_event(event.id)
        return event

    return _make_event


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and ensure testing environment"""
    os.environ["FLASK_ENV"] = "testing"

    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers"""
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.slow)
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
