# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import event

# .env must be loaded before the config classes read os.environ
load_dotenv()

from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from campus_hub.auth import init_auth  # noqa: E402
from campus_hub.cli import init_cli  # noqa: E402
from campus_hub.extensions import init_services  # noqa: E402
from campus_hub.models import db  # noqa: E402
from campus_hub.routes import init_routes  # noqa: E402
from campus_hub.tasks import get_celery_app  # noqa: E402
from campus_hub.utils.error_handler import init_error_handlers  # noqa: E402
from campus_hub.utils.logging_config import setup_logging  # noqa: E402
from campus_hub.utils.monitoring import init_monitoring  # noqa: E402

logger = logging.getLogger(__name__)

CONFIG_BY_ENV = {
    "production": (ProductionConfig, ProductionMonitoringConfig),
    "testing": (TestingConfig, TestingMonitoringConfig),
    "development": (DevelopmentConfig, DevelopmentMonitoringConfig),
}

flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

app = Flask(__name__)
for config_object in CONFIG_BY_ENV.get(flask_env, CONFIG_BY_ENV["development"]):
    app.config.from_object(config_object)

# Uploads are capped at the request level as well as in the upload route
app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_UPLOAD_MB"] * 1024 * 1024

db.init_app(app)
init_auth(app)

setup_logging(app)
init_error_handlers(app)
init_monitoring(app)


def _configure_sqlite_connection_factory(*, enable_foreign_keys: bool):
    """Return a connect hook that lets the API and the sweep worker share one SQLite file."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
        try:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            if enable_foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        except Exception as exc:
            logger.warning("Could not configure SQLite connection: %s", exc)

    return _configure_sqlite_connection


with app.app_context():
    engine = db.engine
    if engine.url.drivername.startswith("sqlite") and not getattr(engine, "_campus_hub_pragmas", False):
        event.listen(
            engine,
            "connect",
            _configure_sqlite_connection_factory(enable_foreign_keys=not app.config.get("TESTING", False)),
        )
        engine._campus_hub_pragmas = True  # type: ignore[attr-defined]
    # Tests build their own schema per tmp database
    if not app.config.get("TESTING", False):
        db.create_all()

init_services(app)
init_routes(app)
init_cli(app)

if app.config.get("SCHEDULER_ENABLED", False):
    # Exposed for `celery -A app.celery worker --beat`
    celery = get_celery_app(app)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
