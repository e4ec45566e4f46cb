# config/base.py
import os
from datetime import timedelta


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_float(value, default):
    """Parse a float from the environment, falling back to ``default``."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _coerce_int(value, default, *, minimum=None):
    """Parse an int from the environment with an optional lower bound."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(value)
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _parse_host_list(value, default=()):
    """
    Parse a comma-separated host list while keeping order and removing duplicates.

    Returns:
        tuple[str, ...]: Normalized host names.
    """
    if not value:
        return tuple(default)

    seen = set()
    hosts = []
    for raw_item in value.split(","):
        item = raw_item.strip().lower()
        if not item or item in seen:
            continue
        seen.add(item)
        hosts.append(item)
    return tuple(hosts)


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY")
    if not SECRET_KEY:
        if _flask_env == "production":
            raise ValueError("SECRET_KEY must be set when FLASK_ENV=production")
        if _flask_env != "testing":
            import warnings

            warnings.warn("SECRET_KEY is not set; using an insecure development key", UserWarning)
        SECRET_KEY = "campus-hub-insecure-dev-key"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Event store: "sqlalchemy" (default) or "memory"
    EVENT_STORE_BACKEND = os.environ.get("EVENT_STORE_BACKEND", "sqlalchemy").strip().lower()

    # Auth provider: "local" API tokens or "supabase" access tokens
    AUTH_PROVIDER = os.environ.get("AUTH_PROVIDER", "local").strip().lower()
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

    # Blob storage
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "supabase" if SUPABASE_URL else "local").strip().lower()
    EVENT_ASSET_BUCKET = os.environ.get("EVENT_ASSET_BUCKET", "event-images")
    LOCAL_STORAGE_DIR = os.environ.get("LOCAL_STORAGE_DIR")
    LOCAL_STORAGE_URL = os.environ.get("LOCAL_STORAGE_URL", "/uploads")
    STORAGE_DELETE_BATCH_SIZE = _coerce_int(os.environ.get("STORAGE_DELETE_BATCH_SIZE"), 100, minimum=1)
    PLACEHOLDER_IMAGE_HOSTS = _parse_host_list(
        os.environ.get("PLACEHOLDER_IMAGE_HOSTS"),
        default=("picsum.photos",),
    )
    MAX_UPLOAD_MB = _coerce_int(os.environ.get("MAX_UPLOAD_MB"), 10, minimum=1)

    # Notification provider: "novu" or "log"
    NOTIFICATION_BACKEND = os.environ.get("NOTIFICATION_BACKEND", "log").strip().lower()
    NOVU_API_KEY = os.environ.get("NOVU_API_KEY")
    NOVU_API_URL = os.environ.get("NOVU_API_URL", "https://api.novu.co")
    NOVU_BROADCAST_TOPIC = os.environ.get("NOVU_BROADCAST_TOPIC", "all-campus-events")
    NOVU_TIMEOUT_SECONDS = _coerce_float(os.environ.get("NOVU_TIMEOUT_SECONDS"), 10.0)

    # Reminder sweep. Window bounds are (start, end] in hours before the event.
    EVENT_TIMEZONE = os.environ.get("EVENT_TIMEZONE", "UTC")
    REMINDER_24H_WINDOW_START = _coerce_float(os.environ.get("REMINDER_24H_WINDOW_START"), 23.0)
    REMINDER_24H_WINDOW_END = _coerce_float(os.environ.get("REMINDER_24H_WINDOW_END"), 25.0)
    REMINDER_1H_WINDOW_START = _coerce_float(os.environ.get("REMINDER_1H_WINDOW_START"), 0.0)
    REMINDER_1H_WINDOW_END = _coerce_float(os.environ.get("REMINDER_1H_WINDOW_END"), 1.5)
    REMINDER_SWEEP_INTERVAL_MINUTES = _coerce_int(
        os.environ.get("REMINDER_SWEEP_INTERVAL_MINUTES"), 15, minimum=1
    )
    REMINDER_SWEEP_LEASE_SECONDS = _coerce_int(os.environ.get("REMINDER_SWEEP_LEASE_SECONDS"), 300, minimum=1)

    # Retention sweep
    RETENTION_DAYS = _coerce_int(os.environ.get("RETENTION_DAYS"), 7, minimum=0)
    RETENTION_ON_LIST = _coerce_bool(os.environ.get("RETENTION_ON_LIST"), default=True)
    RETENTION_SWEEP_HOUR = _coerce_int(os.environ.get("RETENTION_SWEEP_HOUR"), 3, minimum=0)

    # Scheduler (Celery beat)
    SCHEDULER_ENABLED = _coerce_bool(os.environ.get("SCHEDULER_ENABLED"), default=False)
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")

    # JSON API with bearer-token auth
    WTF_CSRF_ENABLED = False

    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"


class DevelopmentConfig(Config):
    DEBUG = True
    # instance/ sits next to the config package and holds the dev database
    instance_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "instance")
    os.makedirs(instance_path, exist_ok=True)

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(instance_path, "campus_hub_dev.db").replace("\\", "/"),
    )
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 5}}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    EVENT_STORE_BACKEND = "sqlalchemy"
    AUTH_PROVIDER = "local"
    STORAGE_BACKEND = "local"
    NOTIFICATION_BACKEND = "log"
    EVENT_TIMEZONE = "UTC"
    SCHEDULER_ENABLED = False


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
    SESSION_COOKIE_SECURE = True
    NOTIFICATION_BACKEND = os.environ.get("NOTIFICATION_BACKEND", "novu").strip().lower()
