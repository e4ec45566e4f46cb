# config/validation.py

"""
Startup checks for production deployments.

Each backend switch (store, auth, storage, notifications) pulls in its own
required settings; a missing one is reported before the app starts serving.
"""

import os
import sys
from typing import List, Tuple

PLACEHOLDER_SECRET_KEYS = {"", "your-secret-key", "your_secret_key", "dev-secret-key"}


def _env(name, default=""):
    return os.environ.get(name, default).strip()


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Check the environment a production process will run with.

    Returns ``(is_valid, errors)``. Non-production environments are always valid.
    """
    flask_env = flask_env or os.environ.get("FLASK_ENV", "development")
    if flask_env != "production":
        return True, []

    errors = []

    if _env("SECRET_KEY") in PLACEHOLDER_SECRET_KEYS:
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    store_backend = _env("EVENT_STORE_BACKEND", "sqlalchemy").lower()
    if store_backend not in ("sqlalchemy", "memory"):
        errors.append(f"EVENT_STORE_BACKEND must be 'sqlalchemy' or 'memory', got '{store_backend}'")
    elif store_backend == "sqlalchemy" and not _env("DATABASE_URL"):
        errors.append("DATABASE_URL is required in production (PostgreSQL connection string)")

    supabase_url = _env("SUPABASE_URL")
    service_key = _env("SUPABASE_SERVICE_ROLE_KEY")

    if _env("AUTH_PROVIDER", "local").lower() == "supabase":
        if not supabase_url:
            errors.append("SUPABASE_URL is required when AUTH_PROVIDER=supabase")
        if not (_env("SUPABASE_ANON_KEY") or service_key):
            errors.append("SUPABASE_ANON_KEY or SUPABASE_SERVICE_ROLE_KEY is required when AUTH_PROVIDER=supabase")

    storage_backend = _env("STORAGE_BACKEND", "supabase" if supabase_url else "local").lower()
    if storage_backend == "supabase":
        if not supabase_url:
            errors.append("SUPABASE_URL is required when STORAGE_BACKEND=supabase")
        if not service_key:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is required when STORAGE_BACKEND=supabase")

    notification_backend = _env("NOTIFICATION_BACKEND", "novu").lower()
    if notification_backend != "novu":
        errors.append(f"NOTIFICATION_BACKEND must be 'novu' in production, got '{notification_backend}'")
    elif not _env("NOVU_API_KEY"):
        errors.append("NOVU_API_KEY is required when NOTIFICATION_BACKEND=novu")

    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Print every configuration problem to stderr and exit with status 1 if there are any."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    lines = ["Campus Hub cannot start: invalid production configuration", ""]
    lines.extend(f"  - {error}" for error in errors)
    lines.extend(["", "Set the variables above in the environment or in .env and restart."])
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
