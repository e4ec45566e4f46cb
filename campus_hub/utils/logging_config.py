# campus_hub/utils/logging_config.py
"""
Logging setup for the Flask app, Celery workers and CLI commands.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

# Attributes present on every LogRecord; anything else came in through ``extra=``
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra`` fields"""

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


TEXT_FORMAT = "[%(asctime)s] %(levelname)s in %(name)s: %(message)s"


def _build_formatter(app):
    if app.config.get("LOG_FORMAT", "text") == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app):
    """
    Configure the app logger and the ``campus_hub`` package logger.

    Calling this again (tests reconfigure between runs) replaces the handlers
    installed by the previous call.
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(app)

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR") or os.path.join(app.instance_path, "logs")
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "campus_hub.log"),
            maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024),
            backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 5),
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for logger in (app.logger, logging.getLogger("campus_hub")):
        for handler in list(logger.handlers):
            if getattr(handler, "_campus_hub_handler", False):
                logger.removeHandler(handler)
                handler.close()
        for handler in handlers:
            handler._campus_hub_handler = True
            logger.addHandler(handler)
        logger.setLevel(level)

    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    app.logger.debug(
        "Logging configured",
        extra={"log_level": logging.getLevelName(level), "log_handlers": len(handlers)},
    )
