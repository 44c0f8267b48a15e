"""Configuration for the Flask application."""

import os
from pathlib import Path


class Config:
    """Flask configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # CORS settings
    CORS_ORIGINS = "*"

    # File upload settings
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 500 * 1024 * 1024))

    # Seconds an HTTP request waits for the worker (e.g. while a dataset loads)
    REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "60"))

    # Seconds between SSE keepalive comments on the status stream
    STATUS_KEEPALIVE = float(os.environ.get("STATUS_KEEPALIVE", "15"))

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = Path(os.environ.get("LOG_DIR", "logs"))
    LOG_MAX_BYTES = int(os.environ.get("LOG_MAX_BYTES", 1_000_000))
    LOG_BACKUP_COUNT = int(os.environ.get("LOG_BACKUP_COUNT", 3))
