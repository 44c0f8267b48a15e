"""
Logging configuration for the Flask application and its tree query worker.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _rotating_handler(path: Path, max_bytes: int, backups: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
    return handler


def _has_file_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h, RotatingFileHandler) for h in logger.handlers)


def configure_logging(app: Flask) -> Path:
    """
    Attach file and console handlers for the web app and the worker.

    Handlers:
        - <LOG_DIR>/backend.log: everything from the app, the worker and libraries
        - <LOG_DIR>/worker.log: only the ``treeworker`` loggers (ingestion,
          queries, searches), which run on the worker thread
        - console: at LOG_LEVEL, for local development

    Handlers are attached once per process; creating further apps reuses them.

    Returns:
        Path of the backend log file.
    """
    log_dir = Path(app.config["LOG_DIR"])
    log_dir.mkdir(parents=True, exist_ok=True)
    max_bytes = int(app.config.get("LOG_MAX_BYTES", 1_000_000))
    backups = int(app.config.get("LOG_BACKUP_COUNT", 3))

    backend_file = log_dir / "backend.log"
    backend_handler = _rotating_handler(backend_file, max_bytes, backups)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    if not _has_file_handler(root_logger):
        root_logger.addHandler(backend_handler)
        root_logger.addHandler(console_handler)

    # app.logger does not propagate, so it gets its own copies
    if not _has_file_handler(app.logger):
        app.logger.handlers = [backend_handler, console_handler]
    app.logger.setLevel(logging.DEBUG)
    app.logger.propagate = False

    worker_logger = logging.getLogger("treeworker")
    worker_logger.setLevel(logging.DEBUG)
    if not _has_file_handler(worker_logger):
        worker_logger.addHandler(_rotating_handler(log_dir / "worker.log", max_bytes, backups))

    logging.getLogger("webapp").setLevel(logging.DEBUG)

    app.logger.info(f"Logging configured. Log file: {backend_file}")
    return backend_file
