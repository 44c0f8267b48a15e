"""
Log handlers for the web app and the tree query worker it hosts.

``configure_logging`` routes the ``webapp`` and ``treeworker`` loggers to a
rotating file under ``LOG_DIR`` and to the console at ``LOG_LEVEL``.
"""

from webapp.services.logging.config import configure_logging

__all__ = ["configure_logging"]
