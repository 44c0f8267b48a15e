# --------------------------------------------------------------
#  __init__.py (package root)
# --------------------------------------------------------------
from typing import Any, Dict, Optional, Type

from flask import Flask
from flask_cors import CORS

from treeworker.host import WorkerHost

from .config import Config
from .services.logging import configure_logging
from .services.sse import ChannelRegistry
from .routes.routes import bp as main_bp

__all__ = ["create_app"]


def create_app(config: Type[Config] = Config, host: Optional[WorkerHost] = None) -> Flask:
    """Factory for the Flask WSGI application.

    Each app owns one ``WorkerHost`` (the worker's event loop thread) and one
    registry of status channels; both live in ``app.extensions``. Pass ``host``
    to reuse an existing worker, e.g. in tests.
    """
    import sys

    app: Flask | None = None
    try:
        app = Flask(__name__)
        app.config.from_object(config)

        # Configure logging early to capture all messages
        configure_logging(app)

        app.logger.info("[INIT] Enabling CORS...")
        CORS(app, origins=app.config["CORS_ORIGINS"])

        app.logger.info("[INIT] Starting tree query worker...")
        worker_host = host if host is not None else WorkerHost()
        status_channels = ChannelRegistry()

        def forward_status(message: Dict[str, Any]) -> None:
            if message.get("type") == "status":
                status_channels.broadcast(message.get("data"), event="status")

        worker_host.subscribe(forward_status)
        app.extensions["tree_worker"] = worker_host
        app.extensions["status_channels"] = status_channels

        app.logger.info("[INIT] Registering blueprints...")
        app.register_blueprint(main_bp)

        app.logger.info("[INIT] Flask app creation complete")
        return app
    except Exception as e:
        # If logging is not configured yet, fall back to stderr
        if app is not None and hasattr(app, "logger"):
            app.logger.error(f"[INIT ERROR] Failed to create app: {e}", exc_info=True)
        else:
            print(f"[INIT ERROR] Failed to create app: {e}", file=sys.stderr)
        raise
