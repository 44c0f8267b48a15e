# --------------------------------------------------------------
#  run.py
# --------------------------------------------------------------
"""Development server runner for the webapp."""

import argparse
from pathlib import Path
from typing import Any, Mapping, cast

from treeworker.filetypes import guess_type
from webapp import create_app


def preload(app, path: Path, ladderize: bool = True) -> None:
    """Queue an upload of ``path`` so the worker starts loading before the first request."""
    filetype = guess_type(path.name)
    if filetype not in ("jsonl", "nwk", "nexus"):
        raise ValueError(f"Cannot preload {path}: unsupported file type")

    app.extensions["tree_worker"].post(
        {
            "type": "upload",
            "data": {
                "filename": path.name,
                "filetype": filetype,
                "data": path.read_bytes(),
                "ladderize": ladderize,
            },
        }
    )
    app.logger.info(f"[STARTUP] Preloading {path} as {filetype}")


def main():
    """Main entry point for the development server."""
    import sys
    import traceback
    from flask import Flask

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--data", type=Path, help="Dataset file to load at startup")
    parser.add_argument(
        "--no-ladderize", action="store_true", help="Keep the tree's child order as given"
    )
    args = parser.parse_args()

    app: Flask | None = None
    try:
        app = create_app()
        app.logger.info("[STARTUP] Flask app created successfully")

        if args.data is not None:
            preload(app, args.data, ladderize=not args.no_ladderize)

        config: Mapping[str, Any] = cast(Mapping[str, Any], app.config)
        debug_mode = bool(config.get("DEBUG", False))

        app.logger.info(
            f"[STARTUP] Starting server on {args.host}:{args.port} (debug={debug_mode})"
        )
        # The reloader would start a second worker thread; keep it off
        app.run(host=args.host, port=args.port, debug=debug_mode, use_reloader=False, threaded=True)
    except Exception as e:
        if app is not None and hasattr(app, "logger"):
            app.logger.error(f"[ERROR] Failed to start server: {e}", exc_info=True)
        else:
            print(f"[ERROR] Failed to start server: {e}", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
