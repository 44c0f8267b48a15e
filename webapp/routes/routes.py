# --------------------------------------------------------------
#  routes.py
# --------------------------------------------------------------
from __future__ import annotations

from concurrent.futures import TimeoutError as FutureTimeoutError
from logging import Logger
from typing import Any, Dict, Tuple, Union

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from treeworker.host import WorkerHost
from treeworker.io import dumps
from webapp.routes.helpers import parse_upload_request
from webapp.services.sse import ChannelRegistry, sse_response

bp = Blueprint("main", __name__)

RouteResult = Union[Response, Tuple[Union[Response, Dict[str, Any]], int]]

# Worker error kinds -> HTTP status
ERROR_STATUS = {
    "InvalidRequestError": 400,
    "InvalidSearchSpecError": 400,
    "NodeNotFoundError": 404,
}


def _host() -> WorkerHost:
    return current_app.extensions["tree_worker"]


def _ask_worker(message: Dict[str, Any]) -> RouteResult:
    """Submit a request to the worker and turn its response into an HTTP response."""
    log: Logger = current_app.logger
    future = _host().submit(message)
    timeout = current_app.config["REQUEST_TIMEOUT"]

    try:
        response = future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        log.warning(f"[{message['type']}] No response within {timeout}s (dataset not ready?)")
        return _fail(503, "No dataset is loaded yet, or it is still loading"), 503

    error = response.get("error")
    if error:
        status = ERROR_STATUS.get(error.get("kind"), 500)
        log.warning(f"[{message['type']}] {error.get('kind')}: {error.get('message')}")
        return _fail(status, error.get("message", "")), status

    return Response(dumps(response), mimetype="application/json")


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@bp.route("/about")
def about() -> Response:
    """Simple health-check / about endpoint."""
    return jsonify(
        {
            "about": "Tree query worker API. POST a dataset to /upload, then query it.",
            "dataset_loaded": _host().worker.dataset is not None,
        }
    )


# ----------------------------------------------------------------------
# Dataset upload
# ----------------------------------------------------------------------


@bp.route("/upload", methods=["POST"])
def upload() -> RouteResult:
    log: Logger = current_app.logger
    log.info("[upload] POST /upload from %s", request.remote_addr)

    try:
        upload_request = parse_upload_request(request)
    except ValueError as e:
        log.warning(f"[upload] Bad request: {e}")
        return _fail(400, str(e)), 400

    log.info(
        f"[upload] Loading {upload_request.filename} as {upload_request.filetype}, "
        f"metadata provided: {upload_request.metadata is not None}"
    )
    _host().post(upload_request.to_message())
    return jsonify(
        {
            "status": "accepted",
            "filename": upload_request.filename,
            "filetype": upload_request.filetype,
        }
    ), 202


@bp.route("/status/stream")
def status_stream() -> Response:
    """SSE stream of worker status messages (ingestion progress and errors)."""
    registry: ChannelRegistry = current_app.extensions["status_channels"]
    channel = registry.create()
    keepalive = current_app.config["STATUS_KEEPALIVE"]

    def generate():
        try:
            yield from channel.stream(timeout=keepalive)
        finally:
            registry.remove(channel.channel_id)

    return sse_response(generate())


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------


@bp.route("/query", methods=["POST"])
def query() -> RouteResult:
    return _ask_worker({"type": "query", "bounds": _json_body().get("bounds")})


@bp.route("/search", methods=["POST"])
def search() -> RouteResult:
    body = _json_body()
    return _ask_worker(
        {"type": "search", "search": body.get("search"), "bounds": body.get("bounds")}
    )


@bp.route("/config")
def config() -> RouteResult:
    return _ask_worker({"type": "config"})


@bp.route("/details/<int(signed=True):node_id>")
def details(node_id: int) -> RouteResult:
    return _ask_worker({"type": "details", "node_id": node_id})


@bp.route("/list/<int(signed=True):node_id>")
def tip_list(node_id: int) -> RouteResult:
    key = request.args.get("key")
    if not key:
        return _fail(400, "Missing required query parameter 'key'"), 400
    return _ask_worker({"type": "list", "node_id": node_id, "key": key})


@bp.errorhandler(Exception)
def global_error(exc: Exception):  # Flask passes the exception instance in
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.error("[global] Unhandled exception", exc_info=True)
    return _fail(500, str(exc)), 500


# ----------------------------------------------------------------------
# Utility: short error JSON helper
# ----------------------------------------------------------------------
def _fail(status_code: int, message: str) -> dict[str, Any]:
    return {
        "error": message,
        "status": status_code,
    }
