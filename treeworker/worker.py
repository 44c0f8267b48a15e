"""
The query worker: owns the dataset and the result cache and answers typed
request messages.

Messages are dicts with a ``type``; each answered request produces exactly one
response dict of the same ``type`` passed to ``post_message``. ``upload``
requests produce no response, only ``status`` messages. Requests may carry a
``request_id`` which is copied onto their response.

All handlers run on one event loop. A request suspends only while waiting for
the dataset (readiness gate) or for ingestion running in an executor, so
responses are not guaranteed to come back in request order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from treeworker.accessors import get_details, get_list
from treeworker.bounds import query_bounds
from treeworker.cache import ResultCache
from treeworker.config_synthesis import synthesize_config
from treeworker.dataset import Dataset
from treeworker.exceptions import InvalidRequestError, UnsupportedFileTypeError, WorkerError
from treeworker.gate import ReadinessGate
from treeworker.ingest import StatusCallback, ingest_upload
from treeworker.search import MAX_SEARCH_RESULTS, search

logger = logging.getLogger(__name__)

PostMessage = Callable[[Dict[str, Any]], None]
Ingester = Callable[[Mapping[str, Any], StatusCallback], Dataset]


class QueryWorker:
    """
    Long-lived worker context. Construct once per dataset session and feed every
    inbound message to ``on_message``.
    """

    def __init__(
        self,
        post_message: PostMessage,
        cache: Optional[ResultCache] = None,
        ingest: Ingester = ingest_upload,
        max_search_results: int = MAX_SEARCH_RESULTS,
    ) -> None:
        self.post_message = post_message
        self.cache = cache if cache is not None else ResultCache()
        self.gate: ReadinessGate[Dataset] = ReadinessGate()
        self.max_search_results = max_search_results
        self._ingest = ingest
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Awaitable[Any]]] = {
            "query": self._handle_query,
            "search": self._handle_search,
            "config": self._handle_config,
            "details": self._handle_details,
            "list": self._handle_list,
        }

    @property
    def dataset(self) -> Optional[Dataset]:
        return self.gate.value

    def send_status(self, status: Dict[str, Any]) -> None:
        self.post_message({"type": "status", "data": status})

    def load_dataset(self, dataset: Dataset) -> None:
        """
        Install ``dataset``, replacing any previous one, and release waiting requests.

        Cached search results hold node ids of the dataset they were computed on,
        so they are dropped when a different dataset is installed.
        """
        if self.gate.value is not None and self.gate.value is not dataset:
            self.cache.clear()
            logger.info("Replaced dataset, search cache cleared")
        self.gate.open(dataset)
        logger.info(f"Dataset ready: {dataset.num_nodes} nodes")

    # ------------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------------

    async def upload(self, upload: Any) -> None:
        """
        Ingest an upload and install the result.

        Failures are reported as ``{"error": ...}`` status messages; the current
        dataset (if any) stays in place and waiting requests keep waiting.
        """
        loop = asyncio.get_running_loop()

        def status_from_executor(status: Dict[str, Any]) -> None:
            loop.call_soon_threadsafe(self.send_status, status)

        try:
            if not isinstance(upload, Mapping) or not upload.get("filename"):
                raise UnsupportedFileTypeError("Upload needs a payload with a filename")
            dataset = await loop.run_in_executor(
                None, self._ingest, upload, status_from_executor
            )
        except WorkerError as e:
            logger.warning(f"[upload] Ingestion failed: {e}")
            self.send_status({"error": str(e)})
            return
        except Exception as e:
            logger.error("[upload] Unexpected ingestion failure", exc_info=True)
            self.send_status({"error": f"Failed to load {upload.get('filename')!r}: {e}"})
            return

        self.load_dataset(dataset)
        self.send_status({"message": "Dataset loaded", "num_nodes": dataset.num_nodes})

    async def query_nodes(self, bounds: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        dataset = await self.gate.wait()
        return query_bounds(dataset, bounds)

    async def search(self, raw_spec: Any, bounds: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        dataset = await self.gate.wait()
        return search(
            dataset, raw_spec, bounds, cache=self.cache, max_results=self.max_search_results
        )

    async def get_config(self) -> Dict[str, Any]:
        dataset = await self.gate.wait()
        return synthesize_config(dataset)

    async def get_details(self, node_id: Any) -> Dict[str, Any]:
        dataset = await self.gate.wait()
        return get_details(dataset, node_id)

    async def get_list(self, node_id: Any, attribute: Any) -> Any:
        dataset = await self.gate.wait()
        if not isinstance(attribute, str):
            raise InvalidRequestError(f"list needs an attribute name in 'key', got {attribute!r}")
        return get_list(dataset, node_id, attribute)

    # ------------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------------

    async def _handle_query(self, message: Mapping[str, Any]) -> Any:
        return await self.query_nodes(message.get("bounds"))

    async def _handle_search(self, message: Mapping[str, Any]) -> Any:
        return await self.search(message.get("search"), message.get("bounds"))

    async def _handle_config(self, message: Mapping[str, Any]) -> Any:
        return await self.get_config()

    async def _handle_details(self, message: Mapping[str, Any]) -> Any:
        return await self.get_details(message.get("node_id"))

    async def _handle_list(self, message: Mapping[str, Any]) -> Any:
        return await self.get_list(message.get("node_id"), message.get("key"))

    async def on_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Route one inbound message and post its response.

        Returns the posted response, or None for uploads. A failing request is
        answered with ``{"type": <type>, "error": {"kind", "message"}}``; no
        exception escapes.
        """
        if not isinstance(message, Mapping):
            message = {}
        msg_type = message.get("type")
        request_id = message.get("request_id")
        logger.debug(f"[dispatch] {msg_type} request_id={request_id}")

        if msg_type == "upload":
            await self.upload(message.get("data"))
            return None

        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        response: Dict[str, Any]
        if handler is None:
            logger.warning(f"[dispatch] Unknown request type {msg_type!r}")
            response = _error_response(
                "error", InvalidRequestError(f"Unknown request type {msg_type!r}")
            )
        else:
            try:
                response = {"type": msg_type, "data": await handler(message)}
            except WorkerError as e:
                logger.warning(f"[{msg_type}] Bad request: {e}")
                response = _error_response(msg_type, e)
            except Exception as e:
                logger.error(f"[{msg_type}] Exception: {e}", exc_info=True)
                response = _error_response(msg_type, e)

        if request_id is not None:
            response["request_id"] = request_id
        self.post_message(response)
        return response


def _error_response(msg_type: str, error: Exception) -> Dict[str, Any]:
    return {
        "type": msg_type,
        "error": {"kind": type(error).__name__, "message": str(error)},
    }
