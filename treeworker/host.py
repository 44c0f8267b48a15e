"""
Run a QueryWorker on its own event loop in a background thread.

Callers on other threads (e.g. Flask request handlers) hand messages to the
worker and get back ``concurrent.futures.Future`` objects that resolve with the
matching response. Correlation uses ``request_id``, so overlapping requests of
the same type are safe.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Mapping

from treeworker.dataset import Dataset
from treeworker.worker import QueryWorker

logger = logging.getLogger(__name__)

Subscriber = Callable[[Dict[str, Any]], None]


class WorkerHost:
    """
    Owns the event loop thread and the QueryWorker running on it.

    Example:
        host = WorkerHost()
        host.subscribe(print)  # status messages
        host.post({"type": "upload", "data": {...}})
        config = host.submit({"type": "config"}).result(timeout=30)
    """

    def __init__(self, **worker_kwargs: Any) -> None:
        self._loop = asyncio.new_event_loop()
        self._pending: Dict[str, Future[Dict[str, Any]]] = {}
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self.worker = QueryWorker(self._deliver, **worker_kwargs)

        self._thread = threading.Thread(target=self._run, name="tree-query-worker", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    # Runs on the loop thread
    def _deliver(self, message: Dict[str, Any]) -> None:
        request_id = message.get("request_id")
        if request_id is not None:
            with self._lock:
                future = self._pending.pop(request_id, None)
            if future is not None:
                if not future.cancelled():
                    future.set_result(message)
                return

        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(message)
            except Exception:
                logger.error("Status subscriber failed", exc_info=True)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Receive every message that answers no pending request. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def submit(self, message: Mapping[str, Any]) -> Future[Dict[str, Any]]:
        """
        Send a request and return a future for its response.

        A ``request_id`` is assigned when the message has none; any given id is
        sent on as a string. Cancelling the future drops the response when it
        eventually arrives.
        """
        message = dict(message)
        if message.get("request_id") is None:
            message["request_id"] = uuid.uuid4().hex
        request_id = message["request_id"] = str(message["request_id"])

        future: Future[Dict[str, Any]] = Future()
        with self._lock:
            self._pending[request_id] = future
        future.add_done_callback(lambda _: self._forget(request_id))

        asyncio.run_coroutine_threadsafe(self.worker.on_message(message), self._loop)
        return future

    def _forget(self, request_id: str) -> None:
        with self._lock:
            self._pending.pop(request_id, None)

    def post(self, message: Mapping[str, Any]) -> Future[Any]:
        """Send a message without waiting for a response (used for uploads)."""
        return asyncio.run_coroutine_threadsafe(
            self.worker.on_message(dict(message)), self._loop
        )

    def load_dataset(self, dataset: Dataset) -> None:
        self._loop.call_soon_threadsafe(self.worker.load_dataset, dataset)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def stop(self, timeout: float = 5.0) -> None:
        if not self._thread.is_alive():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        logger.debug("Worker loop stopped")
