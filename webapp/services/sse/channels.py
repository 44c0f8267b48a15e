"""
Status channels for SSE streaming.

The worker publishes ``status`` messages (ingestion progress and errors) from
its own thread; each connected SSE client reads them from its own channel.
"""

from __future__ import annotations

import queue
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Tuple

from webapp.services.sse.messages import format_sse_message

# (event_name, data), or None to end the stream
_QueueItem = Tuple[str, Any] | None


@dataclass
class StatusChannel:
    """A thread-safe queue of events feeding one SSE stream."""

    channel_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    _queue: queue.Queue[_QueueItem] = field(default_factory=queue.Queue)
    _closed: bool = field(default=False)

    def send(self, data: Any, event: str = "status") -> None:
        if not self._closed:
            self._queue.put((event, data))

    def close(self) -> None:
        self._closed = True
        self._queue.put(None)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def stream(self, timeout: float = 15.0) -> Generator[str, None, None]:
        """
        Yield SSE messages as they arrive, with a keepalive comment after
        ``timeout`` seconds of silence. Ends when the channel is closed.
        """
        while True:
            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                if self._closed:
                    break
                yield ": keepalive\n\n"
                continue
            if item is None:
                break
            event, data = item
            yield format_sse_message(data, event=event)


class ChannelRegistry:
    """Thread-safe set of open status channels."""

    def __init__(self) -> None:
        self._channels: Dict[str, StatusChannel] = {}
        self._lock = threading.Lock()

    def create(self) -> StatusChannel:
        channel = StatusChannel()
        with self._lock:
            self._channels[channel.channel_id] = channel
        return channel

    def remove(self, channel_id: str) -> None:
        with self._lock:
            channel = self._channels.pop(channel_id, None)
        if channel is not None:
            channel.close()

    def broadcast(self, data: Any, event: str = "status") -> int:
        """Send to every open channel. Returns the number of channels reached."""
        with self._lock:
            open_channels = [ch for ch in self._channels.values() if not ch.is_closed]
        for channel in open_channels:
            channel.send(data, event=event)
        return len(open_channels)
