"""
SSE message formatting utilities.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

from flask import Response

from treeworker.io import dumps


def format_sse_message(
    data: Any,
    event: Optional[str] = None,
    event_id: Optional[str] = None,
) -> str:
    """
    Format data as an SSE message.

    Args:
        data: The data to send (JSON-encoded unless already a string).
        event: Optional event type (e.g. 'status').
        event_id: Optional event ID for client reconnection.

    Example:
        >>> format_sse_message({'message': 'Parsing nodes'}, event='status')
        'event: status\\ndata: {"message": "Parsing nodes"}\\n\\n'
    """
    lines = []

    if event_id is not None:
        lines.append(f"id: {event_id}")

    if event is not None:
        lines.append(f"event: {event}")

    payload = data if isinstance(data, str) else dumps(data)

    # Every line of data needs its own "data: " prefix
    for line in payload.split("\n"):
        lines.append(f"data: {line}")

    return "\n".join(lines) + "\n\n"


def sse_response(
    generator: Iterator[str],
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Wrap an iterator of SSE-formatted messages in a streaming Flask Response."""
    # "Connection" is hop-by-hop and left to the WSGI server
    default_headers = {
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "X-Accel-Buffering": "no",
    }

    if headers:
        default_headers.update(headers)

    return Response(
        generator,
        mimetype="text/event-stream",
        headers=default_headers,
    )
