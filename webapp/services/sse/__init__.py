"""
Server-Sent Events (SSE) support for streaming worker status messages.

Usage:
    from webapp.services.sse import ChannelRegistry, sse_response

    registry = ChannelRegistry()
    channel = registry.create()
    registry.broadcast({"message": "Parsing nodes"})
    return sse_response(channel.stream())
"""

from webapp.services.sse.messages import format_sse_message, sse_response
from webapp.services.sse.channels import StatusChannel, ChannelRegistry

__all__ = [
    "format_sse_message",
    "sse_response",
    "StatusChannel",
    "ChannelRegistry",
]
