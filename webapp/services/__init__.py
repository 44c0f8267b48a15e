"""
Webapp services package.

- logging: Application logging configuration
- sse: Server-Sent Events for streaming worker status messages
"""

from webapp.services.logging import configure_logging
from webapp.services.sse import (
    format_sse_message,
    sse_response,
    ChannelRegistry,
    StatusChannel,
)

__all__ = [
    "configure_logging",
    "format_sse_message",
    "sse_response",
    "ChannelRegistry",
    "StatusChannel",
]
