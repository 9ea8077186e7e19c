"""Transport bindings and the session registry they share."""

from librechat_client_mcp.transports.registry import (
    Session,
    SessionRegistry,
    TransportKind,
    new_session_id,
)
from librechat_client_mcp.transports.sse import SSE_SESSION_HEADER, SseBinding
from librechat_client_mcp.transports.stdio import STDIO_SESSION_ID, StdioBinding
from librechat_client_mcp.transports.streamable_http import StreamableHTTPBinding

__all__ = [
    "Session",
    "SessionRegistry",
    "TransportKind",
    "new_session_id",
    "SSE_SESSION_HEADER",
    "SseBinding",
    "STDIO_SESSION_ID",
    "StdioBinding",
    "StreamableHTTPBinding",
]
