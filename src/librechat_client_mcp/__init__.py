"""LibreChat client MCP server.

Exposes the LibreChat ``packages/client`` source tree to MCP clients over
stdio, SSE and streamable HTTP without cloning the repository.
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from librechat_client_mcp.errors import (
    InternalError,
    LibreChatMCPError,
    MissingSessionIdError,
    NotDirectoryError,
    NotFoundError,
    RateLimitedError,
    RemoteError,
    SessionError,
    SessionNotFoundError,
    TransientRemoteError,
    UnknownOperationError,
    ValidationError,
)

SERVER_NAME = "librechat-client-mcp"

__all__ = [
    "SERVER_NAME",
    # Errors
    "LibreChatMCPError",
    "ValidationError",
    "UnknownOperationError",
    "NotFoundError",
    "RateLimitedError",
    "RemoteError",
    "NotDirectoryError",
    "TransientRemoteError",
    "SessionError",
    "SessionNotFoundError",
    "MissingSessionIdError",
    "InternalError",
]

try:
    __version__ = _pkg_version("librechat-client-mcp")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
