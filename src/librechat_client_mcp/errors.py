"""Error types for the LibreChat client MCP server.

Error codes are stable strings for programmatic handling. Every layer raises
one of these classes; upper layers may add context with ``with_context`` but
never change the class, so callers can still tell a missing file from an
exhausted rate limit.
"""

from __future__ import annotations

from typing import Any

RATE_LIMIT_HINT = (
    "Set the GITHUB_PERSONAL_ACCESS_TOKEN environment variable "
    "(or pass --github-api-key) for higher limits."
)


class LibreChatMCPError(Exception):
    """Base error for all server exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def with_context(self, context: str) -> LibreChatMCPError:
        """Return an error of the same class with ``context`` prefixed to the message."""
        enriched = type(self)(message=f"{context}: {self.message}", details=self.details)
        enriched.__cause__ = self
        return enriched

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return {"error": payload}


class ValidationError(LibreChatMCPError):
    """Malformed or missing arguments (400). Never retried."""

    code = "validation_error"
    message = "Validation failed"
    status_code = 400


class UnknownOperationError(ValidationError):
    """Tool, resource or prompt name is not in the catalog."""

    code = "unknown_operation"
    message = "Unknown operation"


class NotFoundError(LibreChatMCPError):
    """Remote path does not exist (404). Never retried."""

    code = "not_found"
    message = "Path not found"
    status_code = 404


class RateLimitedError(LibreChatMCPError):
    """GitHub API quota exhausted (403/429). Never retried."""

    code = "rate_limited"
    message = f"GitHub API rate limit exceeded. {RATE_LIMIT_HINT}"
    status_code = 429


class RemoteError(LibreChatMCPError):
    """Generic failure reported by the remote repository (502)."""

    code = "remote_error"
    message = "GitHub API error"
    status_code = 502


class NotDirectoryError(RemoteError):
    """A directory listing was requested for a file path."""

    code = "not_a_directory"
    message = "Path is not a directory"
    status_code = 400


class TransientRemoteError(RemoteError):
    """5xx response or connection-level fault; eligible for retry.

    Shares ``remote_error`` as its code, so once retries are exhausted it
    surfaces to clients as a plain remote error.
    """

    message = "Transient GitHub API failure"


class SessionError(LibreChatMCPError):
    """Session lookup failed on a multi-session transport."""

    code = "session_error"
    message = "Session error"
    status_code = 400
    jsonrpc_code: int = -32600


class SessionNotFoundError(SessionError):
    """The session id is unknown or already terminated (404)."""

    code = "session_not_found"
    message = "Session not found. The session may have expired."
    status_code = 404
    jsonrpc_code = -32000


class MissingSessionIdError(SessionError):
    """A non-initialization call arrived without a session id (400)."""

    code = "missing_session_id"
    message = "Missing session id. Send an initialize request first."
    status_code = 400
    jsonrpc_code = -32600


class InternalError(LibreChatMCPError):
    """Unexpected fault inside a handler (500).

    The message stays generic; the original exception is logged with its
    stack trace instead of being shown to the client.
    """

    code = "internal_error"
    message = "An internal error occurred"
    status_code = 500


def jsonrpc_error_body(error: SessionError) -> dict[str, Any]:
    """JSON-RPC error envelope for transport-level session failures."""
    return {
        "jsonrpc": "2.0",
        "error": {
            "code": error.jsonrpc_code,
            "message": error.message,
            "data": {"code": error.code},
        },
        "id": None,
    }
