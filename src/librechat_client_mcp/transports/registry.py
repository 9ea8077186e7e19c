"""Session registry shared by the multi-session transports.

A session owns one MCP ``Server`` instance and one message channel. The
registry maps session ids to sessions; bindings insert on connect and remove
on teardown. Teardown is idempotent: closing an unknown or already closed
session is a no-op.
"""

from __future__ import annotations

import inspect
import uuid
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from librechat_client_mcp.errors import SessionNotFoundError

logger = structlog.get_logger()

Closer = Callable[[], "Awaitable[None] | None"]


class TransportKind(str, Enum):
    """Transport binding carrying a session."""

    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable_http"


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class Session:
    """One client connection: its server instance and message channel."""

    session_id: str
    kind: TransportKind
    server: Any
    channel: Any = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _closers: list[Closer] = field(default_factory=list, repr=False)
    _closed: bool = field(default=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def add_closer(self, closer: Closer) -> None:
        """Register a teardown step; steps run in reverse order on close."""
        self._closers.append(closer)

    async def close(self) -> bool:
        """Release the channel and server. Returns False if already closed."""
        if self._closed:
            return False
        self._closed = True
        for closer in reversed(self._closers):
            try:
                result = closer()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "session.close_step_failed",
                    session_id=self.session_id,
                    transport=self.kind.value,
                )
        self._closers.clear()
        return True

    def describe(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "transport": self.kind.value,
            "createdAt": self.created_at.isoformat(),
        }


class SessionRegistry:
    """Active sessions by id.

    Mutated only from the event loop; a session is removed before its
    teardown awaits, so a concurrent second close finds nothing to do.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._log = logger.bind(component="session_registry")

    def register(self, session: Session) -> None:
        if session.session_id in self._sessions:
            raise ValueError(f"session {session.session_id} is already registered")
        self._sessions[session.session_id] = session
        self._log.info(
            "session.opened",
            session_id=session.session_id,
            transport=session.kind.value,
            active=len(self._sessions),
        )

    def get(self, session_id: str, kind: TransportKind | None = None) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None or (kind is not None and session.kind is not kind):
            return None
        return session

    def require(self, session_id: str, kind: TransportKind | None = None) -> Session:
        """Like ``get`` but raises SessionNotFoundError."""
        session = self.get(session_id, kind)
        if session is None:
            raise SessionNotFoundError(details={"session_id": session_id})
        return session

    def discard(self, session_id: str) -> Session | None:
        """Remove without closing. No-op for unknown ids."""
        return self._sessions.pop(session_id, None)

    async def close(self, session_id: str) -> bool:
        """Remove and close a session. Returns False for unknown ids."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        self._log.info(
            "session.closed",
            session_id=session_id,
            transport=session.kind.value,
            active=len(self._sessions),
        )
        return True

    async def close_all(self, kind: TransportKind | None = None) -> int:
        """Close every session (of ``kind``). Errors are logged, not raised."""
        closed = 0
        for session_id in self.ids(kind):
            try:
                if await self.close(session_id):
                    closed += 1
            except Exception:
                self._log.exception("session.close_failed", session_id=session_id)
        return closed

    def ids(self, kind: TransportKind | None = None) -> list[str]:
        return [s.session_id for s in self.sessions(kind)]

    def sessions(self, kind: TransportKind | None = None) -> list[Session]:
        return [s for s in self._sessions.values() if kind is None or s.kind is kind]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))
