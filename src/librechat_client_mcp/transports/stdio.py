"""Pipe transport: one implicit session over stdin/stdout for the process lifetime."""

from __future__ import annotations

from typing import Any

import anyio
import structlog
from mcp.server.stdio import stdio_server

from librechat_client_mcp.dispatcher import RequestDispatcher
from librechat_client_mcp.server import create_server
from librechat_client_mcp.transports.registry import Session, TransportKind

logger = structlog.get_logger()

STDIO_SESSION_ID = "stdio"


class StdioBinding:
    """Runs a single MCP server over the process's standard streams.

    The session has no client-visible id and is not part of the HTTP
    session registry. ``streams`` is an optional ``(stdin, stdout)`` pair of
    async text files handed to ``stdio_server``; the process streams are
    used when it is omitted.
    """

    kind = TransportKind.STDIO

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        streams: tuple[Any, Any] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._streams = streams or (None, None)
        self._session: Session | None = None
        self._log = logger.bind(component="stdio_transport")

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None and not self._session.closed

    async def run(self) -> None:
        """Serve until stdin closes or ``close`` is called."""
        if self._session is not None:
            raise RuntimeError("stdio transport is already running")

        server = create_server(self._dispatcher)
        scope = anyio.CancelScope()
        session = Session(session_id=STDIO_SESSION_ID, kind=self.kind, server=server)
        session.add_closer(scope.cancel)
        self._session = session
        self._log.info("session.opened", transport=self.kind.value)
        try:
            # The scope also covers the stdin reader so close() ends it
            with scope:
                async with stdio_server(*self._streams) as (read_stream, write_stream):
                    session.channel = (read_stream, write_stream)
                    await server.run(
                        read_stream,
                        write_stream,
                        server.create_initialization_options(),
                    )
        finally:
            await session.close()
            self._session = None
            self._log.info("session.closed", transport=self.kind.value)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
