"""Request/response transport (MCP streamable HTTP).

One ``StreamableHTTPServerTransport`` and one server task per session. An
``initialize`` POST without a session id creates the session and the id is
returned in the ``mcp-session-id`` response header; every later request must
carry it. ``DELETE`` ends the session.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import anyio
import structlog
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from librechat_client_mcp.dispatcher import RequestDispatcher
from librechat_client_mcp.errors import (
    MissingSessionIdError,
    SessionError,
    SessionNotFoundError,
    jsonrpc_error_body,
)
from librechat_client_mcp.server import create_server
from librechat_client_mcp.transports.registry import (
    Session,
    SessionRegistry,
    TransportKind,
    new_session_id,
)

logger = structlog.get_logger()

TransportFactory = Callable[[str], Any]
ServerFactory = Callable[[str], Any]


def is_initialize_request(body: bytes) -> bool:
    """Check whether a POST body is (or contains) an ``initialize`` request."""
    try:
        payload = json.loads(body) if body else None
    except ValueError:
        return False
    messages = payload if isinstance(payload, list) else [payload]
    return any(
        isinstance(message, dict) and message.get("method") == "initialize"
        for message in messages
    )


async def buffer_request_body(receive: Receive) -> tuple[bytes, Receive]:
    """Read the whole request body and return a receive that replays it."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            # Disconnected before the body arrived
            return b"", receive
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    body = b"".join(chunks)
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return body, replay


def _header(scope: Scope, name: str) -> str | None:
    target = name.lower().encode("latin-1")
    for key, value in scope.get("headers", []):
        if key.lower() == target:
            return value.decode("latin-1")
    return None


async def _send_session_error(error: SessionError, scope: Scope, receive: Receive, send: Send) -> None:
    response = JSONResponse(jsonrpc_error_body(error), status_code=error.status_code)
    await response(scope, receive, send)


class StreamableHTTPBinding:
    """Multi-session streamable HTTP transport.

    Usage:
        binding = StreamableHTTPBinding(dispatcher, registry)
        async with binding.run():
            ...  # serve binding.handle_request at /mcp
    """

    kind = TransportKind.STREAMABLE_HTTP

    def __init__(
        self,
        dispatcher: RequestDispatcher | None,
        registry: SessionRegistry,
        *,
        json_response: bool = False,
        transport_factory: TransportFactory | None = None,
        server_factory: ServerFactory | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._registry = registry
        self._json_response = json_response
        self._transport_factory = transport_factory or self._default_transport
        self._server_factory = server_factory or self._default_server
        self._task_group: TaskGroup | None = None
        self._log = logger.bind(component="streamable_http_transport")

    def _default_transport(self, session_id: str) -> StreamableHTTPServerTransport:
        return StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self._json_response,
        )

    def _default_server(self, session_id: str) -> Any:
        if self._dispatcher is None:
            raise RuntimeError("a dispatcher or server_factory is required")
        return create_server(self._dispatcher, session_id=session_id)

    @property
    def running(self) -> bool:
        return self._task_group is not None

    @property
    def session_count(self) -> int:
        return len(self._registry.ids(self.kind))

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Own the task group that hosts per-session server tasks."""
        if self._task_group is not None:
            raise RuntimeError("streamable HTTP transport is already running")
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            self._log.info("streamable_http.started")
            try:
                yield
            finally:
                closed = await self._registry.close_all(self.kind)
                self._task_group = None
                tg.cancel_scope.cancel()
                self._log.info("streamable_http.stopped", sessions_closed=closed)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI handler for ``/mcp`` (POST, GET, DELETE)."""
        if self._task_group is None:
            response = JSONResponse(
                {"error": "MCP transport not running"},
                status_code=503,
            )
            await response(scope, receive, send)
            return

        method = scope.get("method", "GET").upper()
        session_id = _header(scope, MCP_SESSION_ID_HEADER)

        if session_id:
            session = self._registry.get(session_id, self.kind)
            if session is None or session.closed:
                self._log.info("session.unknown", session_id=session_id, method=method)
                await _send_session_error(SessionNotFoundError(), scope, receive, send)
                return
            with structlog.contextvars.bound_contextvars(session_id=session_id):
                await session.channel.handle_request(scope, receive, send)
                if method == "DELETE":
                    await self._registry.close(session_id)
            return

        if method != "POST":
            await _send_session_error(MissingSessionIdError(), scope, receive, send)
            return

        body, replay = await buffer_request_body(receive)
        if not is_initialize_request(body):
            await _send_session_error(MissingSessionIdError(), scope, receive, send)
            return

        session = await self._open_session()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        with structlog.contextvars.bound_contextvars(session_id=session.session_id):
            try:
                await session.channel.handle_request(scope, replay, send_wrapper)
            finally:
                if not 200 <= status_code < 300:
                    self._log.info("session.initialize_rejected", status=status_code)
                    with anyio.CancelScope(shield=True):
                        await self._registry.close(session.session_id)

    async def _open_session(self) -> Session:
        if self._task_group is None:
            raise RuntimeError("streamable HTTP transport is not running")
        session_id = new_session_id()
        transport = self._transport_factory(session_id)
        server = self._server_factory(session_id)
        session = Session(
            session_id=session_id,
            kind=self.kind,
            server=server,
            channel=transport,
        )
        self._registry.register(session)
        await self._task_group.start(self._run_session, session)
        return session

    async def _run_session(
        self,
        session: Session,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        scope = anyio.CancelScope()
        session.add_closer(scope.cancel)
        session.add_closer(session.channel.terminate)
        try:
            with scope:
                async with session.channel.connect() as (read_stream, write_stream):
                    task_status.started()
                    await session.server.run(
                        read_stream,
                        write_stream,
                        session.server.create_initialization_options(),
                        stateless=False,
                    )
        except Exception:
            self._log.exception("session.server_error", session_id=session.session_id)
        finally:
            with anyio.CancelScope(shield=True):
                await self._registry.close(session.session_id)
