"""Push-stream transport (HTTP + Server-Sent Events).

``GET /sse`` opens a stream and allocates a session; its first event is
``endpoint`` carrying the URL for follow-up messages. ``POST /message``
delivers one JSON-RPC message to the session named by, in order, the
``x-mcp-session-id`` header, the ``sessionId`` query parameter, or a
``sessionId`` field in the body. Closing the stream ends the session.
"""

from __future__ import annotations

import json
from typing import Any

import anyio
import structlog
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError as PydanticValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Receive, Scope, Send

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

SSE_SESSION_HEADER = "x-mcp-session-id"


def resolve_session_id(request: Request, body: Any) -> str | None:
    """Session id from header, then query string, then JSON body."""
    header = request.headers.get(SSE_SESSION_HEADER)
    if header:
        return header
    query = request.query_params.get("sessionId")
    if query:
        return query
    if isinstance(body, dict):
        value = body.get("sessionId")
        if isinstance(value, str) and value:
            return value
    return None


def _session_error(error: SessionError) -> JSONResponse:
    return JSONResponse(jsonrpc_error_body(error), status_code=error.status_code)


class SseBinding:
    """Multi-session SSE transport sharing one registry with other bindings."""

    kind = TransportKind.SSE

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        registry: SessionRegistry,
        *,
        message_path: str = "/message",
        ping_interval: int = 15,
    ) -> None:
        self._dispatcher = dispatcher
        self._registry = registry
        self._message_path = message_path
        self._ping_interval = ping_interval
        self._log = logger.bind(component="sse_transport")

    @property
    def session_count(self) -> int:
        return len(self._registry.ids(self.kind))

    async def handle_stream(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI handler for ``GET /sse``."""
        session_id = new_session_id()
        server = create_server(self._dispatcher, session_id=session_id)

        read_writer, read_stream = anyio.create_memory_object_stream[SessionMessage | Exception](0)
        write_stream, write_reader = anyio.create_memory_object_stream[SessionMessage](0)

        session = Session(
            session_id=session_id,
            kind=self.kind,
            server=server,
            channel=read_writer,
        )

        async def events():
            yield {
                "event": "endpoint",
                "data": f"{self._message_path}?sessionId={session_id}",
            }
            async with write_reader:
                async for session_message in write_reader:
                    yield {
                        "event": "message",
                        "data": session_message.message.model_dump_json(
                            by_alias=True, exclude_none=True
                        ),
                    }

        response = EventSourceResponse(events(), ping=self._ping_interval)

        async def run_server() -> None:
            try:
                async with read_stream, write_stream:
                    await server.run(
                        read_stream,
                        write_stream,
                        server.create_initialization_options(),
                    )
            except Exception:
                self._log.exception("session.server_error", session_id=session_id)
            finally:
                tg.cancel_scope.cancel()

        try:
            async with anyio.create_task_group() as tg:
                session.add_closer(tg.cancel_scope.cancel)
                session.add_closer(read_writer.aclose)
                self._registry.register(session)
                tg.start_soon(run_server)
                await response(scope, receive, send)
                # Client disconnected
                tg.cancel_scope.cancel()
        finally:
            await self._registry.close(session_id)

    async def handle_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI handler for ``POST /message``."""
        request = Request(scope, receive)
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            body = None

        session_id = resolve_session_id(request, body)
        if not session_id:
            response: Response = _session_error(MissingSessionIdError())
            await response(scope, receive, send)
            return

        session = self._registry.get(session_id, self.kind)
        if session is None or session.closed:
            self._log.info("session.unknown", session_id=session_id)
            response = _session_error(SessionNotFoundError())
            await response(scope, receive, send)
            return

        payload = body
        if isinstance(payload, dict):
            payload = {k: v for k, v in payload.items() if k != "sessionId"}
        try:
            message = types.JSONRPCMessage.model_validate(payload)
        except PydanticValidationError as exc:
            self._log.warning("sse.invalid_message", session_id=session_id, error=str(exc))
            response = JSONResponse(
                {
                    "jsonrpc": "2.0",
                    "error": {"code": -32700, "message": "Could not parse message"},
                    "id": None,
                },
                status_code=400,
            )
            await response(scope, receive, send)
            return

        # Accept before forwarding; the reply travels over the event stream
        response = Response("Accepted", status_code=202)
        await response(scope, receive, send)
        try:
            await session.channel.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            self._log.info("session.closed_before_delivery", session_id=session_id)
