"""HTTP application for the SSE and streamable HTTP bindings."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.routing import Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from librechat_client_mcp import SERVER_NAME, __version__
from librechat_client_mcp.errors import LibreChatMCPError
from librechat_client_mcp.transports.registry import SessionRegistry, TransportKind
from librechat_client_mcp.transports.sse import SSE_SESSION_HEADER, SseBinding
from librechat_client_mcp.transports.stdio import StdioBinding
from librechat_client_mcp.transports.streamable_http import StreamableHTTPBinding

logger = structlog.get_logger()

ASGIHandler = Callable[[Scope, Receive, Send], Awaitable[None]]


class ASGIEndpoint:
    """Wraps a bound ASGI handler so Starlette routes it as a raw ASGI app."""

    def __init__(self, handler: ASGIHandler) -> None:
        self._handler = handler

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._handler(scope, receive, send)


class AccessLogMiddleware:
    """Logs method, path, status and duration of each HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "http.request",
                method=scope.get("method"),
                path=scope.get("path"),
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )


def create_app(
    registry: SessionRegistry,
    *,
    transport: str,
    sse: SseBinding | None = None,
    streamable: StreamableHTTPBinding | None = None,
    stdio: StdioBinding | None = None,
    allowed_origins: list[str] | None = None,
) -> FastAPI:
    """Create the FastAPI application for the configured bindings.

    Args:
        registry: Session registry shared by the bindings.
        transport: Mode name reported by ``/health``.
        sse: Mounts ``GET /sse`` and ``POST /message`` when given.
        streamable: Mounts ``/mcp`` and runs its task group for the app's
            lifetime when given.
        stdio: Counted in ``activeConnections`` when it is running alongside.
        allowed_origins: CORS origins; ``["*"]`` allows any.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("http.startup", transport=transport, version=__version__)
        async with AsyncExitStack() as stack:
            if streamable is not None:
                await stack.enter_async_context(streamable.run())
            yield
            logger.info("http.shutdown")
            if sse is not None:
                await registry.close_all(TransportKind.SSE)

    app = FastAPI(
        title="LibreChat Client MCP",
        description="MCP access to the LibreChat client package",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[MCP_SESSION_ID_HEADER, SSE_SESSION_HEADER],
    )
    app.add_middleware(AccessLogMiddleware)

    @app.exception_handler(LibreChatMCPError)
    async def librechat_error_handler(request: Request, exc: LibreChatMCPError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    def active_connections() -> int:
        count = len(registry)
        if stdio is not None and stdio.active:
            count += 1
        return count

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "activeConnections": active_connections(),
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "transport": transport,
        }

    @app.get("/connections")
    async def connections() -> dict[str, Any]:
        """Active sessions of every binding."""
        sessions = [session.describe() for session in registry]
        if stdio is not None and stdio.session is not None and stdio.active:
            sessions.append(stdio.session.describe())
        return {"total": len(sessions), "connections": sessions}

    if streamable is not None:
        app.router.routes.append(
            Route(
                "/mcp",
                endpoint=ASGIEndpoint(streamable.handle_request),
                methods=["GET", "POST", "DELETE"],
            )
        )
    if sse is not None:
        app.router.routes.append(
            Route("/sse", endpoint=ASGIEndpoint(sse.handle_stream), methods=["GET"])
        )
        app.router.routes.append(
            Route("/message", endpoint=ASGIEndpoint(sse.handle_message), methods=["POST"])
        )

    return app
