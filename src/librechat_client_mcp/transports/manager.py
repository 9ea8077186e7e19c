"""Wires settings to components and runs the configured transport mode."""

from __future__ import annotations

import signal
import sys
from collections.abc import Callable

import anyio
import structlog
import uvicorn
from anyio.abc import TaskStatus
from fastapi import FastAPI

from librechat_client_mcp.app import create_app
from librechat_client_mcp.cache import TTLCache
from librechat_client_mcp.config import Settings, TransportMode
from librechat_client_mcp.dispatcher import RequestDispatcher
from librechat_client_mcp.github import GitHubClient
from librechat_client_mcp.repository import SourceRepository
from librechat_client_mcp.retry import RetryPolicy
from librechat_client_mcp.transports.registry import SessionRegistry
from librechat_client_mcp.transports.sse import SseBinding
from librechat_client_mcp.transports.stdio import StdioBinding
from librechat_client_mcp.transports.streamable_http import StreamableHTTPBinding

logger = structlog.get_logger()

UNAUTHENTICATED_LIMIT = 60


class TransportManager:
    """Owns the shared components and the bindings for one process run.

    Usage:
        manager = TransportManager(settings)
        await manager.run()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: GitHubClient | None = None,
        stdin_is_tty: Callable[[], bool] | None = None,
    ) -> None:
        self.settings = settings
        self.client = client or GitHubClient(settings.repository, token=settings.github_token)
        self.cache = TTLCache(settings.cache.ttl_seconds, settings.cache.max_entries)
        self.repository = SourceRepository(
            self.client,
            self.cache,
            RetryPolicy.from_config(settings.retry),
            tree_max_depth=settings.tree_max_depth,
        )
        self.dispatcher = RequestDispatcher(self.repository, settings.repository)
        self.registry = SessionRegistry()

        mode = settings.mode
        self.stdio = StdioBinding(self.dispatcher)
        self.sse = SseBinding(self.dispatcher, self.registry) if mode is TransportMode.SSE else None
        self.streamable = (
            StreamableHTTPBinding(self.dispatcher, self.registry)
            if mode in (TransportMode.HTTP, TransportMode.DUAL)
            else None
        )
        self._stdin_is_tty = stdin_is_tty or sys.stdin.isatty
        self._shutdown_done = False
        self._log = logger.bind(component="transport_manager", mode=mode.value)

    def create_app(self) -> FastAPI:
        return create_app(
            self.registry,
            transport=self.settings.mode.value,
            sse=self.sse,
            streamable=self.streamable,
            stdio=self.stdio,
            allowed_origins=self.settings.allowed_origins,
        )

    async def run(self) -> None:
        """Serve until the transport ends or a termination signal arrives."""
        if not self.settings.github_token:
            self._log.warning(
                "github.unauthenticated",
                limit_per_hour=UNAUTHENTICATED_LIMIT,
                hint="Set GITHUB_PERSONAL_ACCESS_TOKEN or pass --github-api-key",
            )
        self._log.info("server.starting", repository=self.client.repository.name)

        async with self.client:
            try:
                mode = self.settings.mode
                if mode is TransportMode.STDIO:
                    await self._run_stdio()
                elif mode is TransportMode.DUAL:
                    await self._run_dual()
                else:
                    await self._serve_http()
            finally:
                with anyio.CancelScope(shield=True):
                    await self.shutdown()

    async def _run_stdio(self) -> None:
        async with anyio.create_task_group() as tg:
            await tg.start(self._watch_signals, tg.cancel_scope)
            await self.stdio.run()
            tg.cancel_scope.cancel()

    async def _run_dual(self) -> None:
        if self._stdin_is_tty():
            self._log.warning(
                "stdio.skipped",
                reason="stdin is a terminal; serving HTTP only",
            )
            await self._serve_http()
            return

        async with anyio.create_task_group() as tg:
            tg.start_soon(self._run_stdio_alongside)
            await self._serve_http()
            tg.cancel_scope.cancel()

    async def _run_stdio_alongside(self) -> None:
        await self.stdio.run()
        self._log.info("stdio.ended", reason="stdin closed; HTTP keeps serving")

    async def _serve_http(self) -> None:
        config = uvicorn.Config(
            self.create_app(),
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
        )
        server = uvicorn.Server(config)
        self._log.info("http.listening", host=self.settings.host, port=self.settings.port)
        await server.serve()

    async def _watch_signals(
        self,
        scope: anyio.CancelScope,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            task_status.started()
            async for signum in signals:
                self._log.info("server.signal", signal=signal.Signals(signum).name)
                await self.shutdown()
                self._redeliver(signum)
                scope.cancel()
                return

    def _redeliver(self, signum: int) -> None:
        """Terminate with the default disposition of ``signum``.

        The stdin reader blocks in a worker thread that cancellation cannot
        interrupt, so the process would otherwise wait for stdin EOF.
        """
        signal.signal(signum, signal.SIG_DFL)
        signal.raise_signal(signum)

    async def shutdown(self) -> int:
        """Close every session of every binding. Safe to call more than once."""
        if self._shutdown_done:
            return 0
        self._shutdown_done = True
        closed = await self.registry.close_all()
        if self.stdio.active:
            await self.stdio.close()
            closed += 1
        self._log.info("server.shutdown", sessions_closed=closed)
        return closed
