"""MCP server factory.

Each session gets its own low-level ``Server`` instance; all of them share
one ``RequestDispatcher`` (and through it the cache and rate limit state).
"""

from __future__ import annotations

from typing import Any

import structlog
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import GetPromptResult, Prompt, Resource, ResourceTemplate, TextContent, Tool
from pydantic import AnyUrl

from librechat_client_mcp import SERVER_NAME, __version__
from librechat_client_mcp.dispatcher import RequestDispatcher

INSTRUCTIONS = (
    "Read-only access to the LibreChat Client package (packages/client in "
    "danny-avila/LibreChat). Start with get_index or the resource:get_package_structure "
    "resource, then use the list_* and get_* tools."
)


def create_server(dispatcher: RequestDispatcher, *, session_id: str | None = None) -> Server:
    """Build a Server with every handler bound to ``dispatcher``.

    ``session_id`` is bound into the structlog context while a request of
    this session is handled.
    """
    server: Server = Server(SERVER_NAME, version=__version__, instructions=INSTRUCTIONS)
    log_context = {"session_id": session_id} if session_id else {}

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return dispatcher.list_tools()

    # Arguments are validated by the dispatcher so clients get its messages
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        with structlog.contextvars.bound_contextvars(**log_context):
            return await dispatcher.call_tool(name, arguments)

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return dispatcher.list_resources()

    @server.list_resource_templates()
    async def list_resource_templates() -> list[ResourceTemplate]:
        return dispatcher.list_resource_templates()

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        with structlog.contextvars.bound_contextvars(**log_context):
            content, mime_type = dispatcher.read_resource(str(uri))
        return [ReadResourceContents(content=content, mime_type=mime_type)]

    @server.list_prompts()
    async def list_prompts() -> list[Prompt]:
        return dispatcher.list_prompts()

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        with structlog.contextvars.bound_contextvars(**log_context):
            return dispatcher.get_prompt(name, arguments)

    return server
