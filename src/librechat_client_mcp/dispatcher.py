"""Request dispatcher.

Maps tool, resource and prompt requests onto ``SourceRepository`` and the
static catalog. Every tool call goes through the same pipeline:

    received -> validated -> executed -> responded

Arguments are validated before any remote call. Results are normalized to
text content; failures are logged with the tool name and arguments and
re-raised as LibreChatMCPError with the tool's context prefixed.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from mcp.types import GetPromptResult, Prompt, Resource, ResourceTemplate, TextContent, Tool
from pydantic import BaseModel

from librechat_client_mcp import catalog
from librechat_client_mcp.arguments import ToolArguments, validate_arguments
from librechat_client_mcp.config import RepositoryConfig
from librechat_client_mcp.errors import InternalError, LibreChatMCPError
from librechat_client_mcp.repository import SourceRepository
from librechat_client_mcp.tool_defs import get_tool_definitions

logger = structlog.get_logger()

ToolHandler = Callable[[Any], Awaitable[Any]]

# Prefixed to error messages so the client can tell which step failed
TOOL_ERROR_CONTEXT: dict[str, str] = {
    "get_source_file": "Failed to get source file",
    "get_source_files": "Failed to batch fetch files",
    "list_files": "Failed to list files",
    "get_directory_structure": "Failed to get directory structure",
    "search_code": "Failed to search code",
    "get_hook": "Failed to get hook",
    "list_hooks": "Failed to list hooks",
    "get_component": "Failed to get component",
    "list_components": "Failed to list components",
    "get_provider": "Failed to get provider",
    "list_providers": "Failed to list providers",
    "get_util": "Failed to get util",
    "list_utils": "Failed to list utils",
    "get_package_info": "Failed to get package info",
    "get_store": "Failed to get store",
    "get_index": "Failed to get index",
    "get_rate_limit": "Failed to get rate limit info",
    "clear_cache": "Failed to clear cache",
}


def to_text(result: Any) -> str:
    """Render a handler result: strings as is, everything else as JSON."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        result = result.model_dump(mode="json", exclude_none=True)
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def to_content(result: Any) -> list[TextContent]:
    return [TextContent(type="text", text=to_text(result))]


class RequestDispatcher:
    """Routes protocol requests to handlers. Shared by all sessions."""

    def __init__(
        self,
        repository: SourceRepository,
        repository_config: RepositoryConfig | None = None,
    ) -> None:
        self._repository = repository
        self._repository_config = repository_config or repository.client.repository
        self._tools = get_tool_definitions()
        self._log = logger.bind(component="dispatcher")

        repo = repository
        self._handlers: dict[str, ToolHandler] = {
            "get_source_file": lambda a: repo.get_source_file(a.file_path),
            "get_source_files": lambda a: repo.get_source_files(a.file_paths),
            "list_files": lambda a: repo.list_files(a.directory),
            "get_directory_structure": lambda a: repo.get_directory_structure(a.path),
            "search_code": lambda a: repo.search_code(a.query, a.extension),
            "get_hook": lambda a: repo.get_hook(a.hook_name),
            "list_hooks": lambda a: repo.list_hooks(),
            "get_component": lambda a: repo.get_component(a.component_path),
            "list_components": lambda a: repo.list_components(a.subdir),
            "get_provider": lambda a: repo.get_provider(a.provider_name),
            "list_providers": lambda a: repo.list_providers(),
            "get_util": lambda a: repo.get_util(a.util_name),
            "list_utils": lambda a: repo.list_utils(),
            "get_package_info": lambda a: repo.get_package_info(),
            "get_store": lambda a: repo.get_store(),
            "get_index": lambda a: repo.get_index(),
            "get_rate_limit": lambda a: repo.rate_limit_status(),
            "clear_cache": self._clear_cache,
        }

    async def _clear_cache(self, args: Any) -> dict[str, Any]:
        return self._repository.clear_cache(args.prefix)

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self._tools]

    # ---------------------------------------------------------------------
    # Tools
    # ---------------------------------------------------------------------

    def list_tools(self) -> list[Tool]:
        return list(self._tools)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Validate, execute and normalize one tool call.

        Raises:
            UnknownOperationError: Unknown tool name
            ValidationError: Bad arguments; no remote call was made
            LibreChatMCPError: Handler failure, message prefixed with context
            InternalError: Unexpected fault, details only in the log
        """
        try:
            args: ToolArguments = validate_arguments(name, arguments)
        except LibreChatMCPError as exc:
            self._log.warning(
                "tool.rejected",
                tool=name,
                arguments=arguments,
                error_code=exc.code,
                error=exc.message,
            )
            raise

        handler = self._handlers[name]
        context = TOOL_ERROR_CONTEXT.get(name, f"Failed to run {name}")
        self._log.debug("tool.call", tool=name, arguments=arguments)
        try:
            result = await handler(args)
        except LibreChatMCPError as exc:
            self._log.error(
                "tool.failed",
                tool=name,
                arguments=arguments,
                error_code=exc.code,
                error=exc.message,
            )
            raise exc.with_context(context) from exc
        except Exception as exc:
            self._log.exception("tool.unexpected_error", tool=name, arguments=arguments)
            raise InternalError(f"{context}: {InternalError.message}") from exc

        return to_content(result)

    # ---------------------------------------------------------------------
    # Resources
    # ---------------------------------------------------------------------

    def list_resources(self) -> list[Resource]:
        return catalog.get_resource_definitions()

    def list_resource_templates(self) -> list[ResourceTemplate]:
        return catalog.get_resource_template_definitions()

    def read_resource(self, uri: str) -> tuple[str, str]:
        """Return (content, mime type) for a resource URI."""
        uri = uri.rstrip("/")
        try:
            return catalog.read_catalog_resource(
                uri,
                self._repository.paths,
                self._repository_config,
            )
        except LibreChatMCPError as exc:
            self._log.warning("resource.failed", uri=uri, error_code=exc.code)
            raise

    # ---------------------------------------------------------------------
    # Prompts
    # ---------------------------------------------------------------------

    def list_prompts(self) -> list[Prompt]:
        return catalog.get_prompt_definitions()

    def get_prompt(self, name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        try:
            return catalog.render_prompt(name, arguments)
        except LibreChatMCPError as exc:
            self._log.warning("prompt.failed", prompt=name, error_code=exc.code)
            raise
