"""Tool argument models.

Arguments arrive as untyped JSON objects. Each tool has a pydantic model
that enforces required fields and length bounds; unknown keys are dropped.
Validation happens before any remote call is made.
"""

from __future__ import annotations

from typing import Annotated, Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from librechat_client_mcp.errors import UnknownOperationError, ValidationError

RepositoryPath = Annotated[str, StringConstraints(min_length=1, max_length=500)]


class ToolArguments(BaseModel):
    """Base for argument models: camelCase on the wire, extras ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class NoArguments(ToolArguments):
    pass


class SourceFileArguments(ToolArguments):
    file_path: str = Field(alias="filePath", min_length=1, max_length=500)


class SourceFilesArguments(ToolArguments):
    file_paths: list[RepositoryPath] = Field(alias="filePaths", min_length=1, max_length=20)


class ListFilesArguments(ToolArguments):
    directory: str | None = Field(default=None, max_length=500)


class DirectoryStructureArguments(ToolArguments):
    path: str | None = Field(default=None, max_length=500)


class SearchCodeArguments(ToolArguments):
    query: str = Field(min_length=1, max_length=500)
    extension: str | None = Field(default=None, max_length=20)


class HookArguments(ToolArguments):
    hook_name: str = Field(alias="hookName", min_length=1, max_length=200)


class ComponentArguments(ToolArguments):
    component_path: str = Field(alias="componentPath", min_length=1, max_length=300)


class ListComponentsArguments(ToolArguments):
    subdir: str | None = Field(default=None, max_length=200)


class ProviderArguments(ToolArguments):
    provider_name: str = Field(alias="providerName", min_length=1, max_length=200)


class UtilArguments(ToolArguments):
    util_name: str = Field(alias="utilName", min_length=1, max_length=200)


class ClearCacheArguments(ToolArguments):
    prefix: str | None = Field(default=None, max_length=100)


TOOL_ARGUMENTS: dict[str, type[ToolArguments]] = {
    "get_source_file": SourceFileArguments,
    "get_source_files": SourceFilesArguments,
    "list_files": ListFilesArguments,
    "get_directory_structure": DirectoryStructureArguments,
    "search_code": SearchCodeArguments,
    "get_hook": HookArguments,
    "list_hooks": NoArguments,
    "get_component": ComponentArguments,
    "list_components": ListComponentsArguments,
    "get_provider": ProviderArguments,
    "list_providers": NoArguments,
    "get_util": UtilArguments,
    "list_utils": NoArguments,
    "get_package_info": NoArguments,
    "get_store": NoArguments,
    "get_index": NoArguments,
    "get_rate_limit": NoArguments,
    "clear_cache": ClearCacheArguments,
}


def _format_errors(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return ", ".join(parts)


def validate_arguments(tool_name: str, arguments: dict[str, Any] | None) -> ToolArguments:
    """Validate raw tool arguments against the tool's model.

    Raises:
        UnknownOperationError: No such tool
        ValidationError: Missing or malformed arguments
    """
    model = TOOL_ARGUMENTS.get(tool_name)
    if model is None:
        raise UnknownOperationError(f"Unknown tool: {tool_name}")
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise ValidationError("Validation failed: arguments must be an object")
    try:
        return model.model_validate(arguments)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Validation failed: {_format_errors(exc)}",
            details={"tool": tool_name},
        ) from exc
