"""MCP tool schema definitions."""

from __future__ import annotations

from mcp.types import Tool


def get_tool_definitions() -> list[Tool]:
    """Return all MCP tool definitions with their JSON schemas."""
    return [
        Tool(
            name="get_source_file",
            description="Get the source code for any file in the LibreChat monorepo. Use the full repository path, e.g. 'packages/client/src/index.ts'.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filePath": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 500,
                        "description": "Path to the source file within the repository (e.g., 'packages/client/package.json').",
                    },
                },
                "required": ["filePath"],
            },
        ),
        Tool(
            name="get_source_files",
            description="Fetch up to 20 files in one call. A missing file is reported per path instead of failing the whole batch.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filePaths": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 1, "maxLength": 500},
                        "minItems": 1,
                        "maxItems": 20,
                        "description": "Repository paths to fetch (e.g., ['packages/client/src/hooks/index.ts', 'packages/client/src/utils/cn.ts']).",
                    },
                },
                "required": ["filePaths"],
            },
        ),
        Tool(
            name="list_files",
            description="List files in a directory within the LibreChat monorepo. Defaults to packages/client.",
            inputSchema={
                "type": "object",
                "properties": {
                    "directory": {
                        "type": "string",
                        "maxLength": 500,
                        "description": "Directory path within the repository. Defaults to the client package root.",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="get_directory_structure",
            description="Get the directory tree of the LibreChat Client package. Deep directories are marked as truncated; unreadable ones carry an error marker.",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "maxLength": 500,
                        "description": "Root path of the tree. Defaults to the client package root.",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="search_code",
            description="Search code in the LibreChat Client package using GitHub code search.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 500,
                        "description": "Search query (e.g., 'useEffect', 'interface ChatMessage').",
                    },
                    "extension": {
                        "type": "string",
                        "maxLength": 20,
                        "description": "Optional file extension filter (e.g., 'ts', 'tsx', 'json').",
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="get_hook",
            description="Get the source code of a React hook from src/hooks/. Tries .ts before .tsx when no extension is given.",
            inputSchema={
                "type": "object",
                "properties": {
                    "hookName": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 200,
                        "description": "Hook file name (e.g., 'useConversation', 'index'). Extension is optional.",
                    },
                },
                "required": ["hookName"],
            },
        ),
        Tool(
            name="list_hooks",
            description="List all React hooks in the LibreChat Client package.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_component",
            description="Get the source code of a React component. Supports nested paths like 'Chat/Input' or 'ui/Button'. Tries .tsx before .ts.",
            inputSchema={
                "type": "object",
                "properties": {
                    "componentPath": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 300,
                        "description": "Path within src/components/ (e.g., 'Chat/Input', 'Nav/index'). Extension is optional.",
                    },
                },
                "required": ["componentPath"],
            },
        ),
        Tool(
            name="list_components",
            description="List component files and directories. Use subdir to explore nested component folders.",
            inputSchema={
                "type": "object",
                "properties": {
                    "subdir": {
                        "type": "string",
                        "maxLength": 200,
                        "description": "Subdirectory within src/components/ (e.g., 'Chat', 'ui'). Omit to list the root.",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="get_provider",
            description="Get the source code of a React context provider from src/Providers/. Tries .tsx before .ts.",
            inputSchema={
                "type": "object",
                "properties": {
                    "providerName": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 200,
                        "description": "Provider file name (e.g., 'AuthContext', 'index'). Extension is optional.",
                    },
                },
                "required": ["providerName"],
            },
        ),
        Tool(
            name="list_providers",
            description="List all context providers in the LibreChat Client package.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_util",
            description="Get the source code of a utility module from src/utils/. Tries .ts before .tsx.",
            inputSchema={
                "type": "object",
                "properties": {
                    "utilName": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 200,
                        "description": "Utility file name (e.g., 'cn', 'api'). Extension is optional.",
                    },
                },
                "required": ["utilName"],
            },
        ),
        Tool(
            name="list_utils",
            description="List all utility files in the LibreChat Client package.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_package_info",
            description="Get the package.json of the LibreChat Client package, including dependencies and exports.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_store",
            description="Get src/store.ts containing the state management configuration.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_index",
            description="Get the src/index.ts entry point showing all package exports.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_rate_limit",
            description="Show the GitHub API rate limit: values tracked from recent responses plus a live query.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="clear_cache",
            description="Clear cached GitHub responses, either all of them or those whose key starts with a prefix.",
            inputSchema={
                "type": "object",
                "properties": {
                    "prefix": {
                        "type": "string",
                        "maxLength": 100,
                        "description": "Cache key prefix to clear: 'file:' for files, 'dir:' for directory listings, 'search:' for searches. Omit to clear everything.",
                    },
                },
                "required": [],
            },
        ),
    ]
