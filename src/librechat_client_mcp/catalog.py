"""Static resources and prompts.

Resources describe the LibreChat client package layout; prompts are canned
exploration guides that point the assistant at the right tools.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    ResourceTemplate,
    TextContent,
)

from librechat_client_mcp.config import RepositoryConfig
from librechat_client_mcp.errors import UnknownOperationError, ValidationError
from librechat_client_mcp.repository import ClientPaths

MODULES_URI = "resource:get_modules"
PACKAGE_STRUCTURE_URI = "resource:get_package_structure"
INSTALLATION_GUIDE_URI = "resource-template:get_installation_guide"


def get_resource_definitions() -> list[Resource]:
    return [
        Resource(
            uri=MODULES_URI,
            name="get_modules",
            description="All modules of the LibreChat Client package with descriptions and paths",
            mimeType="application/json",
        ),
        Resource(
            uri=PACKAGE_STRUCTURE_URI,
            name="get_package_structure",
            description="Overview of the LibreChat Client package structure and organization",
            mimeType="text/plain",
        ),
    ]


def get_resource_template_definitions() -> list[ResourceTemplate]:
    return [
        ResourceTemplate(
            uriTemplate=INSTALLATION_GUIDE_URI,
            name="get_installation_guide",
            description="How the LibreChat Client package is laid out and how to explore it",
            mimeType="text/plain",
        ),
    ]


def module_map(paths: ClientPaths) -> dict[str, dict[str, Any]]:
    """Module name -> path, description and typical members."""
    return {
        "hooks": {
            "path": paths.hooks,
            "description": "Custom React hooks for state management, API calls, and UI interactions",
            "examples": ["useConversation", "useAuth", "useMessages", "useChat"],
        },
        "components": {
            "path": paths.components,
            "description": "Reusable React UI components organized by feature",
            "examples": ["Chat", "Nav", "ui", "Messages", "Input"],
        },
        "Providers": {
            "path": paths.providers,
            "description": "React Context providers for global state and configuration",
            "examples": ["AuthContext", "ChatContext", "ThemeProvider"],
        },
        "utils": {
            "path": paths.utils,
            "description": "Utility functions and helper methods",
            "examples": ["cn", "api", "format", "validation"],
        },
        "common": {
            "path": paths.common,
            "description": "Shared constants, types, and common utilities",
            "examples": ["constants", "types", "enums"],
        },
        "theme": {
            "path": paths.theme,
            "description": "Theme configuration, colors, and styling utilities",
            "examples": ["colors", "tokens", "variants"],
        },
        "locales": {
            "path": paths.locales,
            "description": "Internationalization files and translation strings",
            "examples": ["en", "es", "fr", "de"],
        },
        "svgs": {
            "path": paths.svgs,
            "description": "SVG icons and graphic assets",
            "examples": ["icons", "logos", "illustrations"],
        },
        "store": {
            "path": f"{paths.src}/store.ts",
            "description": "State management store configuration",
            "examples": ["atoms", "selectors", "actions"],
        },
    }


def _package_structure(repository: RepositoryConfig) -> str:
    base = repository.base_path
    return f"""# LibreChat Client Package Structure

## Repository
- **Repo**: {repository.owner}/{repository.name}
- **Path**: {base}
- **Branch**: {repository.branch}

## Directory Structure

{base}/
├── src/
│   ├── index.ts          # Main entry point, exports all public APIs
│   ├── store.ts          # State management configuration
│   ├── hooks/            # React hooks
│   ├── components/       # UI components (organized by feature)
│   ├── Providers/        # Context providers
│   ├── utils/            # Utility functions
│   ├── common/           # Shared constants and types
│   ├── theme/            # Theming and styling
│   ├── locales/          # i18n translations
│   └── svgs/             # SVG assets
├── package.json          # Package configuration
├── tsconfig.json         # TypeScript configuration
├── rollup.config.js      # Build configuration
└── tailwind.config.js    # Tailwind CSS configuration

## Quick Start Tools

- `list_hooks` - See all available hooks
- `list_components` - Browse component directories
- `list_providers` - View context providers
- `get_package_info` - Get package.json details
- `get_index` - See all package exports
- `get_store` - View state management setup

## Exploring the Package

1. Start with `get_index` to see what's exported
2. Use `list_*` tools to discover available modules
3. Use `get_*` tools to read specific source files
"""


def _installation_guide(repository: RepositoryConfig) -> str:
    base = repository.base_path
    return f"""# LibreChat Client Package

## Overview

The LibreChat Client package is part of the LibreChat monorepo and provides
the client-side functionality of the LibreChat application.

## Source Location

- Repository: https://github.com/{repository.owner}/{repository.name}
- Path: `{base}`

## Exploring the Package

### List Package Contents
- `list_files` with no arguments lists the root of {base}
- `list_files` with `directory: "{base}/src"` lists the src directory

### Read Source Files
- `get_source_file` with `filePath: "{base}/package.json"`
- `get_source_files` with `filePaths: ["{base}/src/index.ts", "{base}/src/store.ts"]`

### Browse Directory Tree
- `get_directory_structure` returns the nested tree of files and directories

### Search
- `search_code` with `query: "useRecoilValue"` and optionally `extension: "tsx"`

## Rate Limits

Unauthenticated GitHub access allows 60 requests per hour. Start the server
with `--github-api-key` or set `GITHUB_PERSONAL_ACCESS_TOKEN` for 5000.
"""


def read_catalog_resource(
    uri: str,
    paths: ClientPaths,
    repository: RepositoryConfig,
) -> tuple[str, str]:
    """Render a resource or resource template.

    Returns:
        (content, mime type)

    Raises:
        UnknownOperationError: No resource with this URI
    """
    if uri == MODULES_URI:
        return json.dumps(module_map(paths), indent=2), "application/json"
    if uri == PACKAGE_STRUCTURE_URI:
        return _package_structure(repository), "text/plain"
    if uri.startswith(INSTALLATION_GUIDE_URI):
        return _installation_guide(repository), "text/plain"
    raise UnknownOperationError(f"Unknown resource: {uri}")


# ---------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------


def get_prompt_definitions() -> list[Prompt]:
    return [
        Prompt(
            name="explore-librechat-client",
            description="Explore the LibreChat Client package structure and available modules",
            arguments=[
                PromptArgument(
                    name="focus",
                    description="Area to focus on (hooks, components, providers, utils, store, all)",
                    required=False,
                ),
            ],
        ),
        Prompt(
            name="explore-hooks",
            description="Discover and understand available React hooks in LibreChat Client",
        ),
        Prompt(
            name="explore-components",
            description="Browse and understand React components in LibreChat Client",
            arguments=[
                PromptArgument(
                    name="category",
                    description="Component category to explore (e.g., 'Chat', 'Nav', 'ui')",
                    required=False,
                ),
            ],
        ),
        Prompt(
            name="explore-providers",
            description="Understand Context providers and global state management",
        ),
        Prompt(
            name="understand-state-management",
            description="Learn about state management patterns in LibreChat Client",
        ),
        Prompt(
            name="implement-feature",
            description="Get guidance on implementing a feature using LibreChat Client",
            arguments=[
                PromptArgument(
                    name="feature",
                    description="The feature to implement (e.g., 'chat-interface', 'message-list', 'auth-flow')",
                    required=True,
                ),
            ],
        ),
        Prompt(
            name="understand-api-endpoint",
            description="Understand how to use a specific LibreChat API endpoint",
            arguments=[
                PromptArgument(
                    name="endpoint",
                    description="The API endpoint to understand (e.g., 'messages', 'conversations', 'users')",
                    required=True,
                ),
            ],
        ),
        Prompt(
            name="implement-librechat-feature",
            description="Get guidance on implementing a feature using LibreChat Client",
            arguments=[
                PromptArgument(
                    name="feature",
                    description="The feature to implement (e.g., 'send-message', 'list-conversations', 'authentication')",
                    required=True,
                ),
                PromptArgument(
                    name="framework",
                    description="Target framework (react, vue, vanilla-js)",
                    required=False,
                ),
            ],
        ),
    ]


_FOCUS_AREAS = {
    "hooks": "- Hooks: use `list_hooks` and `get_hook` to read the React hooks",
    "components": "- Components: use `list_components` and `get_component` to browse UI code",
    "providers": "- Providers: use `list_providers` and `get_provider` for context providers",
    "utils": "- Utils: use `list_utils` and `get_util` for helper functions",
    "store": "- Store: use `get_store` for the state management setup",
}


def _explore_client(arguments: dict[str, str]) -> str:
    focus = (arguments.get("focus") or "all").strip().lower()
    if focus == "all" or focus not in _FOCUS_AREAS:
        areas = "\n".join(_FOCUS_AREAS.values())
    else:
        areas = _FOCUS_AREAS[focus]
    return f"""Explore the LibreChat Client package with focus on: {focus}

INSTRUCTIONS:
1. Get an overview:
   - Read the `{PACKAGE_STRUCTURE_URI}` resource
   - Use `get_index` to see what the package exports
   - Use `get_directory_structure` for the overall layout

2. Focus areas:
{areas}

3. Summarize:
   - Key exports and their purposes
   - Common usage patterns
   - How the modules depend on each other"""


def _explore_hooks(arguments: dict[str, str]) -> str:
    return """Help me understand the React hooks in LibreChat Client.

INSTRUCTIONS:
1. Use `list_hooks` to see every hook file and directory
2. Use `get_hook` to read the most important ones (start with `index`)
3. For each hook explain what it does, its inputs and return values, and
   which providers or store atoms it depends on"""


def _explore_components(arguments: dict[str, str]) -> str:
    category = (arguments.get("category") or "").strip()
    target = f"the '{category}' components" if category else "the component tree"
    listing = (
        f"Use `list_components` with `subdir: \"{category}\"`"
        if category
        else "Use `list_components` to see the top-level component folders"
    )
    return f"""Help me understand {target} in LibreChat Client.

INSTRUCTIONS:
1. {listing}
2. Use `get_component` to read the key components
3. Explain the component hierarchy, props, and which hooks each component uses"""


def _explore_providers(arguments: dict[str, str]) -> str:
    return """Help me understand the Context providers in LibreChat Client.

INSTRUCTIONS:
1. Use `list_providers` to see all providers
2. Use `get_provider` to read each provider (start with `index`)
3. Explain what global state each provider owns and how components consume it"""


def _understand_state(arguments: dict[str, str]) -> str:
    return """Explain the state management in LibreChat Client.

INSTRUCTIONS:
1. Use `get_store` to read src/store.ts
2. Use `list_providers` and `get_provider` for context-based state
3. Use `search_code` to find where store values are read and written
4. Describe the state shape, how updates flow, and the conventions to follow
   when adding new state"""


def _implement_feature(arguments: dict[str, str]) -> str:
    feature = arguments["feature"]
    return f"""Help me implement the "{feature}" feature using LibreChat Client.

INSTRUCTIONS:
1. Explore the relevant parts of the package:
   - Use `search_code` to find existing code related to '{feature}'
   - Use `get_directory_structure` to locate the right folders
   - Read related hooks, components and providers

2. Implementation guidance:
   - Reuse existing hooks and components where possible
   - Follow the package's state management conventions (`get_store`)
   - Handle loading and error states

3. Provide:
   - Complete implementation code
   - Type-safe usage
   - Example usage"""


def _understand_endpoint(arguments: dict[str, str]) -> str:
    endpoint = arguments["endpoint"]
    return f"""Help me understand the {endpoint} API endpoint in LibreChat Client.

INSTRUCTIONS:
1. Find the relevant source files:
   - Use `search_code` to find code related to '{endpoint}'
   - Find the TypeScript types for request and response payloads
   - Locate any hooks that wrap this endpoint (`list_hooks`, `get_hook`)

2. Explain:
   - Request/response format
   - Required and optional parameters
   - Authentication requirements
   - Error handling patterns

3. Provide working code examples for calling this endpoint."""


_FRAMEWORK_GUIDANCE = {
    "react": (
        "- Use the React hooks provided by the package\n"
        "   - Follow the package's state management conventions\n"
        "   - Handle loading and error states"
    ),
    "vue": (
        "- Use Vue Composition API patterns\n"
        "   - Implement reactive state\n"
        "   - Handle async operations properly"
    ),
    "vanilla-js": (
        "- Call the API layer directly\n"
        "   - Use async/await for requests\n"
        "   - Implement error handling"
    ),
}


def _implement_librechat_feature(arguments: dict[str, str]) -> str:
    feature = arguments["feature"]
    framework = (arguments.get("framework") or "react").strip().lower()
    guidance = _FRAMEWORK_GUIDANCE.get(framework, "- Follow the conventions of the target framework")
    return f"""Help me implement the "{feature}" feature using LibreChat Client in {framework}.

INSTRUCTIONS:
1. Explore the relevant parts of LibreChat Client:
   - Use `get_directory_structure` to understand the package layout
   - Use `get_source_file` to read the relevant implementations
   - Find related types and hooks

2. Implementation guidance for {framework}:
   {guidance}

3. Provide:
   - Complete implementation code
   - Type-safe usage
   - Error handling
   - Example usage"""


_PROMPT_RENDERERS = {
    "explore-librechat-client": _explore_client,
    "explore-hooks": _explore_hooks,
    "explore-components": _explore_components,
    "explore-providers": _explore_providers,
    "understand-state-management": _understand_state,
    "implement-feature": _implement_feature,
    "understand-api-endpoint": _understand_endpoint,
    "implement-librechat-feature": _implement_librechat_feature,
}


def render_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
    """Render a prompt into a single user message.

    Raises:
        UnknownOperationError: No prompt with this name
        ValidationError: A required argument is missing
    """
    renderer = _PROMPT_RENDERERS.get(name)
    if renderer is None:
        raise UnknownOperationError(f"Unknown prompt: {name}")
    arguments = arguments or {}

    definition = next(p for p in get_prompt_definitions() if p.name == name)
    for argument in definition.arguments or []:
        if argument.required and not (arguments.get(argument.name) or "").strip():
            raise ValidationError(
                f"Validation failed: {argument.name}: Field required",
                details={"prompt": name},
            )

    return GetPromptResult(
        description=definition.description,
        messages=[
            PromptMessage(
                role="user",
                content=TextContent(type="text", text=renderer(arguments)),
            )
        ],
    )
