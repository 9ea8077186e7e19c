"""LibreChat client package access.

``SourceRepository`` is what the tool handlers call. Every remote read goes
through the shared cache and the retry policy, so concurrent sessions asking
for the same file share one GitHub request.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from librechat_client_mcp.cache import TTLCache
from librechat_client_mcp.errors import (
    LibreChatMCPError,
    NotDirectoryError,
    NotFoundError,
)
from librechat_client_mcp.github.client import GitHubClient
from librechat_client_mcp.github.types import (
    CodeSearchResult,
    ContentEntry,
)
from librechat_client_mcp.retry import RetryPolicy
from librechat_client_mcp.tree import TreeNode, build_tree

logger = structlog.get_logger()

T = TypeVar("T")

FILE_PREFIX = "file:"
DIR_PREFIX = "dir:"
SEARCH_PREFIX = "search:"

_SOURCE_SUFFIXES = (".ts", ".tsx")

# Components and providers are usually .tsx, hooks and utils usually .ts
HOOK_EXTENSIONS = (".ts", ".tsx")
COMPONENT_EXTENSIONS = (".tsx", ".ts")
PROVIDER_EXTENSIONS = (".tsx", ".ts")
UTIL_EXTENSIONS = (".ts", ".tsx")


@dataclass(frozen=True)
class ClientPaths:
    """Well-known directories of the client package."""

    base: str
    hooks: str
    components: str
    providers: str
    utils: str
    common: str
    theme: str
    locales: str
    svgs: str
    src: str

    @classmethod
    def for_base(cls, base: str) -> ClientPaths:
        base = base.strip("/")
        src = f"{base}/src"
        return cls(
            base=base,
            hooks=f"{src}/hooks",
            components=f"{src}/components",
            providers=f"{src}/Providers",
            utils=f"{src}/utils",
            common=f"{src}/common",
            theme=f"{src}/theme",
            locales=f"{src}/locales",
            svgs=f"{src}/svgs",
            src=src,
        )


def candidate_paths(directory: str, name: str, extensions: Sequence[str]) -> list[str]:
    """Paths to try for ``name`` in ``directory``, in order.

    A name that already carries a source extension is used as is.
    """
    name = name.strip().strip("/")
    if name.endswith(_SOURCE_SUFFIXES):
        return [f"{directory}/{name}"]
    return [f"{directory}/{name}{ext}" for ext in extensions]


async def first_success(
    candidates: Sequence[str],
    fetch: Callable[[str], Awaitable[T]],
) -> T:
    """Return the first candidate that ``fetch`` resolves.

    Only NotFoundError moves on to the next candidate; any other error is
    raised immediately. When every candidate is missing the last
    NotFoundError is raised.
    """
    if not candidates:
        raise ValueError("at least one candidate is required")
    *earlier, last = candidates
    for candidate in earlier:
        try:
            return await fetch(candidate)
        except NotFoundError:
            continue
    return await fetch(last)


def _entry_summary(entry: ContentEntry) -> dict[str, Any]:
    return entry.model_dump(include={"name", "path", "type", "size"})


class SourceRepository:
    """Cached, retried reads of the LibreChat client package."""

    def __init__(
        self,
        client: GitHubClient,
        cache: TTLCache,
        retry: RetryPolicy | None = None,
        *,
        tree_max_depth: int = 6,
    ) -> None:
        self._client = client
        self._cache = cache
        self._retry = retry or RetryPolicy()
        self._tree_max_depth = tree_max_depth
        self.paths = ClientPaths.for_base(client.repository.base_path)
        self._log = logger.bind(component="repository")

    @property
    def client(self) -> GitHubClient:
        return self._client

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # ---------------------------------------------------------------------
    # Generic access
    # ---------------------------------------------------------------------

    async def get_source_file(self, path: str) -> str:
        """Fetch a file by repository path (``file:`` namespace)."""
        path = path.strip().strip("/")
        return await self._cache.get_or_fetch(
            f"{FILE_PREFIX}{path}",
            lambda: self._retry.run(
                lambda: self._client.fetch_raw_file(path),
                description=f"fetch_raw_file {path}",
            ),
        )

    async def get_source_files(self, paths: Sequence[str]) -> dict[str, dict[str, str]]:
        """Fetch several files concurrently.

        Returns a mapping path -> ``{"status": "success", "content": ...}`` or
        ``{"status": "error", "error": ...}``. One failing file does not fail
        the batch.
        """
        results = await asyncio.gather(
            *(self.get_source_file(path) for path in paths),
            return_exceptions=True,
        )
        output: dict[str, dict[str, str]] = {}
        for path, result in zip(paths, results):
            if isinstance(result, LibreChatMCPError):
                output[path] = {"status": "error", "error": result.message}
            elif isinstance(result, BaseException):
                raise result
            else:
                output[path] = {"status": "success", "content": result}
        return output

    async def _list_directory(self, path: str) -> list[ContentEntry]:
        path = path.strip().strip("/")
        return await self._cache.get_or_fetch(
            f"{DIR_PREFIX}{path}",
            lambda: self._retry.run(
                lambda: self._client.list_directory(path),
                description=f"list_directory {path}",
            ),
        )

    async def list_files(self, directory: str | None = None) -> list[dict[str, Any]]:
        """List a directory (``dir:`` namespace); defaults to the package root."""
        entries = await self._list_directory(directory or self.paths.base)
        return [_entry_summary(entry) for entry in entries]

    async def _tree_listing(self, path: str) -> list[ContentEntry] | ContentEntry:
        try:
            return await self._list_directory(path)
        except NotDirectoryError:
            return await self._retry.run(
                lambda: self._client.get_contents(path),
                description=f"get_contents {path}",
            )

    async def get_directory_structure(self, path: str | None = None) -> TreeNode:
        """Depth-bounded tree rooted at ``path`` (defaults to the package root)."""
        root = (path or self.paths.base).strip().strip("/")
        return await build_tree(self._tree_listing, root, max_depth=self._tree_max_depth)

    async def search_code(
        self,
        query: str,
        extension: str | None = None,
    ) -> CodeSearchResult:
        """Code search in the package (``search:`` namespace)."""
        key = f"{SEARCH_PREFIX}{query}|{extension or ''}"
        return await self._cache.get_or_fetch(
            key,
            lambda: self._retry.run(
                lambda: self._client.search_code(query, extension=extension),
                description="search_code",
            ),
        )

    # ---------------------------------------------------------------------
    # LibreChat client specifics
    # ---------------------------------------------------------------------

    async def _first_source(self, directory: str, name: str, extensions: Sequence[str]) -> str:
        return await first_success(
            candidate_paths(directory, name, extensions),
            self.get_source_file,
        )

    async def get_hook(self, hook_name: str) -> str:
        return await self._first_source(self.paths.hooks, hook_name, HOOK_EXTENSIONS)

    async def list_hooks(self) -> list[dict[str, Any]]:
        return await self.list_files(self.paths.hooks)

    async def get_component(self, component_path: str) -> str:
        """Component by path relative to ``src/components`` (e.g. ``Chat/Input``)."""
        return await self._first_source(
            self.paths.components, component_path, COMPONENT_EXTENSIONS
        )

    async def list_components(self, subdir: str | None = None) -> list[dict[str, Any]]:
        directory = self.paths.components
        if subdir and subdir.strip("/"):
            directory = f"{directory}/{subdir.strip('/')}"
        return await self.list_files(directory)

    async def get_provider(self, provider_name: str) -> str:
        return await self._first_source(self.paths.providers, provider_name, PROVIDER_EXTENSIONS)

    async def list_providers(self) -> list[dict[str, Any]]:
        return await self.list_files(self.paths.providers)

    async def get_util(self, util_name: str) -> str:
        return await self._first_source(self.paths.utils, util_name, UTIL_EXTENSIONS)

    async def list_utils(self) -> list[dict[str, Any]]:
        return await self.list_files(self.paths.utils)

    async def get_package_info(self) -> Any:
        """Parsed ``package.json``; ``{"raw": text}`` when it is not valid JSON."""
        content = await self.get_source_file(f"{self.paths.base}/package.json")
        try:
            return json.loads(content)
        except ValueError:
            return {"raw": content}

    async def get_store(self) -> str:
        return await self.get_source_file(f"{self.paths.src}/store.ts")

    async def get_index(self) -> str:
        return await self.get_source_file(f"{self.paths.src}/index.ts")

    # ---------------------------------------------------------------------
    # Administration
    # ---------------------------------------------------------------------

    async def rate_limit_status(self) -> dict[str, Any]:
        """Tracked header state plus a live ``/rate_limit`` query.

        ``api`` is None when the live query fails.
        """
        api: dict[str, Any] | None
        try:
            info = await self._retry.run(
                self._client.query_rate_limit,
                description="query rate limit",
            )
        except LibreChatMCPError as exc:
            self._log.warning("rate_limit.query_failed", error_code=exc.code, error=exc.message)
            api = None
        else:
            api = info.model_dump()
        return {"tracked": self._client.rate_limit.model_dump(), "api": api}

    def clear_cache(self, prefix: str | None = None) -> dict[str, Any]:
        if prefix:
            return {"cleared": self._cache.delete_by_prefix(prefix), "scope": prefix}
        self._cache.clear()
        return {"cleared": "all", "scope": "full"}
