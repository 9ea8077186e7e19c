"""Recursive directory tree builder.

Composes directory listings into a depth-bounded tree. A failing subtree is
recorded on its node instead of failing the whole tree; a failing root
propagates to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Literal

import structlog
from pydantic import BaseModel

from librechat_client_mcp.errors import LibreChatMCPError
from librechat_client_mcp.github.types import ContentEntry

logger = structlog.get_logger()

ListContents = Callable[[str], Awaitable[list[ContentEntry] | ContentEntry]]

SUBTREE_ERROR_PREFIX = "Failed to fetch contents"


class TreeNode(BaseModel):
    """A file or directory in the tree.

    ``children`` is set for expanded directories only. ``truncated`` marks a
    directory that was not expanded because of the depth bound, ``error`` one
    whose listing failed.
    """

    path: str
    type: Literal["file", "directory"]
    name: str
    children: dict[str, TreeNode] | None = None
    size: int | None = None
    download_url: str | None = None
    sha: str | None = None
    truncated: bool | None = None
    error: str | None = None


def path_depth(path: str) -> int:
    return len([segment for segment in path.split("/") if segment])


def _basename(path: str) -> str:
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else path


def _file_node(entry: ContentEntry) -> TreeNode:
    return TreeNode(
        path=entry.path,
        type="file",
        name=entry.name,
        size=entry.size,
        download_url=entry.download_url,
        sha=entry.sha,
    )


async def _expand(
    list_contents: ListContents,
    path: str,
    max_depth: int,
) -> dict[str, TreeNode]:
    listing = await list_contents(path)
    return await _build_children(list_contents, path, listing, max_depth)


async def _build_children(
    list_contents: ListContents,
    path: str,
    listing: list[ContentEntry] | ContentEntry,
    max_depth: int,
) -> dict[str, TreeNode]:
    if isinstance(listing, ContentEntry):
        listing = [listing]

    expand_children = path_depth(path) < max_depth
    nodes: dict[str, TreeNode] = {}
    pending: list[tuple[str, Awaitable[TreeNode]]] = []

    for entry in listing:
        if not entry.is_dir:
            nodes[entry.name] = _file_node(entry)
        elif expand_children:
            # Placeholder keeps listing order; replaced once the subtree resolves
            nodes[entry.name] = TreeNode(path=entry.path, type="directory", name=entry.name)
            pending.append((entry.name, _subtree(list_contents, entry, max_depth)))
        else:
            nodes[entry.name] = TreeNode(
                path=entry.path,
                type="directory",
                name=entry.name,
                truncated=True,
            )

    if pending:
        subtrees = await asyncio.gather(*(coro for _, coro in pending))
        for (name, _), subtree in zip(pending, subtrees):
            nodes[name] = subtree
    return nodes


async def _subtree(
    list_contents: ListContents,
    entry: ContentEntry,
    max_depth: int,
) -> TreeNode:
    try:
        children = await _expand(list_contents, entry.path, max_depth)
    except LibreChatMCPError as exc:
        logger.warning(
            "tree.subtree_failed",
            path=entry.path,
            error_code=exc.code,
            error=exc.message,
        )
        return TreeNode(
            path=entry.path,
            type="directory",
            name=entry.name,
            error=f"{SUBTREE_ERROR_PREFIX}: {exc.message}",
        )
    except Exception as exc:
        logger.exception("tree.subtree_failed", path=entry.path)
        return TreeNode(
            path=entry.path,
            type="directory",
            name=entry.name,
            error=f"{SUBTREE_ERROR_PREFIX}: {exc}",
        )
    return TreeNode(path=entry.path, type="directory", name=entry.name, children=children)


async def build_tree(
    list_contents: ListContents,
    path: str,
    *,
    max_depth: int = 6,
) -> TreeNode:
    """Build the tree rooted at ``path``.

    Args:
        list_contents: Coroutine returning a directory listing, or a single
            entry when ``path`` is a file
        path: Root path
        max_depth: Directories are expanded only while their parent path has
            fewer than this many segments

    Raises:
        NotFoundError, RateLimitedError, RemoteError: The root itself failed
    """
    root = await list_contents(path)
    if isinstance(root, ContentEntry) and not root.is_dir:
        return _file_node(root)

    children = await _build_children(list_contents, path, root, max_depth)
    return TreeNode(path=path, type="directory", name=_basename(path), children=children)
