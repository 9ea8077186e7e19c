"""Shared fakes for the test suite."""

from __future__ import annotations

import os

import pytest

from librechat_client_mcp.cache import TTLCache
from librechat_client_mcp.config import LEGACY_ENV_VARS, RepositoryConfig
from librechat_client_mcp.errors import NotDirectoryError, NotFoundError
from librechat_client_mcp.github.types import (
    CodeSearchItem,
    CodeSearchResult,
    ContentEntry,
    RateLimitInfo,
    RateLimitState,
)
from librechat_client_mcp.repository import SourceRepository
from librechat_client_mcp.retry import RetryPolicy

RAW = "https://raw.githubusercontent.com"
BASE = "packages/client"
SRC = f"{BASE}/src"


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def dir_entry(path: str) -> ContentEntry:
    return ContentEntry(name=path.rsplit("/", 1)[-1], path=path, type="dir")


def file_entry(path: str, size: int = 10) -> ContentEntry:
    return ContentEntry(
        name=path.rsplit("/", 1)[-1],
        path=path,
        type="file",
        size=size,
        download_url=f"{RAW}/danny-avila/LibreChat/main/{path}",
    )


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient recording every call."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        directories: dict[str, list[ContentEntry]] | None = None,
    ) -> None:
        self.repository = RepositoryConfig()
        self.rate_limit = RateLimitState()
        self.files = files or {}
        self.directories = directories or {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self.rate_limit_info: RateLimitInfo | Exception = RateLimitInfo(
            limit=60, remaining=59, reset=1700000000, used=1
        )

    def _raise_for(self, path: str) -> None:
        error = self.errors.get(path)
        if error is not None:
            raise error

    async def fetch_raw_file(self, path: str) -> str:
        self.calls.append(("fetch_raw_file", path))
        self._raise_for(path)
        if path not in self.files:
            raise NotFoundError(f'File "{path}" not found in repository')
        return self.files[path]

    async def list_directory(self, path: str) -> list[ContentEntry]:
        self.calls.append(("list_directory", path))
        self._raise_for(path)
        if path in self.files:
            raise NotDirectoryError(f"Not a directory: {path}")
        if path not in self.directories:
            raise NotFoundError(f"Directory not found: {path}")
        return self.directories[path]

    async def get_contents(self, path: str) -> list[ContentEntry] | ContentEntry:
        self.calls.append(("get_contents", path))
        self._raise_for(path)
        if path in self.directories:
            return self.directories[path]
        if path in self.files:
            return file_entry(path, size=len(self.files[path]))
        raise NotFoundError(f"Path not found: {path}")

    async def query_rate_limit(self) -> RateLimitInfo:
        self.calls.append(("query_rate_limit", ""))
        if isinstance(self.rate_limit_info, Exception):
            raise self.rate_limit_info
        return self.rate_limit_info

    async def search_code(self, query: str, *, extension: str | None = None) -> CodeSearchResult:
        self.calls.append(("search_code", f"{query}|{extension or ''}"))
        return CodeSearchResult(
            total_count=1,
            results=[CodeSearchItem(name="useAuth.ts", path=f"{BASE}/src/hooks/useAuth.ts")],
        )

    def count(self, method: str, path: str | None = None) -> int:
        return sum(1 for m, p in self.calls if m == method and (path is None or p == path))


def make_repository(client: FakeGitHubClient, **kwargs) -> SourceRepository:
    return SourceRepository(client, TTLCache(), RetryPolicy(sleep=FakeSleep()), **kwargs)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's configuration environment out of every test."""
    for name, _ in LEGACY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.upper().startswith("LIBRECHAT_MCP_"):
            monkeypatch.delenv(name, raising=False)
