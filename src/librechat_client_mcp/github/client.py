"""GitHub client for one repository branch.

Read-only access to raw file contents, directory listings, code search and
the rate limit endpoint.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx

from librechat_client_mcp.config import RepositoryConfig
from librechat_client_mcp.errors import NotDirectoryError, RemoteError
from librechat_client_mcp.github._http import HTTPClient
from librechat_client_mcp.github.types import (
    CodeSearchItem,
    CodeSearchResult,
    ContentEntry,
    RateLimitInfo,
    RateLimitState,
)


def _clean_path(path: str) -> str:
    return path.strip().strip("/")


class GitHubClient:
    """Client for the configured GitHub repository.

    Usage:
        async with GitHubClient(RepositoryConfig(), token=token) as client:
            text = await client.fetch_raw_file("packages/client/package.json")
            entries = await client.list_directory("packages/client/src")
    """

    def __init__(
        self,
        repository: RepositoryConfig,
        *,
        token: str | None = None,
        rate_limit: RateLimitState | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.repository = repository
        self._http = HTTPClient(
            repository.api_url,
            repository.raw_url,
            token=token,
            timeout=repository.timeout,
            user_agent=repository.user_agent,
            rate_limit=rate_limit,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        await self._http.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def rate_limit(self) -> RateLimitState:
        """Rate limit state observed from responses."""
        return self._http.rate_limit

    @property
    def authenticated(self) -> bool:
        return self._http.has_token

    def set_token(self, token: str | None) -> None:
        """Update the credential; applies from the next request on."""
        self._http.set_token(token)

    @property
    def _repo(self) -> str:
        return f"{self.repository.owner}/{self.repository.name}"

    async def fetch_raw_file(self, path: str) -> str:
        """Fetch a file's text from the raw content host.

        Raises:
            NotFoundError: The file does not exist on the branch
        """
        path = _clean_path(path)
        return await self._http.get_text(
            f"/{self._repo}/{self.repository.branch}/{path}",
            not_found_message=f'File "{path}" not found in repository',
        )

    async def get_contents(self, path: str) -> list[ContentEntry] | ContentEntry:
        """Call the contents endpoint.

        Returns a list for a directory, a single entry for a file.
        """
        path = _clean_path(path)
        data = await self._http.get_json(
            f"/repos/{self._repo}/contents/{path}",
            params={"ref": self.repository.branch},
            not_found_message=f"Path not found: {path}",
        )
        if isinstance(data, list):
            return [ContentEntry.model_validate(item) for item in data]
        if isinstance(data, dict):
            return ContentEntry.model_validate(data)
        raise RemoteError("GitHub API returned an unexpected contents payload")

    async def list_directory(self, path: str) -> list[ContentEntry]:
        """List a directory in GitHub order.

        Raises:
            NotFoundError: Missing directory
            RateLimitedError: Quota exhausted
            NotDirectoryError: The path is a file
            RemoteError: Any other API failure
        """
        path = _clean_path(path)
        data = await self._http.get_json(
            f"/repos/{self._repo}/contents/{path}",
            params={"ref": self.repository.branch},
            not_found_message=f"Directory not found: {path}",
        )
        if not isinstance(data, list):
            raise NotDirectoryError(
                f"Not a directory: {path}",
                details={"path": path},
            )
        return [ContentEntry.model_validate(item) for item in data]

    async def query_rate_limit(self) -> RateLimitInfo:
        """Fetch the core rate limit bucket."""
        data: dict[str, Any] = await self._http.get_json("/rate_limit")
        bucket = (data.get("resources") or {}).get("core") or data.get("rate")
        if not isinstance(bucket, dict):
            raise RemoteError("GitHub API returned an unexpected rate limit payload")
        return RateLimitInfo.model_validate(bucket)

    async def search_code(
        self,
        query: str,
        *,
        extension: str | None = None,
    ) -> CodeSearchResult:
        """Search code inside the client package."""
        q = f"{query} repo:{self._repo} path:{self.repository.base_path}"
        if extension:
            q += f" extension:{extension.lstrip('.')}"
        data = await self._http.get_json("/search/code", params={"q": q})
        items = [
            CodeSearchItem(
                name=item.get("name", ""),
                path=item.get("path", ""),
                url=item.get("html_url"),
            )
            for item in data.get("items", [])
        ]
        return CodeSearchResult(total_count=data.get("total_count", 0), results=items)
