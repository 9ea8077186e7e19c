"""HTTP client wrapper for the GitHub API and raw content host.

Handles connection pooling, credential injection, rate limit observation and
error mapping. Retries are not done here; callers wrap calls with
``librechat_client_mcp.retry.with_retry``.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog

from librechat_client_mcp.errors import (
    NotFoundError,
    RateLimitedError,
    RemoteError,
    TransientRemoteError,
)
from librechat_client_mcp.github.types import RateLimitState

logger = structlog.get_logger()

_GITHUB_ACCEPT = "application/vnd.github.v3+json"


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str):
            return message
    return ""


def raise_for_github_response(
    response: httpx.Response,
    *,
    not_found_message: str | None = None,
) -> None:
    """Raise the matching LibreChatMCPError for a failed API response.

    Args:
        response: A response with status >= 400.
        not_found_message: Message used for NotFoundError instead of the
            default one.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None
    message = _error_message(payload) or response.reason_phrase or ""
    status = response.status_code
    details = {"status_code": status}

    if status == 404 or "Not Found" in message:
        raise NotFoundError(not_found_message or f"Not found: {message}", details=details)

    exhausted = response.headers.get("x-ratelimit-remaining") == "0"
    if status in (403, 429) and (exhausted or "rate limit" in message.lower()):
        raise RateLimitedError(details=details)
    if "rate limit exceeded" in message.lower():
        raise RateLimitedError(details=details)

    if status >= 500:
        raise TransientRemoteError(f"GitHub API error ({status})", details=details)
    raise RemoteError(f"GitHub API error: {message or status}", details=details)


class HTTPClient:
    """Async HTTP client for GitHub.

    Wraps two httpx.AsyncClient instances:
    - API client (JSON endpoints, ``x-ratelimit-*`` headers observed)
    - Raw client (file contents from the raw content host)

    The bearer token is read on every request, so ``set_token`` takes effect
    on the next call without rebuilding the clients.
    """

    def __init__(
        self,
        api_url: str,
        raw_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        user_agent: str = "librechat-client-mcp",
        rate_limit: RateLimitState | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            api_url: GitHub REST API base URL
            raw_url: Raw content base URL
            token: Optional personal access token
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            rate_limit: Shared rate limit state updated from responses
            transport: Optional httpx transport (tests)
        """
        self._api_url = api_url.rstrip("/")
        self._raw_url = raw_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport
        self.rate_limit = rate_limit if rate_limit is not None else RateLimitState()

        self._api: httpx.AsyncClient | None = None
        self._raw: httpx.AsyncClient | None = None
        self._log = logger.bind(component="github_http")

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_token(self, token: str | None) -> None:
        """Switch between authenticated and unauthenticated mode."""
        self._token = token or None
        self._log.info("github.token_updated", authenticated=self.has_token)

    def _auth_headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def __aenter__(self) -> HTTPClient:
        """Enter async context, creating HTTP clients."""
        common = {
            "timeout": httpx.Timeout(self._timeout),
            "headers": {"User-Agent": self._user_agent},
            "follow_redirects": True,
        }
        if self._transport is not None:
            common["transport"] = self._transport
        self._api = httpx.AsyncClient(base_url=self._api_url, **common)
        self._raw = httpx.AsyncClient(base_url=self._raw_url, **common)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context, closing HTTP clients."""
        for client in (self._api, self._raw):
            if client is not None:
                await client.aclose()
        self._api = None
        self._raw = None

    @property
    def api(self) -> httpx.AsyncClient:
        if self._api is None:
            raise RuntimeError("HTTPClient not initialized. Use 'async with' context.")
        return self._api

    @property
    def raw(self) -> httpx.AsyncClient:
        if self._raw is None:
            raise RuntimeError("HTTPClient not initialized. Use 'async with' context.")
        return self._raw

    async def _send(
        self,
        client: httpx.AsyncClient,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        self._log.debug("github.request", host=str(client.base_url), path=path)
        try:
            response = await client.get(path, params=params, headers=headers)
        except httpx.TransportError as exc:
            self._log.warning("github.transport_error", path=path, error=str(exc))
            raise TransientRemoteError(
                f"Connection error: {exc or type(exc).__name__}",
                details={"error_type": type(exc).__name__},
            ) from exc
        self._log.debug("github.response", path=path, status_code=response.status_code)
        return response

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        not_found_message: str | None = None,
    ) -> Any:
        """GET a JSON document from the API.

        Every response, failed ones included, updates ``rate_limit``.

        Raises:
            NotFoundError, RateLimitedError, TransientRemoteError, RemoteError
        """
        headers = {"Accept": _GITHUB_ACCEPT, **self._auth_headers()}
        response = await self._send(self.api, path, params=params, headers=headers)
        self.rate_limit.observe(response.headers)

        if response.status_code >= 400:
            raise_for_github_response(response, not_found_message=not_found_message)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                "GitHub API returned a non-JSON response",
                details={"status_code": response.status_code},
            ) from exc

    async def get_text(self, path: str, *, not_found_message: str) -> str:
        """GET a text file from the raw content host.

        Raises:
            NotFoundError: On any non-success status except 5xx
            TransientRemoteError: On 5xx or connection failure
        """
        response = await self._send(self.raw, path, headers=self._auth_headers())
        self.rate_limit.observe(response.headers)

        if response.status_code >= 500:
            raise TransientRemoteError(
                f"Raw content host error ({response.status_code})",
                details={"status_code": response.status_code},
            )
        if response.status_code != 200:
            raise NotFoundError(
                not_found_message,
                details={"status_code": response.status_code},
            )
        return response.text
