"""GitHub data source."""

from librechat_client_mcp.github.client import GitHubClient
from librechat_client_mcp.github.types import (
    CodeSearchItem,
    CodeSearchResult,
    ContentEntry,
    RateLimitInfo,
    RateLimitState,
)

__all__ = [
    "GitHubClient",
    "CodeSearchItem",
    "CodeSearchResult",
    "ContentEntry",
    "RateLimitInfo",
    "RateLimitState",
]
