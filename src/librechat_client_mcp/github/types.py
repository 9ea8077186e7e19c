"""Type definitions for the GitHub data source.

Pydantic models for the subset of the GitHub REST payloads the server reads.
"""

from __future__ import annotations

import time
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field


class ContentEntry(BaseModel):
    """One item of a ``/contents`` listing, or a single-file response."""

    model_config = ConfigDict(extra="ignore")

    name: str
    path: str
    type: str  # file | dir | symlink | submodule
    size: int = 0
    sha: str | None = None
    download_url: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


class RateLimitInfo(BaseModel):
    """A rate limit bucket as reported by ``/rate_limit``."""

    model_config = ConfigDict(extra="ignore")

    limit: int
    remaining: int
    reset: int  # epoch seconds
    used: int = 0


class RateLimitState(BaseModel):
    """Process-wide view of the GitHub rate limit.

    Updated from the ``x-ratelimit-*`` headers of every observed response.
    Values are advisory, so the most recently observed response wins.
    """

    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None
    used: int | None = None
    observed_at: float | None = None

    def observe(self, headers: Mapping[str, str]) -> bool:
        """Record rate limit headers. Returns False when none are present."""
        values: dict[str, int] = {}
        for field in ("limit", "remaining", "reset", "used"):
            raw = headers.get(f"x-ratelimit-{field}")
            if raw is None:
                continue
            try:
                values[field] = int(raw)
            except (TypeError, ValueError):
                continue
        if not values:
            return False
        for field, value in values.items():
            setattr(self, field, value)
        self.observed_at = time.time()
        return True


class CodeSearchItem(BaseModel):
    """A single code search hit."""

    name: str
    path: str
    url: str | None = None


class CodeSearchResult(BaseModel):
    """Code search results restricted to the client package."""

    total_count: int = 0
    results: list[CodeSearchItem] = Field(default_factory=list)

