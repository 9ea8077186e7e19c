"""Process-wide response cache.

Entries expire lazily after ``ttl_seconds`` and are evicted least recently
used first once ``max_entries`` is exceeded. Concurrent misses for one key
share a single in-flight fetch.

Key namespaces:
- ``file:<path>``  raw file contents
- ``dir:<path>``   directory listings
- ``search:<q>``   code search results
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float


def _consume_exception(task: asyncio.Task) -> None:
    # Avoid "exception was never retrieved" when every waiter went away
    if not task.cancelled():
        task.exception()


class TTLCache:
    """Key/value cache with TTL expiry, LRU bound and single-flight fetches.

    Usage:
        cache = TTLCache(ttl_seconds=300)
        text = await cache.get_or_fetch("file:src/index.ts", fetch_index)
        cache.delete_by_prefix("file:")
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._log = logger.bind(component="cache")

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at >= self._ttl

    def _lookup(self, key: str) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        if self._is_expired(entry):
            del self._entries[key]
            self._log.debug("cache.expired", key=key)
            return False, None
        self._entries.move_to_end(key)
        return True, entry.value

    def _store(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._log.debug("cache.evicted", key=evicted)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a live cached value without fetching."""
        found, value = self._lookup(key)
        return value if found else default

    async def get_or_fetch(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for ``key`` or fetch it once.

        Concurrent callers for the same missing key await the same fetch. A
        failed fetch is not cached; the next call tries again.
        """
        found, value = self._lookup(key)
        if found:
            self._hits += 1
            self._log.debug("cache.hit", key=key)
            return value

        task = self._in_flight.get(key)
        if task is None:
            self._misses += 1
            self._log.debug("cache.miss", key=key)
            task = asyncio.create_task(self._fetch(key, producer))
            task.add_done_callback(_consume_exception)
            self._in_flight[key] = task
        else:
            self._log.debug("cache.join_in_flight", key=key)

        # Shielded: one waiter being cancelled must not cancel the others
        return await asyncio.shield(task)

    async def _fetch(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        task = asyncio.current_task()
        try:
            value = await producer()
        except BaseException:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]
            raise

        # Invalidated while in flight: hand the value to waiters but do not store it
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
            self._store(key, value)
        return value

    def delete_by_prefix(self, prefix: str) -> int:
        """Remove entries whose key starts with ``prefix``. Returns the count."""
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        for key in [k for k in self._in_flight if k.startswith(prefix)]:
            del self._in_flight[key]
        self._log.info("cache.cleared", prefix=prefix, removed=len(doomed))
        return len(doomed)

    def clear(self) -> int:
        """Remove everything. Returns the number of entries removed."""
        removed = len(self._entries)
        self._entries.clear()
        self._in_flight.clear()
        self._log.info("cache.cleared", prefix=None, removed=removed)
        return removed

    def _purge_expired(self) -> None:
        for key in [k for k, e in self._entries.items() if self._is_expired(e)]:
            del self._entries[key]

    def keys(self) -> list[str]:
        """Live keys, least recently used first."""
        self._purge_expired()
        return list(self._entries)

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry)

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self),
            "hits": self._hits,
            "misses": self._misses,
            "in_flight": len(self._in_flight),
        }
