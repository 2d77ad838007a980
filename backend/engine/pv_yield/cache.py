"""
Response cache for the remote yield service.

The client talks to any object implementing :class:`CacheStore`; the
in-memory store below is the default.  A durable SQL-backed store lives in
``app.services.yield_cache``.

Eviction rules shared by every store:

- TTL, lazily: an entry whose ``expires_at`` has passed is removed on read
  and reported as absent.
- Size, eagerly: when a write for a *new* key finds the store full, the
  entry with the smallest ``created_at`` is evicted first.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS: float = 30 * 24 * 3600.0
DEFAULT_MAX_ENTRIES: int = 100


@dataclass(frozen=True)
class CacheEntry:
    key: str
    response: dict[str, Any]
    created_at: float       # unix seconds
    expires_at: float       # unix seconds

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    entries: int
    oldest_entry: datetime | None
    newest_entry: datetime | None


def stats_from_timestamps(created: list[float]) -> CacheStats:
    if not created:
        return CacheStats(entries=0, oldest_entry=None, newest_entry=None)
    return CacheStats(
        entries=len(created),
        oldest_entry=datetime.fromtimestamp(min(created), tz=timezone.utc),
        newest_entry=datetime.fromtimestamp(max(created), tz=timezone.utc),
    )


class CacheStore(Protocol):
    """Async key-value store bounded in size and honouring per-entry TTLs."""

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def set(self, key: str, response: dict[str, Any], ttl_seconds: float) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def stats(self) -> CacheStats: ...


class InMemoryCacheStore:
    """Process-local :class:`CacheStore`.

    Reads and writes for distinct keys never interfere; the lock only
    serialises the read-modify-write of an eviction.  Responses are deep
    copied on the way in and out, so callers never share the stored dict.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            logger.debug("Cache entry %s expired; removing", key)
            self._entries.pop(key, None)
            return None
        return copy.deepcopy(entry.response)

    async def set(self, key: str, response: dict[str, Any], ttl_seconds: float) -> None:
        async with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = min(self._entries.values(), key=lambda e: e.created_at)
                logger.debug("Cache full (%d entries); evicting %s", len(self._entries), oldest.key)
                del self._entries[oldest.key]
            self._entries[key] = CacheEntry(
                key=key,
                response=copy.deepcopy(response),
                created_at=now,
                expires_at=now + ttl_seconds,
            )

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    async def stats(self) -> CacheStats:
        return stats_from_timestamps([e.created_at for e in self._entries.values()])
