"""Durable PVGIS response cache backed by the service database."""

import logging
import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.yield_cache import YieldCacheEntry
from engine.pv_yield.cache import DEFAULT_MAX_ENTRIES, CacheStats, stats_from_timestamps

logger = logging.getLogger(__name__)


class DatabaseCacheStore:
    """``CacheStore`` persisting entries in ``yield_cache_entries``.

    Expired rows are deleted when read; a write for a new key into a full
    table first deletes the row with the smallest ``created_at``.  Both
    happen inside one transaction so the size bound holds per write.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._session_factory = session_factory
        self.max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            entry = await session.get(YieldCacheEntry, key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                logger.debug("Cache entry %s expired; removing", key)
                await session.delete(entry)
                await session.commit()
                return None
            return entry.response

    async def set(self, key: str, response: dict[str, Any], ttl_seconds: float) -> None:
        now = self._clock()
        async with self._session_factory() as session:
            async with session.begin():
                existing = await session.get(YieldCacheEntry, key)
                if existing is not None:
                    existing.response = response
                    existing.created_at = now
                    existing.expires_at = now + ttl_seconds
                    return

                count = await session.scalar(select(func.count()).select_from(YieldCacheEntry))
                if count is not None and count >= self.max_entries:
                    oldest_key = await session.scalar(
                        select(YieldCacheEntry.key).order_by(YieldCacheEntry.created_at).limit(1)
                    )
                    logger.debug("Cache full (%d entries); evicting %s", count, oldest_key)
                    await session.execute(
                        delete(YieldCacheEntry).where(YieldCacheEntry.key == oldest_key)
                    )

                session.add(
                    YieldCacheEntry(
                        key=key,
                        response=response,
                        created_at=now,
                        expires_at=now + ttl_seconds,
                    )
                )

    async def delete(self, key: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(YieldCacheEntry).where(YieldCacheEntry.key == key))

    async def clear(self) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(YieldCacheEntry))

    async def stats(self) -> CacheStats:
        async with self._session_factory() as session:
            created = (await session.scalars(select(YieldCacheEntry.created_at))).all()
        return stats_from_timestamps(list(created))

    async def count(self) -> int:
        async with self._session_factory() as session:
            return int(
                await session.scalar(select(func.count()).select_from(YieldCacheEntry)) or 0
            )
