"""Wires the yield engine to service configuration."""

import logging

from app.config import settings
from app.models.database import get_session_factory
from app.services.yield_cache import DatabaseCacheStore
from engine.pv_yield.cache import CacheStore, InMemoryCacheStore
from engine.pv_yield.pvgis_client import PVGISClient
from engine.pv_yield.yield_calculator import YieldCalculator

logger = logging.getLogger(__name__)

_calculator: YieldCalculator | None = None


def build_cache_store() -> CacheStore:
    backend = settings.yield_cache_backend.lower()
    if backend == "database":
        return DatabaseCacheStore(get_session_factory(), max_entries=settings.yield_cache_max_entries)
    if backend == "memory":
        return InMemoryCacheStore(max_entries=settings.yield_cache_max_entries)
    raise ValueError(f"Unknown yield cache backend: {settings.yield_cache_backend!r}")


def build_calculator() -> YieldCalculator:
    cache = build_cache_store()
    logger.info(
        "Yield calculator using %s cache (max %d entries, TTL %.0f days)",
        type(cache).__name__,
        settings.yield_cache_max_entries,
        settings.yield_cache_ttl_days,
    )
    client = PVGISClient(
        base_url=settings.pvgis_base_url,
        timeout=settings.pvgis_timeout_seconds,
        cache=cache,
        cache_ttl_seconds=settings.yield_cache_ttl_seconds,
    )
    return YieldCalculator(client)


def get_calculator() -> YieldCalculator:
    """FastAPI dependency returning the process-wide calculator."""
    global _calculator
    if _calculator is None:
        _calculator = build_calculator()
    return _calculator


def reset_calculator() -> None:
    global _calculator
    _calculator = None
