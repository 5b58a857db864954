"""Service layer modules."""

from .rate_service import (
    CachedRateService,
    CacheSettings,
    MAX_AMOUNT,
    build_rate_cache,
    conversion_cache_key,
    history_cache_key,
    init_rate_service,
    latest_cache_key,
)

__all__ = [
    "CacheSettings",
    "CachedRateService",
    "MAX_AMOUNT",
    "build_rate_cache",
    "conversion_cache_key",
    "history_cache_key",
    "init_rate_service",
    "latest_cache_key",
]
