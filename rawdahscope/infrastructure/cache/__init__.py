from rawdahscope.infrastructure.cache.ttl_cache import (
    CacheEntry,
    CacheHit,
    TTLCache,
)

__all__ = ["CacheEntry", "CacheHit", "TTLCache"]
