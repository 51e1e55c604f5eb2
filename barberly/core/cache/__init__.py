from .backends import (
    CacheBackend,
    MemoryCacheBackend,
    RedisCacheBackend,
    create_cache_backend,
)

__all__ = [
    "CacheBackend",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "create_cache_backend",
]
