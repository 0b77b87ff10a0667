"""Cache key helpers for remote function calls."""

from remoteargs.cache.keys import CacheKeys, create_remote_cache_key

__all__ = [
    "CacheKeys",
    "create_remote_cache_key",
]
