"""Cache backend implementations.

Provides different storage backends for the chat data layer:
- RedisBackend: Production Redis-based caching
- MemoryBackend: In-memory caching for testing and local runs
"""

from ragchat.services.unified_cache.backends.base import ICacheBackend, CacheStats, ConnectionState
from ragchat.services.unified_cache.backends.redis_backend import RedisBackend
from ragchat.services.unified_cache.backends.memory_backend import MemoryBackend

__all__ = [
    "ICacheBackend",
    "CacheStats",
    "ConnectionState",
    "RedisBackend",
    "MemoryBackend",
]
