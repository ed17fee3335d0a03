"""In-memory cache backend for testing and local development."""

import json
import time
from dataclasses import dataclass
from typing import Optional, Any, Dict

from ragchat.services.unified_cache.backends.base import ICacheBackend


@dataclass
class CacheEntry:
    """A serialized cache entry with optional expiration."""

    value: str
    expires_at: Optional[float] = None

    def is_expired(self) -> bool:
        """Check if the entry has expired."""
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class MemoryBackend(ICacheBackend):
    """In-memory cache backend.

    Mimics Redis behavior closely enough for unit tests and running the
    service without Redis: values are stored JSON-encoded (so callers never
    share mutable objects with the cache) and expire after their TTL.
    """

    name = "memory"

    def __init__(self, auto_cleanup: bool = True):
        """Initialize memory backend.

        Args:
            auto_cleanup: If True, expired entries are cleaned up on access.
        """
        super().__init__()
        self._storage: Dict[str, CacheEntry] = {}
        self._auto_cleanup = auto_cleanup

    async def connect(self) -> None:
        """Enable the cache backend."""
        self._on_connected()

    async def disconnect(self) -> None:
        """Disable the cache backend and clear storage."""
        self._on_disconnected()
        self._storage.clear()

    def _cleanup_expired(self) -> None:
        """Remove expired entries from storage."""
        if not self._auto_cleanup:
            return

        current_time = time.time()
        expired_keys = [
            key for key, entry in self._storage.items()
            if entry.expires_at and current_time > entry.expires_at
        ]

        for key in expired_keys:
            del self._storage[key]
            self._stats.evictions += 1

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        if not self.enabled:
            return None

        self._cleanup_expired()

        entry = self._storage.get(key)
        if entry is None:
            self._stats.record_miss()
            return None

        if entry.is_expired():
            del self._storage[key]
            self._stats.evictions += 1
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        return json.loads(entry.value)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in the cache."""
        if not self.enabled:
            return False

        expires_at = None
        if ttl is not None:
            expires_at = time.time() + ttl

        self._storage[key] = CacheEntry(value=json.dumps(value), expires_at=expires_at)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key from the cache."""
        if not self.enabled:
            return False

        if key in self._storage:
            del self._storage[key]
            return True
        return False

    async def exists(self, key: str) -> bool:
        """Check if a key exists in the cache."""
        if not self.enabled:
            return False

        entry = self._storage.get(key)
        if entry is None:
            return False

        if entry.is_expired():
            del self._storage[key]
            return False

        return True

    async def clear_all(self) -> bool:
        """Clear all keys from the cache."""
        if not self.enabled:
            return True
        self._storage.clear()
        return True

    async def approximate_size(self) -> int:
        """Number of live entries."""
        if not self.enabled:
            return 0
        self._cleanup_expired()
        return len(self._storage)

    # Testing utilities

    def simulate_transport_error(self, error: Optional[BaseException] = None) -> None:
        """Fire a transport error event, as a dropped Redis connection would."""
        self._on_transport_error(error or ConnectionError("simulated transport error"))

    def get_raw_entry(self, key: str) -> Optional[CacheEntry]:
        """Get a raw cache entry (testing utility)."""
        return self._storage.get(key)
