"""Base interface for cache backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any

from ragchat.core.logging import get_logger

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    """Connectivity of a cache backend."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.misses += 1

    def record_error(self) -> None:
        """Record a cache error."""
        self.errors += 1

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": round(self.hit_rate, 4),
        }

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.evictions = 0


class ICacheBackend(ABC):
    """Abstract base class for cache backends.

    Backends track connectivity as a two-state machine:

        DISCONNECTED --(connect / ping ok)--> CONNECTED
        CONNECTED --(transport error)--> DISCONNECTED
        any --(disconnect)--> DISCONNECTED

    Transitions happen through the ``_on_connected`` / ``_on_transport_error``
    / ``_on_disconnected`` handlers. Operations never raise: a failed read is
    reported as a miss and a failed write as ``False``.
    """

    name = "cache"

    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._stats = CacheStats()

    @property
    def state(self) -> ConnectionState:
        """Current connectivity state."""
        return self._state

    @property
    def enabled(self) -> bool:
        """Check if the backend is connected and usable right now."""
        return self._state is ConnectionState.CONNECTED

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    def _on_connected(self) -> None:
        if self._state is not ConnectionState.CONNECTED:
            logger.info("%s backend connected", self.name)
        self._state = ConnectionState.CONNECTED

    def _on_transport_error(self, error: BaseException) -> None:
        if self._state is ConnectionState.CONNECTED:
            logger.error("%s backend transport error, marking unavailable: %s", self.name, error)
        self._state = ConnectionState.DISCONNECTED
        self._stats.record_error()

    def _on_disconnected(self) -> None:
        self._state = ConnectionState.DISCONNECTED

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the cache backend."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the cache backend."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if not found or the backend failed.
        """
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in the cache.

        Args:
            key: The cache key.
            value: The value to cache (will be JSON serialized).
            ttl: Time-to-live in seconds (None for no expiration).

        Returns:
            True if successful, False otherwise.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key from the cache.

        Returns:
            True if deleted, False if key didn't exist.
        """
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists in the cache."""
        ...

    @abstractmethod
    async def clear_all(self) -> bool:
        """Clear all keys from the cache.

        Returns:
            True if successful, False otherwise.
        """
        ...

    @abstractmethod
    async def approximate_size(self) -> int:
        """Approximate number of keys held by the backend (0 when unavailable)."""
        ...
