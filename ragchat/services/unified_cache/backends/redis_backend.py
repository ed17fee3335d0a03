"""Redis cache backend implementation."""

import asyncio
import json
from datetime import timedelta
from typing import Optional, Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import RedisError

from ragchat.services.unified_cache.backends.base import ICacheBackend
from ragchat.core.logging import get_logger

logger = get_logger(__name__)

TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisBackend(ICacheBackend):
    """Redis-based cache backend.

    Provides a production cache backend using Redis with:
    - Automatic JSON serialization/deserialization
    - Connectivity state driven by connection and transport-error events
    - Background reconnect monitor while the connection is down
    - Statistics tracking
    - Graceful error handling (operations never raise)
    """

    name = "redis"

    def __init__(
        self,
        redis_url: Optional[str],
        socket_timeout: float = 5.0,
        reconnect_interval: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL.
            socket_timeout: Per-operation and connect timeout in seconds.
            reconnect_interval: Seconds between reconnect attempts while
                disconnected. 0 disables the monitor.
            client: Pre-built client (tests).
        """
        super().__init__()
        self._redis_url = redis_url
        self._socket_timeout = socket_timeout
        self._reconnect_interval = reconnect_interval
        self._client: Optional[redis.Redis] = client
        self._monitor_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the Redis client (for advanced operations)."""
        return self._client

    async def connect(self) -> None:
        """Connect to Redis.

        A failed first connection leaves the backend DISCONNECTED; the
        reconnect monitor keeps trying in the background.
        """
        if self._client is None:
            if not self._redis_url:
                logger.info("Redis URL not configured, cache disabled")
                self._on_disconnected()
                return
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )

        self._closed = False
        await self._ping()

        if self._reconnect_interval > 0 and self._monitor_task is None:
            self._monitor_task = asyncio.create_task(self._reconnect_monitor())

    async def disconnect(self) -> None:
        """Disconnect from Redis and stop the reconnect monitor."""
        self._closed = True
        self._on_disconnected()

        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None

        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis cache")

    async def _ping(self) -> bool:
        try:
            await self._client.ping()
        except TRANSPORT_ERRORS as e:
            self._on_transport_error(e)
            return False
        except RedisError as e:
            logger.error(f"Redis PING error: {e}")
            self._on_transport_error(e)
            return False
        self._on_connected()
        return True

    async def _reconnect_monitor(self) -> None:
        """Re-establish connectivity after transport errors."""
        while not self._closed:
            await asyncio.sleep(self._reconnect_interval)
            if self._closed or self.enabled or self._client is None:
                continue
            if await self._ping():
                logger.info("Redis connection re-established")

    def _handle_error(self, operation: str, key: Optional[str], error: Exception) -> None:
        if isinstance(error, TRANSPORT_ERRORS):
            self._on_transport_error(error)
            return
        target = f" for key {key}" if key else ""
        logger.error(f"Redis {operation} error{target}: {error}")
        self._stats.record_error()

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from Redis."""
        if not self.enabled:
            return None

        try:
            value = await self._client.get(key)
        except Exception as e:
            self._handle_error("GET", key, e)
            return None

        if value is None:
            self._stats.record_miss()
            return None

        try:
            decoded = json.loads(value)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Discarding undecodable cache value for key {key}: {e}")
            self._stats.record_error()
            return None

        self._stats.record_hit()
        return decoded

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in Redis."""
        if not self.enabled:
            return False

        try:
            serialized = json.dumps(value)
            if ttl:
                await self._client.setex(key, timedelta(seconds=ttl), serialized)
            else:
                await self._client.set(key, serialized)
            return True
        except Exception as e:
            self._handle_error("SET", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key from Redis."""
        if not self.enabled:
            return False

        try:
            result = await self._client.delete(key)
            return result > 0
        except Exception as e:
            self._handle_error("DELETE", key, e)
            return False

    async def exists(self, key: str) -> bool:
        """Check if a key exists in Redis."""
        if not self.enabled:
            return False

        try:
            return await self._client.exists(key) > 0
        except Exception as e:
            self._handle_error("EXISTS", key, e)
            return False

    async def clear_all(self) -> bool:
        """Clear all keys from Redis (flushdb)."""
        if not self.enabled:
            return True

        try:
            await self._client.flushdb()
            logger.info("Cleared all Redis cache entries")
            return True
        except Exception as e:
            self._handle_error("FLUSHDB", None, e)
            return False

    async def approximate_size(self) -> int:
        """Number of keys in the selected Redis database."""
        if not self.enabled:
            return 0

        try:
            return int(await self._client.dbsize())
        except Exception as e:
            self._handle_error("DBSIZE", None, e)
            return 0
