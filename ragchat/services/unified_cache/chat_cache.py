"""Cache-aside data layer for chat sessions and knowledge context.

Every read that may be served from cache and every write that must keep the
cache and the session store consistent goes through ChatCacheService:

- Chat history: session:v1:{id} -> SessionSnapshot (1 hour TTL)
- Knowledge context: search:v1:{normalized query} -> context string (24 hour TTL)

The session store is authoritative. The cache is an accelerator and may be
unavailable at any moment; every operation here keeps working against the
store when it is.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Any, List, Sequence, Set

from pydantic import ValidationError

from ragchat.core.errors import ChatServiceError, KnowledgeSearchError, SessionNotFoundError
from ragchat.core.interfaces import IKnowledgeService, ISessionStore
from ragchat.core.logging import get_logger
from ragchat.models.chat import (
    CacheStatsSnapshot,
    ChatMessage,
    KnowledgeContext,
    NewMessage,
    Provenance,
    SessionSnapshot,
)
from ragchat.services.unified_cache.backends.base import ICacheBackend, CacheStats
from ragchat.services.unified_cache.key_generator import CacheKeyGenerator, MAX_KEY_LENGTH

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for cache TTLs and key bounds. Immutable once built."""

    # Chat history - short TTL, refreshed on every append
    chat_history_ttl: int = 3600  # 1 hour

    # Knowledge context - long TTL (knowledge base changes rarely)
    knowledge_ttl: int = 86400  # 24 hours

    # Longer keys bypass the cache entirely
    max_key_length: int = MAX_KEY_LENGTH

    redis_url: Optional[str] = None


@dataclass
class ChatCacheStats:
    """Statistics for both cached data kinds."""

    history: CacheStats
    knowledge: CacheStats

    @property
    def total_hits(self) -> int:
        return self.history.hits + self.knowledge.hits

    @property
    def total_misses(self) -> int:
        return self.history.misses + self.knowledge.misses

    @property
    def overall_hit_rate(self) -> float:
        """Overall hit rate across both kinds."""
        total = self.total_hits + self.total_misses
        if total == 0:
            return 0.0
        return self.total_hits / total


class ChatCacheService:
    """Cache-aside orchestrator between the cache, the session store and
    the knowledge service.

    Usage:
        backend = RedisBackend(settings.redis_url)
        data_layer = ChatCacheService(backend, session_store, knowledge, config)
        await data_layer.connect()

        session_id = await data_layer.create_session()
        history = await data_layer.get_chat_history(session_id)
        context = await data_layer.get_knowledge_context("opening hours?")
        await data_layer.append_chat_messages(session_id, [NewMessage(...)])

        await data_layer.disconnect()

    Cache connectivity is sampled at the start of each cache step. Backends
    never raise, and the calls here are additionally guarded, so a cache
    that drops mid-request degrades that request to the store path.
    Appends made while the cache is down mark the session stale; its cached
    snapshot is dropped on the next read once the cache is back.
    No per-session locking: concurrent appends to one session may leave a
    cached snapshot missing a message until TTL expiry; the store always
    has both.
    """

    def __init__(
        self,
        backend: ICacheBackend,
        session_store: ISessionStore,
        knowledge_service: IKnowledgeService,
        config: Optional[CacheConfig] = None,
    ):
        """Initialize the data layer.

        Args:
            backend: The cache backend (Redis, Memory). Owned by this service.
            session_store: Authoritative session store. Shared, not owned.
            knowledge_service: Vector similarity search collaborator.
            config: Cache TTLs and key bound.
        """
        self.backend = backend
        self.session_store = session_store
        self.knowledge_service = knowledge_service
        self.config = config or CacheConfig()
        self.key_generator = CacheKeyGenerator

        self._history_stats = CacheStats()
        self._knowledge_stats = CacheStats()

        # Sessions whose cached snapshot may have missed an append
        self._stale_sessions: Set[str] = set()

    @property
    def enabled(self) -> bool:
        """Check if the cache is available right now."""
        return self.backend.enabled

    @property
    def stats(self) -> ChatCacheStats:
        """Get hit/miss statistics for history and knowledge lookups."""
        return ChatCacheStats(history=self._history_stats, knowledge=self._knowledge_stats)

    async def connect(self) -> None:
        """Connect the cache backend. Failure leaves the cache unavailable."""
        await self.backend.connect()
        if not self.enabled:
            logger.warning("Cache unavailable at startup, serving from the session store")

    async def disconnect(self) -> None:
        """Disconnect the cache backend."""
        await self.backend.disconnect()

    # =========================================================================
    # Guarded cache access
    # =========================================================================

    async def _cache_get(self, key: str) -> Optional[Any]:
        try:
            return await self.backend.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    async def _cache_set(self, key: str, value: Any, ttl: int) -> bool:
        try:
            return await self.backend.set(key, value, ttl)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}, skipping: {e}")
            return False

    # =========================================================================
    # Knowledge context
    # =========================================================================

    async def _search_knowledge(self, query: str) -> str:
        try:
            return await self.knowledge_service.search(query)
        except ChatServiceError:
            raise
        except Exception as e:
            logger.error(f"Knowledge search failed: {e}")
            raise KnowledgeSearchError(f"Knowledge search failed: {e}", operation="search") from e

    async def get_knowledge_context(self, query: str) -> KnowledgeContext:
        """Get knowledge context for a query.

        Flow: check cache -> on miss, similarity search -> cache non-empty
        result -> return.

        Args:
            query: The user's query.

        Returns:
            The context and which tier produced it.

        Raises:
            KnowledgeSearchError: If the similarity search fails.
        """
        key = self.key_generator.knowledge(query)

        if not self.key_generator.within_bound(key, self.config.max_key_length):
            # Don't read the cache, don't cache the result
            logger.warning(
                "Skipping cache for long query (key length %d, hash %s)",
                len(key),
                self.key_generator.hash_content(query),
            )
            context = await self._search_knowledge(query)
            return KnowledgeContext(context=context, source=Provenance.DATABASE)

        if self.enabled:
            cached = await self._cache_get(key)
            if isinstance(cached, str) and cached:
                self._knowledge_stats.record_hit()
                logger.debug("Knowledge cache HIT: %s", key)
                return KnowledgeContext(context=cached, source=Provenance.CACHE)

        self._knowledge_stats.record_miss()
        logger.debug("Knowledge cache MISS: %s", key)
        context = await self._search_knowledge(query)

        if self.enabled and context:
            await self._cache_set(key, context, self.config.knowledge_ttl)

        return KnowledgeContext(context=context, source=Provenance.DATABASE)

    # =========================================================================
    # Chat history
    # =========================================================================

    def _decode_snapshot(self, key: str, cached: Any) -> Optional[SessionSnapshot]:
        if cached is None:
            return None
        try:
            return SessionSnapshot.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Discarding malformed history snapshot at {key}: {e}")
            return None

    async def _write_snapshot(self, key: str, snapshot: SessionSnapshot) -> bool:
        return await self._cache_set(
            key,
            snapshot.model_dump(mode="json"),
            self.config.chat_history_ttl,
        )

    async def _get_snapshot(self, session_id: str) -> SessionSnapshot:
        """Cache-aside read of a session's history snapshot."""
        key = self.key_generator.session(session_id)

        if self.enabled and session_id in self._stale_sessions:
            if await self._invalidate(key):
                self._stale_sessions.discard(session_id)
        elif self.enabled:
            snapshot = self._decode_snapshot(key, await self._cache_get(key))
            if snapshot is not None:
                self._history_stats.record_hit()
                logger.debug("History cache HIT: %s", session_id)
                return snapshot

        self._history_stats.record_miss()
        logger.debug("History cache MISS: %s", session_id)

        messages = await self.session_store.list_messages(session_id)
        if messages is None:
            raise SessionNotFoundError(session_id)

        snapshot = SessionSnapshot(session_id=session_id, messages=messages)
        if self.enabled:
            await self._write_snapshot(key, snapshot)
        return snapshot

    async def get_chat_history(self, session_id: str) -> List[ChatMessage]:
        """Get a session's messages, oldest first.

        Cache hits are returned as stored, without re-validation against the
        store.

        Raises:
            SessionNotFoundError: If the session does not exist in the store.
            StorageError: If the store query fails.
        """
        snapshot = await self._get_snapshot(session_id)
        return snapshot.messages

    async def append_chat_messages(
        self,
        session_id: str,
        messages: Sequence[NewMessage],
    ) -> List[ChatMessage]:
        """Persist messages and extend the cached history.

        Args:
            session_id: Target session.
            messages: New messages in conversation order.

        Returns:
            The stored messages with store-assigned ids and timestamps (not
            the full history).

        Raises:
            SessionNotFoundError: If the session does not exist.
            StorageError: If the insert or read-back fails.
        """
        if not messages:
            return []

        await self.session_store.append_messages(session_id, messages)
        stored = await self.session_store.list_recent_messages(session_id, len(messages))

        if not self.enabled:
            # A snapshot written before the outage would miss these messages
            self._stale_sessions.add(session_id)
            return stored

        try:
            updated = await self._extend_cached_history(session_id, stored)
        except Exception as e:
            logger.error(f"Failed to update cached history for {session_id}: {e}")
            updated = False

        if not updated:
            # The store write already succeeded; drop the stale copy instead
            self._stale_sessions.add(session_id)
            if await self._invalidate(self.key_generator.session(session_id)):
                self._stale_sessions.discard(session_id)

        return stored

    async def _extend_cached_history(self, session_id: str, stored: List[ChatMessage]) -> bool:
        # May warm a cold cache from the store, which already holds `stored`
        snapshot = await self._get_snapshot(session_id)

        known_ids = {message.id for message in snapshot.messages}
        snapshot.messages.extend(m for m in stored if m.id not in known_ids)
        snapshot.updated_at = datetime.now(timezone.utc)

        written = await self._write_snapshot(self.key_generator.session(session_id), snapshot)
        if not written:
            logger.warning("Cached history write skipped for %s", session_id)
        return written

    async def _invalidate(self, key: str) -> bool:
        """Delete a key. True only if the key is known to be gone."""
        try:
            gone = await self.backend.delete(key) or not await self.backend.exists(key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False
        return gone and self.enabled

    # =========================================================================
    # Sessions
    # =========================================================================

    async def create_session(self) -> str:
        """Create a session and pre-warm its (empty) cached history.

        Returns:
            The new session identifier.

        Raises:
            StorageError: If the store cannot create the session.
        """
        session_id = await self.session_store.create_session()

        if self.enabled:
            key = self.key_generator.session(session_id)
            if not await self._write_snapshot(key, SessionSnapshot(session_id=session_id)):
                logger.warning("Could not pre-warm cache for session %s", session_id)

        logger.info("Created new session: %s", session_id)
        return session_id

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def clear_all(self) -> bool:
        """Flush every cached entry. No-op when the cache is unavailable.

        Returns:
            True if the cache was flushed.
        """
        if not self.enabled:
            return False

        try:
            result = await self.backend.clear_all()
        except Exception as e:
            logger.error(f"Cache flush failed: {e}")
            return False

        if result:
            self._stale_sessions.clear()
            self.reset_stats()
            logger.info("Cleared all cache")
        return result

    async def get_cache_stats(self) -> CacheStatsSnapshot:
        """Cache availability and approximate size. Never raises."""
        if not self.enabled:
            return CacheStatsSnapshot(available=False, approximate_entry_count=0)

        try:
            count = await self.backend.approximate_size()
        except Exception as e:
            logger.warning(f"Cache size lookup failed: {e}")
            return CacheStatsSnapshot(available=False, approximate_entry_count=0)

        return CacheStatsSnapshot(available=self.enabled, approximate_entry_count=count)

    def reset_stats(self) -> None:
        """Reset all statistics."""
        self._history_stats.reset()
        self._knowledge_stats.reset()
