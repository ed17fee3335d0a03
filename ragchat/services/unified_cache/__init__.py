"""Cache-aside data layer for the chat service.

Kinds of cached data:
- Chat history (1 hour TTL) - ordered messages of one session
- Knowledge context (24 hour TTL) - similarity search result for a query

Usage:
    from ragchat.services.unified_cache import ChatCacheService, CacheConfig

    data_layer = ChatCacheService(backend, session_store, knowledge_service, config)

    history = await data_layer.get_chat_history(session_id)
    context = await data_layer.get_knowledge_context("query text")
"""

from ragchat.services.unified_cache.key_generator import CacheKeyGenerator
from ragchat.services.unified_cache.chat_cache import ChatCacheService, CacheConfig

__all__ = [
    "CacheKeyGenerator",
    "ChatCacheService",
    "CacheConfig",
]
