"""Cache key generation for the chat data layer.

Single source of truth for the shape of every key the data layer writes.
"""

import hashlib

# Keys longer than this are never sent to the cache backend
MAX_KEY_LENGTH = 512


class CacheKeyGenerator:
    """Cache key generation for session history and knowledge context.

    Key format: {kind}:{version}:{...}

    Examples:
        session:v1:3f2b0c4e-...
        search:v1:what_are_your_opening_hours?
    """

    VERSION = "v1"
    SESSION_PREFIX = "session"
    SEARCH_PREFIX = "search"

    @classmethod
    def session(cls, session_id: str) -> str:
        """Generate the cache key for a session's chat history.

        Args:
            session_id: The session identifier.

        Returns:
            Cache key string, one per session.
        """
        return f"{cls.SESSION_PREFIX}:{cls.VERSION}:{session_id}"

    @staticmethod
    def normalize_query(query: str) -> str:
        """Case-fold, trim and collapse interior whitespace to underscores."""
        return "_".join(query.casefold().split())

    @classmethod
    def knowledge(cls, query: str) -> str:
        """Generate the cache key for a knowledge-context lookup.

        Queries that differ only in case or whitespace share a key.

        Args:
            query: The raw user query.

        Returns:
            Cache key string. May exceed MAX_KEY_LENGTH; check with within_bound().
        """
        return f"{cls.SEARCH_PREFIX}:{cls.VERSION}:{cls.normalize_query(query)}"

    @staticmethod
    def within_bound(key: str, max_length: int = MAX_KEY_LENGTH) -> bool:
        """Check whether a key is short enough to be sent to the backend."""
        return len(key) <= max_length

    @classmethod
    def hash_content(cls, content: str) -> str:
        """Short content hash, used to log long queries without dumping them."""
        return hashlib.md5(content.encode("utf-8")).hexdigest()
