"""Protocol definitions for service interfaces.

This module defines the interfaces (Protocols) for the collaborators of the
chat data layer so they can be injected and replaced in tests.
"""

from typing import Protocol, Optional, List, Sequence, runtime_checkable

from ragchat.models.chat import (
    CacheStatsSnapshot,
    ChatMessage,
    KnowledgeContext,
    NewMessage,
)


@runtime_checkable
class ISessionStore(Protocol):
    """Interface for the persistent session and message store."""

    async def initialize(self) -> None:
        """Create tables if needed."""
        ...

    async def create_session(self) -> str:
        """Create a session record and return its identifier."""
        ...

    async def append_messages(self, session_id: str, messages: Sequence[NewMessage]) -> int:
        """Insert messages in one batch.

        Returns:
            Number of rows inserted.
        """
        ...

    async def list_messages(self, session_id: str) -> Optional[List[ChatMessage]]:
        """All messages of a session, oldest first.

        Returns:
            None when the session record does not exist.
        """
        ...

    async def list_recent_messages(self, session_id: str, limit: int) -> List[ChatMessage]:
        """The newest ``limit`` messages of a session, oldest first."""
        ...


@runtime_checkable
class IKnowledgeService(Protocol):
    """Interface for the vector knowledge store."""

    async def initialize(self) -> None:
        ...

    async def search(self, query: str) -> str:
        """Return the nearest chunks joined into one context string ("" if none)."""
        ...

    async def ingest_document(self, text: str) -> int:
        """Chunk, embed and store a document. Returns the number of chunks."""
        ...


@runtime_checkable
class IReplyGenerator(Protocol):
    """Interface for the LLM reply call."""

    async def generate_reply(
        self,
        history: List[ChatMessage],
        context: str,
        query: str,
    ) -> str:
        ...


@runtime_checkable
class IChatDataLayer(Protocol):
    """Interface exposed by the cache-aside data layer to the response pipeline."""

    async def get_knowledge_context(self, query: str) -> KnowledgeContext:
        ...

    async def get_chat_history(self, session_id: str) -> List[ChatMessage]:
        ...

    async def append_chat_messages(
        self,
        session_id: str,
        messages: Sequence[NewMessage],
    ) -> List[ChatMessage]:
        ...

    async def create_session(self) -> str:
        ...

    async def clear_all(self) -> bool:
        ...

    async def get_cache_stats(self) -> CacheStatsSnapshot:
        ...
