"""Shared test fixtures for chat service tests."""

import pytest
from typing import Dict, List
from unittest.mock import AsyncMock

from ragchat.services.session_store import SessionStore
from ragchat.services.unified_cache.backends.memory_backend import MemoryBackend
from ragchat.services.unified_cache.chat_cache import ChatCacheService, CacheConfig


class FakeKnowledgeService:
    """Knowledge collaborator returning canned contexts and counting searches."""

    def __init__(self, contexts: Dict[str, str] = None, default: str = "Opening hours are 9 to 5."):
        self.contexts = contexts or {}
        self.default = default
        self.search_calls: List[str] = []
        self.documents: List[str] = []

    async def initialize(self) -> None:
        return None

    async def search(self, query: str) -> str:
        self.search_calls.append(query)
        return self.contexts.get(query, self.default)

    async def ingest_document(self, text: str) -> int:
        self.documents.append(text)
        return 1


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def memory_backend():
    """Create a fresh memory backend for testing."""
    return MemoryBackend()


@pytest.fixture
async def connected_memory_backend(memory_backend):
    """Create a connected memory backend."""
    await memory_backend.connect()
    yield memory_backend
    await memory_backend.disconnect()


@pytest.fixture
def cache_config():
    """Create a test cache configuration."""
    return CacheConfig(chat_history_ttl=60, knowledge_ttl=120)


# ============================================================================
# Store / collaborator Fixtures
# ============================================================================

@pytest.fixture
async def session_store(tmp_path):
    """Session store backed by a throwaway SQLite file."""
    store = SessionStore(str(tmp_path / "sessions.db"))
    await store.initialize()
    return store


@pytest.fixture
def fake_knowledge():
    return FakeKnowledgeService()


@pytest.fixture
async def data_layer(connected_memory_backend, session_store, fake_knowledge, cache_config):
    """Cache-aside data layer over a connected memory backend."""
    return ChatCacheService(connected_memory_backend, session_store, fake_knowledge, cache_config)


# ============================================================================
# Mock Service Fixtures
# ============================================================================

@pytest.fixture
def mock_reply_generator():
    """Create a mock reply generator."""
    mock = AsyncMock()
    mock.generate_reply = AsyncMock(return_value="Hello! How can I help?")
    return mock


@pytest.fixture
def knowledge_factory():
    """Build fake knowledge collaborators with custom behaviour."""
    return FakeKnowledgeService
